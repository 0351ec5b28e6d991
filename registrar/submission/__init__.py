"""Ticket submission: planning, creation with degradation, and reconciliation."""
