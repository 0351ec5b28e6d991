"""Field schema lookups, value matching and coercion."""
