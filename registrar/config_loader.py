"""Configuration loading for the Jira incident registrar.

Handles loading and accessing configuration settings.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from registrar.type_definitions import (
    Config,
    ConfigValue,
    JiraConfig,
    RegistrarConfig,
    SectionName,
)

# Set up basic logging for configuration loading phase
logging.basicConfig(level=logging.INFO, format="%(message)s")
config_logger = logging.getLogger("config_loader")

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

DEFAULT_JIRA_CONFIG: JiraConfig = {
    "url": "",
    "email": "",
    "api_token": "",
    "verify_ssl": True,
    "project_key": "",
    "issue_type": "Incidencia",
}

DEFAULT_REGISTRAR_CONFIG: RegistrarConfig = {
    "log_level": "INFO",
    "dry_run": False,
    "title_column": "Titulo",
    "description_columns": ["Descripción", "Descripción de la Novedad"],
    "fields": {},
    "protected_fields": [],
    "fragile_fields": {},
    "rejection_keywords": {},
    "verify_fields": [],
    "evidence_columns": [],
    "max_reduction_rounds": 2,
}


def is_test_environment() -> bool:
    """Detect if code is running in a test environment.

    Returns:
        bool: True if pytest is running or JREG_TEST_MODE is set

    """
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True

    return os.environ.get("JREG_TEST_MODE", "").lower() in ("true", "1", "yes")


class ConfigLoader:
    """Loads and provides access to configuration settings from YAML files and environment variables."""

    def __init__(self, config_file_path: Path | None = None) -> None:
        """Initialize the configuration loader.

        Args:
            config_file_path: Path to the YAML configuration file. Defaults to
                ``config/config.yaml`` next to the package.

        """
        self._load_environment_configuration()

        loaded = self._load_yaml_config(config_file_path or DEFAULT_CONFIG_PATH)

        self.config: Config = {
            "jira": {**copy.deepcopy(DEFAULT_JIRA_CONFIG), **(loaded.get("jira") or {})},
            "registrar": {
                **copy.deepcopy(DEFAULT_REGISTRAR_CONFIG),
                **(loaded.get("registrar") or {}),
            },
        }

        self._apply_environment_overrides()

    def _load_environment_configuration(self) -> None:
        """Load environment variables from .env files based on execution context.

        Later files override values from earlier ones:
        - .env (base config for all environments)
        - .env.local (local overrides, if present)
        - .env.test (test-specific config, only in test environment)
        """
        load_dotenv(".env")
        config_logger.debug("Loaded base environment from .env")

        if Path(".env.local").exists():
            load_dotenv(".env.local", override=True)
            config_logger.debug("Loaded local overrides from .env.local")

        if is_test_environment() and Path(".env.test").exists():
            load_dotenv(".env.test", override=True)
            config_logger.debug("Loaded test environment from .env.test")

    def _load_yaml_config(self, config_file_path: Path) -> dict[str, Any]:
        """Load configuration from YAML file.

        A missing file is not an error: defaults plus environment variables
        are enough to run against a Jira instance.
        """
        try:
            with config_file_path.open("r", encoding="utf-8") as config_file:
                return yaml.safe_load(config_file) or {}
        except FileNotFoundError:
            config_logger.warning(
                "Config file not found: %s (using defaults and environment)",
                config_file_path,
            )
            return {}

    def _apply_environment_overrides(self) -> None:
        """Override configuration settings with JREG_* environment variables."""
        for env_var, env_value in os.environ.items():
            if not env_var.startswith("JREG_"):
                continue

            match env_var.split("_"):
                case ["JREG", "LOG", "LEVEL"]:
                    log_level = env_value.upper()
                    if log_level in ["DEBUG", "INFO", "NOTICE", "WARNING", "ERROR", "CRITICAL", "SUCCESS"]:
                        self.config["registrar"]["log_level"] = log_level
                    config_logger.debug("Applied log level: %s", log_level)

                case ["JREG", "DRY", "RUN"]:
                    self.config["registrar"]["dry_run"] = bool(self._convert_value(env_value))
                    config_logger.debug("Applied dry run: %s", env_value)

                case ["JREG", "JIRA", *rest] if rest:
                    key = "_".join(rest).lower()
                    self.config["jira"][key] = self._convert_value(env_value)
                    # Never echo secrets
                    shown = "***" if "token" in key else env_value
                    config_logger.debug("Applied Jira config: %s=%s", key, shown)

    def _convert_value(self, value: str) -> ConfigValue:
        """Convert string value to appropriate type."""
        match value.lower():
            case "true" | "yes" | "y":
                return True
            case "false" | "no" | "n":
                return False
            case _:
                return value

    def get_jira_config(self) -> JiraConfig:
        """Get Jira-specific configuration."""
        return self.config["jira"]

    def get_registrar_config(self) -> RegistrarConfig:
        """Get registration pipeline configuration."""
        return self.config["registrar"]

    def get_value(self, section: SectionName, key: str, default: Any = None) -> Any:
        """Get a specific configuration value.

        Args:
            section: Configuration section (jira, registrar)
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default if not found

        """
        return self.config[section].get(key, default)
