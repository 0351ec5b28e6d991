"""Configuration module for the Jira incident registrar.
Provides a centralized configuration interface using ConfigLoader.
"""

from pathlib import Path
from typing import Any

from registrar.config_loader import ConfigLoader
from registrar.display import configure_logging
from registrar.type_definitions import DirType, LogLevel

# Create a singleton instance of ConfigLoader
_config_loader = ConfigLoader()

# Extract configuration sections for easy access
jira_config = _config_loader.get_jira_config()
registrar_config = _config_loader.get_registrar_config()

# Set up the var directory structure
root_dir = Path(__file__).parent.parent
var_dir = root_dir / "var"

var_dirs: dict[DirType, Path] = {
    "root": var_dir,
    "logs": var_dir / "logs",
    "results": var_dir / "results",
}

for dir_path in var_dirs.values():
    dir_path.mkdir(parents=True, exist_ok=True)

# Set up logging with rich
LOG_LEVEL: LogLevel = registrar_config.get("log_level", "INFO")
log_file = var_dirs["logs"] / "registrar.log"
logger = configure_logging(LOG_LEVEL, str(log_file))


def get_path(path_type: DirType) -> Path:
    """Get a specific path from var_dirs."""
    if path_type not in var_dirs:
        msg = f"Invalid path type: {path_type}"
        raise ValueError(msg)

    return var_dirs[path_type]


def update_from_cli_args(args: Any) -> None:
    """Update registrar configuration from CLI arguments.

    Args:
        args: An object containing CLI arguments (typically from argparse)

    """
    if getattr(args, "dry_run", False):
        registrar_config["dry_run"] = True
        logger.debug("Setting dry_run=True from CLI arguments")

    if getattr(args, "project", None):
        jira_config["project_key"] = args.project
        logger.debug("Setting project_key=%s from CLI arguments", args.project)

    if getattr(args, "issue_type", None):
        jira_config["issue_type"] = args.issue_type
        logger.debug("Setting issue_type=%s from CLI arguments", args.issue_type)
