"""
Configuration management module.

Loads YAML configuration and merges it over built-in defaults so every
component can read its section without checking for missing keys.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from exceptions import BudgetError, ConfigError
from periods import parse_week_start
from reconciliation import DEFAULT_TOLERANCE

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "database": {
        "data_dir": "data",
        "path": "budgets.db",
        "connection_string": None,
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "file": None,
    },
    "budgets": {
        "week_start": "monday",
    },
    "reconciliation": {
        "strict": False,
        "tolerance": DEFAULT_TOLERANCE,
    },
    "ingestion": {
        "date_format": None,
        "skip_invalid_rows": True,
    },
}

CONFIG_FILE = "config.yaml"

# Overrides any database settings in the config file
DB_URL_ENV = "DB_CONNECTION_STRING"


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overrides into a copy of defaults, one level of sections deep."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    A missing file yields the defaults.

    Args:
        config_path: Path to the YAML file (defaults to config.yaml)

    Returns:
        Configuration dictionary with defaults for missing values

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping
    """
    path = Path(config_path or CONFIG_FILE)
    if not path.exists():
        logger.info("Config file %s not found; using defaults", path)
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, "r") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Unable to read configuration file '{path}'", original_error=e) from e

    if not isinstance(loaded, dict):
        raise ConfigError("Configuration root must be a mapping", details={"path": str(path)})

    logger.info("Configuration loaded from %s", path)
    return _merge(DEFAULT_CONFIG, loaded)


def get_week_start(config: Dict[str, Any]) -> int:
    """
    Return the configured first weekday (0 = Monday).

    Raises:
        ConfigError: If the configured value is not a weekday
    """
    raw = config.get("budgets", {}).get("week_start")
    try:
        return parse_week_start(raw)
    except BudgetError as e:
        raise ConfigError("Invalid budgets.week_start", details={"value": raw}, original_error=e) from e


def build_engine_options(config: Dict[str, Any]) -> Dict[str, Any]:
    """Keyword arguments for ReconciliationEngine from the reconciliation section."""
    section = config.get("reconciliation", {})
    try:
        tolerance = float(section.get("tolerance", DEFAULT_TOLERANCE))
    except (TypeError, ValueError) as e:
        raise ConfigError(
            "Invalid reconciliation.tolerance", details={"value": section.get("tolerance")}, original_error=e
        ) from e
    return {
        "strict": bool(section.get("strict", False)),
        "tolerance": tolerance,
    }


def get_connection_string(config: Dict[str, Any]) -> str:
    """
    Database URL holding the ledger and budget tables.

    DB_CONNECTION_STRING wins over database.connection_string, which wins
    over a SQLite file at database.data_dir / database.path. For file-based
    SQLite the containing directory is created so the first run can
    create the database.

    Raises:
        ConfigError: If the URL is malformed or its directory cannot be created
    """
    db_config = config.get("database", {})
    url = os.environ.get(DB_URL_ENV) or db_config.get("connection_string")
    if not url:
        db_file = Path(db_config.get("data_dir") or "data") / (db_config.get("path") or "budgets.db")
        url = f"sqlite:///{db_file.as_posix()}"

    try:
        parsed = make_url(url)
    except ArgumentError as e:
        raise ConfigError("Invalid database connection string", details={"url": url}, original_error=e) from e

    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        _make_parent_dir(Path(parsed.database), "database")
    return url


def get_log_file(config: Dict[str, Any]) -> Optional[Path]:
    """Path of the optional log file, with its directory created; None when unset."""
    raw = config.get("logging", {}).get("file")
    if not raw:
        return None
    path = Path(raw)
    _make_parent_dir(path, "log file")
    return path


def _make_parent_dir(path: Path, purpose: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(
            f"Cannot create directory for {purpose}", details={"path": str(path.parent)}, original_error=e
        ) from e
