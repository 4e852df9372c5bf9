import json
from pathlib import Path
from typing import Dict, Any

from common.errors import DedupConfigError
from common.logging.logger import get_logger

logger = get_logger("config")

# Centralized default values for all config keys used across the codebase.
# Each entry: (type, default_value)
# Types: str, int, float, bool, None (any)
CONFIG_SCHEMA: Dict[str, tuple] = {
    # Paths
    "paths.logs_dir":                   (str,   "logs"),

    # Index connection
    "index.backend":                    (str,   "solr"),
    "index.url":                        (str,   None),
    "index.name":                       (str,   None),
    "index.api_key":                    (str,   None),
    "index.timeout_seconds":            (float, 30.0),
    "index.task_timeout_ms":            (int,   600000),

    # Index field mapping
    "index.fields.id":                  (str,   "id"),
    "index.fields.weight":              (str,   "boost"),
    "index.fields.modified_at":         (str,   "tstamp"),
    "index.fields.fingerprint":         (str,   "digest"),
    "index.fields.timestamp_unit":      (str,   "s"),

    # Deduplication job
    "dedup.scanners":                   (int,   4),
    "dedup.resolvers":                  (int,   4),
    "dedup.batch_size":                 (int,   1000),
    "dedup.no_commit":                  (bool,  False),

    # Resource limits
    "resource_limits.max_rss_gb":              (float, None),
    "resource_limits.check_interval_seconds": (float, 5.0),
}


class Config:
    _instance = None
    _config: Dict[str, Any] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._load_config()
        return cls._instance

    def _load_config(self):
        config_path = Path("config.json")
        if not config_path.exists():
            self._config = {}
            return

        with open(config_path, "r") as f:
            self._config = json.load(f)
        logger.info(f"Loaded configuration from {config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Gets a config value by dot-separated key.

        Lookup order:
        1. Value from config.json (if present and not None)
        2. Caller-provided default (if not None)
        3. Schema default from CONFIG_SCHEMA
        4. None
        """
        value = self._get_raw(key)
        if value is not None:
            return value

        if default is not None:
            return default

        schema_entry = CONFIG_SCHEMA.get(key)
        if schema_entry is not None:
            return schema_entry[1]

        return None

    def validate(self) -> list:
        """
        Validates the loaded config against CONFIG_SCHEMA.

        Returns a list of warning strings for type mismatches.
        Does NOT raise -- config.json values always take precedence.
        """
        warnings = []
        for key, (expected_type, _default) in CONFIG_SCHEMA.items():
            if expected_type is None:
                continue
            value = self._get_raw(key)
            if value is None:
                continue
            # ints are acceptable where floats are expected
            if expected_type is float and isinstance(value, int) and not isinstance(value, bool):
                continue
            if not isinstance(value, expected_type):
                warnings.append(
                    f"Config '{key}': expected {expected_type.__name__}, "
                    f"got {type(value).__name__} ({value!r})"
                )
        if warnings:
            for w in warnings:
                logger.warning(w)
        return warnings

    def _get_raw(self, key: str) -> Any:
        """Gets value from config.json without schema fallback."""
        keys = key.split(".")
        value = self._config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return None
            if value is None:
                return None
        return value

    def require(self, key: str, value: Any = None) -> Any:
        """
        Requires a config value, either passed explicitly or resolvable
        through get().

        Raises DedupConfigError if missing.
        """
        if value is None:
            value = self.get(key)
        if value is None:
            logger.error(f"Missing required config key: {key}")
            raise DedupConfigError(key)
        return value


# Global accessor
config = Config()
