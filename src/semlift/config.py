"""
Configuration file support.

A configuration file is a JSON object with optional sections:

    {
        "cache": {
            "directory": "~/.semlift/cache",
            "ttl_seconds": 86400,
            "stale_if_error": true,
            "connect_timeout": 10,
            "read_timeout": 20
        },
        "lift": {
            "base_iri": "urn:base:",
            "strict": false,
            "jq_binary": "jq",
            "output": "turtle",
            "csv_infer_types": true
        },
        "logging": {
            "level": "INFO",
            "file": "logs/semlift.log",
            "format": "text"
        }
    }

When ``cache.directory`` is absent the SEMLIFT_CACHE_DIR environment variable
(or ``~/.semlift/cache``) is used.
"""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from .constants import LiftDefaults
from .core.cache import CacheConfig
from .core.errors import ConfigurationError
from .models.documents import LiftOptions, RdfOutput


@dataclass(frozen=True)
class LiftSettings:
    """Defaults applied to every LiftOptions built from the configuration."""
    base_iri: str = LiftDefaults.BASE_IRI
    strict: bool = False
    jq_binary: str = LiftDefaults.JQ_BINARY
    output: RdfOutput = RdfOutput.TURTLE
    csv_infer_types: bool = LiftDefaults.CSV_INFER_TYPES

    @classmethod
    def from_dict(cls, lift_config: Mapping[str, Any]) -> 'LiftSettings':
        defaults = cls()
        return cls(
            base_iri=str(lift_config.get('base_iri', defaults.base_iri)),
            strict=bool(lift_config.get('strict', defaults.strict)),
            jq_binary=str(lift_config.get('jq_binary', defaults.jq_binary)),
            output=RdfOutput.parse(lift_config.get('output', defaults.output.value)),
            csv_infer_types=bool(lift_config.get('csv_infer_types', defaults.csv_infer_types)),
        )


@dataclass(frozen=True)
class SemliftConfig:
    """Top-level configuration: cache, lift defaults and logging."""
    cache: CacheConfig = field(default_factory=CacheConfig.default)
    lift: LiftSettings = field(default_factory=LiftSettings)
    logging: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, Any]) -> 'SemliftConfig':
        """Create SemliftConfig from a dictionary."""
        if not isinstance(config_dict, Mapping):
            raise ConfigurationError(f"Configuration must be an object, got {type(config_dict).__name__}")
        logging_config = config_dict.get('logging') or {}
        if not isinstance(logging_config, Mapping):
            raise ConfigurationError("'logging' section must be an object")
        return cls(
            cache=CacheConfig.from_dict(config_dict.get('cache') or {}),
            lift=LiftSettings.from_dict(config_dict.get('lift') or {}),
            logging=dict(logging_config),
        )

    @classmethod
    def from_file(cls, config_path: str) -> 'SemliftConfig':
        """Load configuration from a JSON file."""
        if not config_path:
            raise ConfigurationError("config_path cannot be empty")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_dict = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file {config_path}: {e}")
        except UnicodeDecodeError as e:
            raise ConfigurationError(f"Encoding error reading {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading configuration file {config_path}: {e}")

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Configuration file must contain a JSON object, got {type(config_dict).__name__}"
            )
        return cls.from_dict(config_dict)

    def lift_options(self, **overrides: Any) -> LiftOptions:
        """LiftOptions from the ``lift`` section; keyword arguments win."""
        options = LiftOptions(
            base_iri=self.lift.base_iri,
            output=self.lift.output,
            strict=self.lift.strict,
            jq_binary=self.lift.jq_binary,
            csv_infer_types=self.lift.csv_infer_types,
        )
        return replace(options, **{k: v for k, v in overrides.items() if v is not None})


def load_config(config_path: Optional[str]) -> SemliftConfig:
    """Configuration from ``config_path``, or the defaults when no path is given."""
    if not config_path:
        return SemliftConfig()
    return SemliftConfig.from_file(config_path)
