"""
Centralized configuration constants for Semantic Lift.

This module provides a single source of truth for default values, step type
names and limits used throughout the application.
"""

from enum import IntEnum
from typing import Final

# ============================================================================
# Exit Codes
# ============================================================================

class ExitCode(IntEnum):
    """Standard exit codes for CLI commands.
    
    Following Unix conventions:
    - 0: Success
    - 1: General error
    - 2: Validation error (schema, id rule, SHACL)
    - 3+: Specific error categories
    """
    SUCCESS = 0
    ERROR = 1
    VALIDATION_ERROR = 2
    CONFIG_ERROR = 3
    FETCH_ERROR = 4
    FILE_NOT_FOUND = 5
    EXTERNAL_PROCESS_ERROR = 6
    CANCELLED = 7


# ============================================================================
# Lift Defaults
# ============================================================================

class LiftDefaults:
    """Defaults for a lift invocation."""
    
    BASE_IRI: Final[str] = "urn:base:"
    """Base IRI handed to the JSON-LD parser."""
    
    JQ_BINARY: Final[str] = "jq"
    """Name or path of the external jq interpreter."""
    
    RELATIONAL_FETCH_SIZE: Final[int] = 1000
    """Rows fetched per cursor batch."""
    
    CSV_INFER_TYPES: Final[bool] = True
    """Coerce CSV cells to booleans and numbers."""


# ============================================================================
# Cache Defaults
# ============================================================================

class CacheDefaults:
    """On-disk resource cache defaults."""
    
    DIRECTORY_NAME: Final[str] = ".semlift/cache"
    """Cache directory, relative to the user's home."""
    
    ENV_DIRECTORY: Final[str] = "SEMLIFT_CACHE_DIR"
    """Environment variable overriding the cache directory."""
    
    TTL_SECONDS: Final[int] = 24 * 60 * 60
    """Entries younger than this are served without network access."""
    
    STALE_IF_ERROR: Final[bool] = True
    """Serve stale bytes when revalidation fails."""
    
    CONNECT_TIMEOUT_SECONDS: Final[float] = 10.0
    """HTTP connect timeout."""
    
    READ_TIMEOUT_SECONDS: Final[float] = 20.0
    """HTTP read timeout."""
    
    DATA_SUFFIX: Final[str] = ".data"
    META_SUFFIX: Final[str] = ".meta"


# ============================================================================
# API Protocol Configuration
# ============================================================================

class ApiDefaults:
    """API protocol client defaults."""
    
    TIMEOUT_SECONDS: Final[int] = 30
    """Default HTTP request timeout."""
    
    MAX_RETRY_ATTEMPTS: Final[int] = 5
    """Attempts for transient (429/503/network) failures."""
    
    MAX_PAGES: Final[int] = 10000
    """Upper bound on followed pages for a single fetch."""
    
    WFS_VERSION: Final[str] = "2.0.0"
    WFS_OUTPUT_FORMAT: Final[str] = "application/json"
    
    DEFAULT_RECORD_PATH: Final[str] = "features"
    """Where feature-collection responses keep their records."""


# ============================================================================
# Step Types
# ============================================================================

class StepTypes:
    """Step type names used in plan documents and diagnostics."""
    
    NATIVE_TRANSFORM: Final[str] = "native-transform"
    JQ: Final[str] = "jq"
    JSON_SCHEMA: Final[str] = "json-schema"
    ID_RULES: Final[str] = "id-rules"
    SHACL: Final[str] = "shacl"
    SPARQL_CONSTRUCT: Final[str] = "sparql-construct"
    SPARQL_UPDATE: Final[str] = "sparql-update"
    
    NATIVE_TRANSFORM_ALIASES: Final[tuple] = ("native-transform", "python")


# ============================================================================
# SHACL Generation
# ============================================================================

class ShaclDefaults:
    """Namespaces used by the schema-to-shape compiler."""
    
    TARGET_NAMESPACE: Final[str] = "urn:semlift:shape#"
    """Namespace for generated shape IRIs."""
    
    ROOT_SHAPE_NAME: Final[str] = "Root"
    """Root shape local name when neither config nor schema title gives one."""


# ============================================================================
# Logging
# ============================================================================

class LoggingConfig:
    """Logging configuration."""
    
    DEFAULT_LOG_LEVEL: Final[str] = "INFO"
    """Default logging level."""
    
    LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    """Default log format string."""
    
    DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
    """Default date format for logs."""

    DEFAULT_FORMAT_STYLE: Final[str] = "text"
    """Human-readable formatter style."""

    JSON_DATE_FORMAT: Final[str] = "%Y-%m-%dT%H:%M:%S.%fZ"
    """ISO-8601 timestamp format for structured logs."""
    
    SUPPORTED_FORMATS: Final[tuple] = ("text", "json")
    """Supported formatter styles."""
    
    MAX_LOG_FILE_MB: Final[int] = 10
    """Maximum log file size before rotation (MB)."""
    
    LOG_BACKUP_COUNT: Final[int] = 5
    """Number of backup log files to keep."""

    ROTATION_ENABLED: Final[bool] = True
    """Rotate log files by size when a log file is configured."""
