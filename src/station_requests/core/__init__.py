"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Database operations (SQLite / PostgreSQL)
- Logging (Loguru)
"""

from .config import (
    Config,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
)
from .database import (
    SCHEMA_VERSION,
    get_database_path,
    set_database_path,
    get_db_connection,
    init_database,
)
from .db_adapter import (
    get_requests_db_connection,
    init_postgres_schema,
    is_postgres,
)
from .logging import get_log_file_path, setup_logging

__all__ = [
    # Config
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    # Database
    "SCHEMA_VERSION",
    "get_database_path",
    "set_database_path",
    "get_db_connection",
    "init_database",
    "get_requests_db_connection",
    "init_postgres_schema",
    "is_postgres",
    # Logging
    "get_log_file_path",
    "setup_logging",
]
