from .schema import SCHEMA_SQL, INDEXES_SQL, FUNCTIONS_SQL
from .client import get_admin_client, reset_admin_client
from .postgres import (
    get_postgres_connection,
    get_database_url,
    check_table_exists,
    missing_tables,
    apply_schema,
)

__all__ = [
    "SCHEMA_SQL",
    "INDEXES_SQL",
    "FUNCTIONS_SQL",
    "get_admin_client",
    "reset_admin_client",
    "get_postgres_connection",
    "get_database_url",
    "check_table_exists",
    "missing_tables",
    "apply_schema",
]
