"""
r2sql-shell - Interactive terminal client for R2 SQL

Browse an R2 Data Catalog (Apache Iceberg REST) and run read-only queries
against the R2 SQL service, with results shown as tables, lists or raw
metadata.
"""

__version__ = "0.1.0"

from r2sql.core.config import SessionConfig, load_config
from r2sql.core.types import QueryResult, TableMetadata

__all__ = ["__version__", "SessionConfig", "load_config", "QueryResult", "TableMetadata"]
