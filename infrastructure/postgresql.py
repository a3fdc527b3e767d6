# ============================================================================
# POSTGRESQL CONNECTION INFRASTRUCTURE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Infrastructure - PostgreSQL connection handling
# PURPOSE: Database connectivity with managed identity support
# CREATED: 19 OCT 2026
# ============================================================================
"""
PostgreSQL Connection Infrastructure

Provides database connectivity for migrations:
- DATABASE_URL (explicit connection string)
- Managed identity authentication (Azure, optional azure-identity extra)
- Password authentication (development)
- Transaction context manager wrapping one migration

Authentication Priority:
1. DATABASE_URL
2. User-assigned managed identity (DB_ADMIN_MANAGED_IDENTITY_CLIENT_ID)
3. System-assigned managed identity (WEBSITE_SITE_NAME detected)
4. Password authentication (POSTGRES_PASSWORD - dev only)
"""

import os
import logging
import threading
from typing import Optional
from contextlib import contextmanager

import psycopg

from repositories.database import mask_connection_string

logger = logging.getLogger(__name__)


# ============================================================================
# POSTGRESQL REPOSITORY BASE
# ============================================================================

class PostgreSQLRepository:
    """
    Connection factory for PostgreSQL.

    Usage:
        repo = PostgreSQLRepository()
        with repo.transaction() as conn:
            adapter = PolymorphicAdapter.for_connection(conn)
            adapter.add_polymorphic_foreign_key("likes", "comments", column="likeable")
    """

    def __init__(self, connection_string: Optional[str] = None):
        """
        Args:
            connection_string: Optional explicit connection string
        """
        self._conn_string = connection_string
        self._conn_string_lock = threading.Lock()

    @property
    def conn_string(self) -> str:
        """Get or build connection string (lazy, thread-safe)."""
        if self._conn_string is None:
            with self._conn_string_lock:
                if self._conn_string is None:
                    self._conn_string = self._build_connection_string()
        return self._conn_string

    def _build_connection_string(self) -> str:
        """
        Build PostgreSQL connection string with authentication.

        Raises:
            ValueError: If neither DATABASE_URL nor host/database are set
        """
        if url := os.environ.get("DATABASE_URL"):
            return url

        host = os.environ.get("POSTGRES_HOST")
        port = os.environ.get("POSTGRES_PORT", "5432")
        database = os.environ.get("POSTGRES_DB")

        if not host or not database:
            raise ValueError(
                "Database connection not configured. "
                "Set DATABASE_URL, or POSTGRES_HOST and POSTGRES_DB."
            )

        use_managed_identity = os.environ.get("USE_MANAGED_IDENTITY", "").lower() == "true"
        client_id = os.environ.get("DB_ADMIN_MANAGED_IDENTITY_CLIENT_ID")
        identity_name = os.environ.get("DB_ADMIN_MANAGED_IDENTITY_NAME")

        # System-assigned identity inside Azure App Service
        is_azure = bool(os.environ.get("WEBSITE_SITE_NAME"))

        if use_managed_identity and identity_name:
            return self._build_managed_identity_connection_string(
                host=host,
                port=port,
                database=database,
                identity_name=identity_name,
                client_id=client_id,
            )
        elif is_azure and identity_name:
            return self._build_managed_identity_connection_string(
                host=host,
                port=port,
                database=database,
                identity_name=identity_name,
                client_id=None,
            )
        return self._build_password_connection_string(
            host=host,
            port=port,
            database=database,
        )

    def _build_managed_identity_connection_string(
        self,
        host: str,
        port: str,
        database: str,
        identity_name: str,
        client_id: Optional[str] = None,
    ) -> str:
        """Build connection string using Azure Managed Identity."""
        try:
            from azure.identity import ManagedIdentityCredential
        except ImportError:
            raise ImportError(
                "azure-identity package required for managed identity. "
                "Install with: pip install pg-morph[azure]"
            )

        try:
            if client_id:
                logger.debug("Acquiring token for user-assigned identity...")
                credential = ManagedIdentityCredential(client_id=client_id)
            else:
                logger.debug("Acquiring token for system-assigned identity...")
                credential = ManagedIdentityCredential()

            token = credential.get_token(
                "https://ossrdbms-aad.database.windows.net/.default"
            ).token
        except Exception as e:
            logger.error(f"Managed identity token acquisition failed: {e}")
            raise RuntimeError(f"Failed to acquire managed identity token: {e}")

        logger.debug("Token acquired successfully")
        return (
            f"host={host} "
            f"port={port} "
            f"dbname={database} "
            f"user={identity_name} "
            f"password={token} "
            f"sslmode=require"
        )

    def _build_password_connection_string(
        self,
        host: str,
        port: str,
        database: str,
    ) -> str:
        """Build password-based connection string (development)."""
        user = os.environ.get("POSTGRES_USER", "postgres")
        password = os.environ.get("POSTGRES_PASSWORD", "")
        sslmode = os.environ.get("POSTGRES_SSLMODE", "prefer")

        if not password:
            raise ValueError(
                "No authentication configured. "
                "Set USE_MANAGED_IDENTITY=true or provide POSTGRES_PASSWORD."
            )

        logger.debug(f"Password connection string built for {database}")
        return f"postgresql://{user}:{password}@{host}:{port}/{database}?sslmode={sslmode}"

    @contextmanager
    def get_connection(self):
        """
        Context manager for PostgreSQL connections.

        Yields:
            psycopg connection (autocommit off)
        """
        conn = None
        try:
            logger.debug(f"Connecting to PostgreSQL: {mask_connection_string(self.conn_string)}")
            conn = psycopg.connect(self.conn_string)
            logger.debug("PostgreSQL connection established")
            yield conn

        except psycopg.Error as e:
            logger.error(f"PostgreSQL connection error: {e}")
            if conn:
                conn.rollback()
            raise

        finally:
            if conn:
                conn.close()

    @contextmanager
    def transaction(self):
        """
        One connection, one transaction.

        Commits on success; any exception rolls back every statement
        issued inside the block, including registry updates.

        Usage:
            with repo.transaction() as conn:
                PostgresCatalog(conn).execute(script)
        """
        with self.get_connection() as conn:
            with conn.transaction():
                yield conn


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "PostgreSQLRepository",
]
