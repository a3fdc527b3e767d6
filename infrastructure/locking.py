# ============================================================================
# MIGRATION LOCKING SERVICE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Infrastructure - Concurrency control
# PURPOSE: PostgreSQL advisory locks serializing migrations per association
# CREATED: 19 OCT 2026
# ============================================================================
"""
Migration Locking Service

Two migrations on the same association must not interleave: both would
read the same PartitionSet and the second CREATE OR REPLACE FUNCTION
would silently drop the first one's branch.

Uses transaction-level PostgreSQL advisory locks:
- Released automatically at COMMIT / ROLLBACK
- Auto-release on disconnect (crash-safe)
- Non-blocking try variant for callers that prefer to fail fast

Usage:
    from infrastructure.locking import LockService

    locks = LockService(conn)
    with conn.transaction():
        locks.acquire_association_lock(association)
        catalog.execute(poly.add_sql())
"""

import hashlib
import logging

from core.models.partition import Association

logger = logging.getLogger(__name__)


class LockNotAcquired(Exception):
    """Raised when a non-blocking lock attempt fails."""
    pass


class LockService:
    """
    PostgreSQL advisory locks keyed by association.

    All locks are transaction-scoped, so they must be taken inside the
    transaction that applies the generated script.
    """

    def __init__(self, conn, namespace: str = "pg_morph"):
        """
        Args:
            conn: Open psycopg connection
            namespace: Prefix hashed into every lock key
        """
        self.conn = conn
        self.namespace = namespace

    @staticmethod
    def _hash_to_lock_id(key: str) -> int:
        """
        Convert string key to int64 for PostgreSQL advisory lock.

        Returns:
            Signed int64 suitable for pg_advisory_xact_lock
        """
        # First 8 bytes of SHA256, interpreted as signed int64
        h = hashlib.sha256(key.encode()).digest()[:8]
        return int.from_bytes(h, byteorder="big", signed=True)

    def lock_key(self, association: Association) -> str:
        return f"{self.namespace}:{association.key}"

    def lock_id(self, association: Association) -> int:
        return self._hash_to_lock_id(self.lock_key(association))

    def acquire_association_lock(self, association: Association) -> None:
        """Block until the association's transaction lock is held."""
        lock_id = self.lock_id(association)
        with self.conn.cursor() as cur:
            cur.execute("SELECT pg_advisory_xact_lock(%s)", (lock_id,))
        logger.debug(f"Acquired migration lock for {association.key} (lock_id={lock_id})")

    def try_acquire_association_lock(self, association: Association) -> bool:
        """
        Try to take the association's transaction lock without waiting.

        Returns:
            True if acquired, False if another migration holds it
        """
        lock_id = self.lock_id(association)
        with self.conn.cursor() as cur:
            cur.execute("SELECT pg_try_advisory_xact_lock(%s)", (lock_id,))
            row = cur.fetchone()

        # Handle both dict_row and tuple row factories
        if row:
            acquired = row["pg_try_advisory_xact_lock"] if hasattr(row, "keys") else row[0]
        else:
            acquired = False

        if acquired:
            logger.debug(f"Acquired migration lock for {association.key} (lock_id={lock_id})")
        else:
            logger.warning(
                f"Migration lock for {association.key} is held by another session"
            )
        return bool(acquired)

    def require_association_lock(self, association: Association) -> None:
        """
        Non-blocking acquire that raises instead of returning False.

        Raises:
            LockNotAcquired: If another migration holds the lock
        """
        if not self.try_acquire_association_lock(association):
            raise LockNotAcquired(
                f"Another migration is running for {association.key}"
            )


__all__ = ["LockService", "LockNotAcquired"]
