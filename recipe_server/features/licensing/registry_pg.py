"""
PostgreSQL-backed license registry.

Same interface as InMemoryLicenseRegistry. Rows are looked up by key digest
and never deleted: revocation and expiry only change `status`.
"""
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import insert, select, update

from recipe_server.core.config import settings
from recipe_server.core.database import get_db_session, licenses
from recipe_server.core.errors import LicenseRegistryUnavailableError
from recipe_server.core.retry import retrying
from recipe_server.features.licensing.registry import (
    display_prefix,
    generate_license_key,
    hash_license_key,
    normalize_scope,
)
from recipe_server.models.license import License, LicenseStatus


def _row_to_license(row) -> License:
    return License(
        key_hash=row.key_hash,
        key_prefix=row.key_prefix,
        status=row.status,
        scope=row.scope,
        expires_at=row.expires_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class PostgresLicenseRegistry:
    """License registry over the `licenses` table with bounded I/O retries."""

    def __init__(self, *, retry_attempts: Optional[int] = None, retry_backoff_seconds: Optional[float] = None):
        self.retry_attempts = retry_attempts if retry_attempts is not None else settings.IO_RETRY_ATTEMPTS
        self.retry_backoff_seconds = (
            retry_backoff_seconds if retry_backoff_seconds is not None else settings.IO_RETRY_BACKOFF_SECONDS
        )

    @retrying("licenses.lookup", LicenseRegistryUnavailableError)
    def lookup(self, key: str) -> Optional[License]:
        with get_db_session() as session:
            row = session.execute(
                select(licenses).where(licenses.c.key_hash == hash_license_key(key)).limit(1)
            ).fetchone()
        return _row_to_license(row) if row else None

    @retrying("licenses.issue", LicenseRegistryUnavailableError)
    def issue(self, scope: str, *, expires_at: Optional[datetime] = None) -> Tuple[License, str]:
        key = generate_license_key()
        now = datetime.now(timezone.utc)
        values = {
            "key_hash": hash_license_key(key),
            "key_prefix": display_prefix(key),
            "status": LicenseStatus.ACTIVE.value,
            "scope": normalize_scope(scope),
            "expires_at": expires_at,
            "created_at": now,
            "updated_at": now,
        }
        with get_db_session() as session:
            session.execute(insert(licenses).values(**values))
            session.commit()
        return License(**values), key

    def _set_status(self, key: str, status: LicenseStatus) -> bool:
        with get_db_session() as session:
            result = session.execute(
                update(licenses)
                .where(licenses.c.key_hash == hash_license_key(key))
                .values(status=status.value, updated_at=datetime.now(timezone.utc))
            )
            session.commit()
            return result.rowcount > 0

    @retrying("licenses.revoke", LicenseRegistryUnavailableError)
    def revoke(self, key: str) -> bool:
        return self._set_status(key, LicenseStatus.REVOKED)

    @retrying("licenses.expire", LicenseRegistryUnavailableError)
    def expire(self, key: str) -> bool:
        return self._set_status(key, LicenseStatus.EXPIRED)
