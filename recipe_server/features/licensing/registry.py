"""
License registry interface, key helpers and the in-memory registry.

Keys follow the format sk-<urlsafe random>. Only the SHA-256 digest of a key
is kept; the full key is shown once, at issue time.
"""
import hashlib
import secrets
import threading
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol, Tuple

from recipe_server.models.license import License, LicenseStatus


KEY_PREFIX = "sk-"
KEY_DISPLAY_LENGTH = 10


def generate_license_key() -> str:
    """Generate a new license key: sk-<32 random bytes, urlsafe base64>."""
    return f"{KEY_PREFIX}{secrets.token_urlsafe(32)}"


def hash_license_key(key: str) -> str:
    # surrogatepass keeps lone surrogates from client JSON hashable
    return hashlib.sha256(key.encode("utf-8", "surrogatepass")).hexdigest()


def display_prefix(key: str) -> str:
    return key[:KEY_DISPLAY_LENGTH]


def normalize_scope(scope: str) -> str:
    """Canonical scope string: '*' or sorted unique majors, e.g. '1,2'."""
    parts = {part.strip() for part in (scope or "").split(",") if part.strip()}
    if not parts:
        raise ValueError("license scope cannot be empty")
    if "*" in parts:
        return "*"
    for part in parts:
        if not part.isdigit():
            raise ValueError(f"invalid scope component: {part!r}")
    return ",".join(sorted(parts, key=int))


def pack_major(pack_version: str) -> str:
    """Major component of a recipe pack version ('1.4.0' -> '1')."""
    return str(pack_version).strip().lstrip("vV").split(".")[0]


def scope_covers(scope: str, pack_version: str) -> bool:
    """True when a license scope entitles the given recipe pack version."""
    parts = {part.strip() for part in (scope or "").split(",") if part.strip()}
    return "*" in parts or pack_major(pack_version) in parts


class LicenseRegistry(Protocol):
    """
    Protocol for license registries.

    `lookup` returns None for unknown keys. Transient backend failures raise
    LicenseRegistryUnavailableError after bounded retries.
    """

    def lookup(self, key: str) -> Optional[License]:
        ...

    def issue(self, scope: str, *, expires_at: Optional[datetime] = None) -> Tuple[License, str]:
        """Create a license. Returns (license, full_key); the full key is not recoverable later."""
        ...

    def revoke(self, key: str) -> bool:
        ...

    def expire(self, key: str) -> bool:
        ...


class InMemoryLicenseRegistry:
    """Dictionary-backed registry for development and tests."""

    def __init__(self):
        self._licenses: Dict[str, License] = {}
        self._lock = threading.Lock()

    def register(
        self,
        key: str,
        scope: str = "*",
        *,
        status: LicenseStatus = LicenseStatus.ACTIVE,
        expires_at: Optional[datetime] = None,
    ) -> License:
        """Register a known key (dev keys, fixtures)."""
        now = datetime.now(timezone.utc)
        license = License(
            key_hash=hash_license_key(key),
            key_prefix=display_prefix(key),
            status=status,
            scope=normalize_scope(scope),
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._licenses[license.key_hash] = license
        return license

    def lookup(self, key: str) -> Optional[License]:
        return self._licenses.get(hash_license_key(key))

    def issue(self, scope: str, *, expires_at: Optional[datetime] = None) -> Tuple[License, str]:
        key = generate_license_key()
        return self.register(key, scope, expires_at=expires_at), key

    def _set_status(self, key: str, status: LicenseStatus) -> bool:
        key_hash = hash_license_key(key)
        with self._lock:
            current = self._licenses.get(key_hash)
            if current is None:
                return False
            self._licenses[key_hash] = current.model_copy(
                update={"status": status, "updated_at": datetime.now(timezone.utc)}
            )
            return True

    def revoke(self, key: str) -> bool:
        return self._set_status(key, LicenseStatus.REVOKED)

    def expire(self, key: str) -> bool:
        return self._set_status(key, LicenseStatus.EXPIRED)
