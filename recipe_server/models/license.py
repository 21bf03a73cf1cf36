"""
recipe_server/models/license.py

License keys and the entitlement decisions derived from them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class LicenseStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


class License(BaseModel):
    """
    A purchased license as stored in the registry.

    The full key is never stored; `key_hash` is its SHA-256 digest and
    `key_prefix` a short display form for logs and admin output.

    `scope` names the recipe pack major versions the key covers: a
    comma-separated list of majors ("1", "1,2") or "*" for every version.
    """
    model_config = ConfigDict(frozen=True)

    key_hash: str
    key_prefix: str
    status: LicenseStatus = LicenseStatus.ACTIVE
    scope: str
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        """Active and not past its expiry timestamp."""
        if self.status != LicenseStatus.ACTIVE:
            return False
        if self.expires_at is None:
            return True
        current = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at > current


class EntitlementReason(str, Enum):
    NO_KEY_PROVIDED = "no-key-provided"
    KEY_INVALID = "key-invalid"
    KEY_EXPIRED = "key-expired"
    TIER_FREE = "tier-free"
    TIER_COVERED = "tier-covered"


class EntitlementDecision(BaseModel):
    """Derived yes/no for whether a credential unlocks pro content. Not persisted."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: EntitlementReason

    @classmethod
    def deny(cls, reason: EntitlementReason) -> "EntitlementDecision":
        return cls(allowed=False, reason=reason)

    @classmethod
    def covered(cls) -> "EntitlementDecision":
        return cls(allowed=True, reason=EntitlementReason.TIER_COVERED)
