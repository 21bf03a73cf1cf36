"""
License validation: credential in, entitlement decision out.

Decisions:
- no credential             -> no-key-provided
- unknown key               -> key-invalid
- revoked / expired / past expires_at / scope not covering the pack
                            -> key-expired (the remedy is the same: a new key)
- active and in scope       -> tier-covered (allowed)

Decisions may be cached for `cache_ttl_seconds`, which bounds how long a
revocation can go unnoticed. Keys revoked from another process (the admin
CLI) take effect here within one TTL. At most `cache_max_entries` decisions
are held; expired entries are swept first, then the oldest are evicted.
Registry failures are never cached.
"""
import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from recipe_server.core.logging import key_prefix
from recipe_server.features.licensing.registry import LicenseRegistry, hash_license_key, scope_covers
from recipe_server.models.license import EntitlementDecision, EntitlementReason


logger = logging.getLogger(__name__)

DEFAULT_CACHE_MAX_ENTRIES = 10_000


class LicenseValidator:
    def __init__(
        self,
        registry: LicenseRegistry,
        *,
        pack_version: str,
        cache_ttl_seconds: float = 0.0,
        cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        time_fn: Callable[[], float] = time.monotonic,
    ):
        self.registry = registry
        self.pack_version = pack_version
        self.cache_ttl_seconds = max(0.0, cache_ttl_seconds)
        self.cache_max_entries = max(1, cache_max_entries)
        self.time_fn = time_fn
        self._cache: Dict[str, Tuple[EntitlementDecision, float]] = {}
        self._lock = threading.Lock()

    def validate(self, credential: Optional[str]) -> EntitlementDecision:
        if credential is None or not credential.strip():
            return EntitlementDecision.deny(EntitlementReason.NO_KEY_PROVIDED)

        credential = credential.strip()
        cache_key = hash_license_key(credential)
        cached = self._cached(cache_key)
        if cached is not None:
            return cached

        # LicenseRegistryUnavailableError propagates; callers fail closed
        decision = self._decide(credential)
        self._store(cache_key, decision)

        logger.info(
            "license.validate",
            extra={"key_prefix": key_prefix(credential), "reason": decision.reason.value},
        )
        return decision

    def _decide(self, credential: str) -> EntitlementDecision:
        license = self.registry.lookup(credential)
        if license is None:
            return EntitlementDecision.deny(EntitlementReason.KEY_INVALID)
        if not license.is_usable():
            return EntitlementDecision.deny(EntitlementReason.KEY_EXPIRED)
        if not scope_covers(license.scope, self.pack_version):
            return EntitlementDecision.deny(EntitlementReason.KEY_EXPIRED)
        return EntitlementDecision.covered()

    def _cached(self, cache_key: str) -> Optional[EntitlementDecision]:
        if self.cache_ttl_seconds <= 0:
            return None
        with self._lock:
            entry = self._cache.get(cache_key)
            if entry is None:
                return None
            decision, stored_at = entry
            if self.time_fn() - stored_at >= self.cache_ttl_seconds:
                del self._cache[cache_key]
                return None
            return decision

    def _store(self, cache_key: str, decision: EntitlementDecision) -> None:
        if self.cache_ttl_seconds <= 0:
            return
        with self._lock:
            now = self.time_fn()
            self._cache.pop(cache_key, None)
            if len(self._cache) >= self.cache_max_entries:
                self._evict(now)
            self._cache[cache_key] = (decision, now)

    def _evict(self, now: float) -> None:
        # Entries are kept in insertion order, so the oldest come first
        expired = [k for k, (_, stored_at) in self._cache.items() if now - stored_at >= self.cache_ttl_seconds]
        for k in expired:
            del self._cache[k]
        while len(self._cache) >= self.cache_max_entries:
            del self._cache[next(iter(self._cache))]
