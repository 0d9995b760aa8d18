"""Redis-backed cache for smart rule results.

Entries carry their own expiry timestamp so a stale read is detected even if
the backend has not evicted the key yet. Every backend failure is logged and
treated as a miss; the cache never fails a rule execution.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import redis.asyncio as redis
from pydantic import TypeAdapter

from storefront.config import settings
from storefront.models.product import ResolvedProduct
from storefront.models.rule import RuleConfig

logger = logging.getLogger(__name__)

_PRODUCTS = TypeAdapter(list[ResolvedProduct])


def params_hash(params: Mapping[str, Any] | None) -> str:
    """Stable digest of execution parameters, independent of key order."""

    encoded = json.dumps(params or {}, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


class RuleCache:
    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._prefix = prefix or settings.RULE_CACHE_PREFIX
        self._clock = clock

    def rule_key(
        self,
        organization_id: str,
        rule_id: str,
        params: Mapping[str, Any] | None = None,
    ) -> str:
        return f"{self._prefix}:{organization_id}:{rule_id}:{params_hash(params)}"

    def adhoc_key(self, organization_id: str, config: RuleConfig) -> str:
        return (
            f"{self._prefix}:adhoc:{organization_id}:"
            f"{params_hash(config.model_dump(mode='json'))}"
        )

    async def get(self, key: str) -> list[ResolvedProduct] | None:
        try:
            raw = await self._client.get(key)
            if raw is None:
                return None
            entry = json.loads(raw)
            if self._clock() >= float(entry["expires_at"]):
                logger.debug("Cache entry %s expired", key)
                return None
            return _PRODUCTS.validate_python(entry["data"])
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Rule cache read failed for %s: %s", key, exc)
            return None

    async def set(
        self, key: str, products: Sequence[ResolvedProduct], ttl_seconds: int
    ) -> bool:
        now = self._clock()
        entry = {
            "data": [product.model_dump(mode="json") for product in products],
            "cached_at": now,
            "expires_at": now + ttl_seconds,
        }
        try:
            await self._client.set(key, json.dumps(entry), ex=max(int(ttl_seconds), 1))
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Rule cache write failed for %s: %s", key, exc)
            return False
        return True

    async def invalidate_rule(self, organization_id: str, rule_id: str) -> int:
        """Drop every cached result of one rule, whatever its parameters."""

        pattern = f"{self._prefix}:{organization_id}:{rule_id}:*"
        removed = 0
        try:
            async for key in self._client.scan_iter(match=pattern):
                removed += await self._client.delete(key)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Rule cache invalidation failed for %s: %s", rule_id, exc)
        logger.info("Invalidated %s cache entries for rule %s", removed, rule_id)
        return removed
