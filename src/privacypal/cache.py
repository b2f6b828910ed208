"""Per-domain PolicyRecord cache over LocalStorage.

All cache operations catch ``StorageError`` internally and degrade
gracefully: read failures return ``None`` (treated as cache miss by callers),
write failures are logged and reported as ``False``. Storage errors never
cross the PolicyCache boundary, so the router keeps answering messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from privacypal.errors import StorageError
from privacypal.models.policy import PolicyRecord

if TYPE_CHECKING:
    from collections.abc import Callable

    from privacypal.protocols import StorageProtocol
    from privacypal.storage import StorageChange

log = structlog.get_logger()


def _decode(domain: str, value: Any) -> PolicyRecord | None:
    if value is None:
        return None
    try:
        return PolicyRecord.model_validate(value)
    except ValidationError:
        log.warning("cache_record_invalid", domain=domain, exc_info=True)
        return None


class PolicyCache:
    """Durable Domain → PolicyRecord mapping implementing CacheProtocol."""

    def __init__(self, storage: StorageProtocol) -> None:
        self._storage = storage

    async def get(self, domain: str) -> PolicyRecord | None:
        """Read the record for ``domain``. Returns ``None`` on miss or read failure."""
        if not domain:
            return None
        try:
            value = await self._storage.get(domain)
        except StorageError:
            log.warning("cache_read_error", domain=domain, exc_info=True)
            return None
        return _decode(domain, value)

    async def upsert(self, domain: str, record: PolicyRecord) -> bool:
        """Overwrite the record for ``domain``. Non-fatal on failure.

        Returns True when the write reached storage.
        """
        if not domain:
            log.warning("cache_write_skipped", reason="empty_domain", url=record.url)
            return False
        try:
            await self._storage.set(domain, record.model_dump(mode="json"))
        except StorageError:
            log.warning("cache_write_error", domain=domain, exc_info=True)
            return False
        log.info("policy_stored", domain=domain, url=record.url, timestamp=record.timestamp)
        return True

    def subscribe(
        self,
        listener: Callable[[str, PolicyRecord | None, PolicyRecord | None], None],
    ) -> Callable[[], None]:
        """Call ``listener(domain, old, new)`` for every changed domain.

        Returns the unsubscribe callable from the storage change feed.
        """

        def on_changed(changes: dict[str, StorageChange]) -> None:
            for domain, change in changes.items():
                listener(
                    domain,
                    _decode(domain, change.old_value),
                    _decode(domain, change.new_value),
                )

        return self._storage.on_changed(on_changed)
