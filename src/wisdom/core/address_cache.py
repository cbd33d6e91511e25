# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Entity UUID to Address resolution.

An entity's true address is only known from a gateway response, because
it may live on a hub other than the configured default. Every read and
create path therefore feeds what it sees into this cache, and references
to entities are resolved here first.

On a miss the cache synthesizes a best-effort address from the configured
hub host, without any network call.
"""

from __future__ import annotations

import logging
from typing import Any

from ..gateway.types import Address, AddressDomain
from .lru_cache import DEFAULT_CACHE_MAX_SIZE, LRUDict

logger = logging.getLogger(__name__)

# Fields of gateway entities that hold Address values
_ADDRESS_FIELDS = ("creator", "transform", "from", "to", "by", "agent", "voter")
_ADDRESS_LIST_FIELDS = ("tags",)


class AddressCache:
    """Bounded LRU map from entity UUID to its observed Address."""

    def __init__(self, max_size: int = DEFAULT_CACHE_MAX_SIZE) -> None:
        self._entries: LRUDict[str, Address] = LRUDict(max_size=max_size)

    @property
    def max_size(self) -> int:
        return self._entries.max_size

    def put(self, uuid: str, address: Address) -> None:
        """Insert or refresh ``uuid``, making it most recently used."""
        self._entries[uuid.lower()] = address

    def get(self, uuid: str, domain: AddressDomain | str, hub_host: str | None = None) -> Address:
        """Resolve ``uuid``.

        A cached address is returned unchanged, whatever ``domain`` and
        ``hub_host`` say. On a miss the address is synthesized: local
        without a hub host, hub-qualified with one.
        """
        cached = self._entries.get(uuid.lower())
        if cached is not None:
            return cached
        if hub_host:
            return Address.hub(hub_host, domain, uuid)
        return Address.local(domain, uuid)

    def has(self, uuid: str) -> bool:
        return uuid.lower() in self._entries

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, uuid: object) -> bool:
        return isinstance(uuid, str) and self.has(uuid)

    def stats(self) -> dict[str, Any]:
        return self._entries.stats()

    def observe_address(self, value: Address | dict[str, Any] | str | None) -> None:
        """Cache one address, ignoring values that are not well-formed."""
        if not value:
            return
        try:
            address = Address.coerce(value)
        except (ValueError, KeyError, TypeError) as e:
            logger.debug(f"Ignoring malformed address {value!r}: {e}")
            return
        self.put(address.entity, address)

    def observe(self, entity: Any) -> None:
        """Cache the addresses carried by a gateway entity.

        Accepts an entity dataclass or its dict form. The entity's own
        ``address`` is cached along with every Address embedded in it.
        """
        data = entity.to_dict() if hasattr(entity, "to_dict") else entity
        if not isinstance(data, dict):
            return
        self.observe_address(data.get("address"))
        for key in _ADDRESS_FIELDS:
            self.observe_address(data.get(key))
        for key in _ADDRESS_LIST_FIELDS:
            values = data.get(key)
            if isinstance(values, list):
                for value in values:
                    if isinstance(value, dict):
                        self.observe_address(value)

    def observe_all(self, entities: list[Any]) -> None:
        for entity in entities:
            self.observe(entity)
