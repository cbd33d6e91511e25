# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Explicit context handed to every tool handler.

Holds the loaded configuration, the gateway client, the signing key, the
address cache and the session state. Handlers receive it as an argument;
nothing here is module-global, so tests build a context around a fake
gateway and a temporary directory.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..core.address_cache import AddressCache
from ..core.config import (
    LoadedConfig,
    WisdomConfig,
    load_config,
    merge_config,
    preferred_config_path,
    save_config,
)
from ..core.exceptions import GatewayError, GatewayNotFoundError, PreconditionError
from ..core.payloads import PayloadBuilder
from ..core.response import WisdomResponse, err, not_found, ok
from ..core.state import SessionState
from ..crypto.keys import KeyManager
from ..gateway.client import GatewayClient
from ..gateway.types import Address, AddressDomain

logger = logging.getLogger(__name__)

KEYPAIR_REMEDY = "wisdom_generate_keypair"

SAVE_TO_PROJECT = "project"
SAVE_TO_GLOBAL = "global"


class ServerContext:
    """Shared dependencies of one server process."""

    def __init__(
        self,
        loaded: LoadedConfig,
        gateway: GatewayClient | None = None,
        cache: AddressCache | None = None,
        state: SessionState | None = None,
        loader: Callable[[], LoadedConfig] = load_config,
    ):
        self.loaded = loaded
        self.gateway = gateway or GatewayClient(loaded.config.gateway_url, timeout=loaded.config.timeout)
        self.keys = KeyManager(loaded.config)
        self.cache = cache or AddressCache(max_size=loaded.config.cache_max_size)
        self.state = state or SessionState(loaded.paths.project_root)
        self._loader = loader

    @classmethod
    def create(cls, start_dir: Path | str | None = None) -> ServerContext:
        return cls(load_config(start_dir), loader=lambda: load_config(start_dir))

    @property
    def config(self) -> WisdomConfig:
        return self.loaded.config

    # -- Configuration -----------------------------------------------------

    def _apply(self) -> None:
        self.gateway.set_base_url(self.config.gateway_url)
        self.gateway.timeout = self.config.timeout
        self.keys.set_config(self.config)

    def reload_config(self) -> None:
        """Re-read configuration from disk and environment."""
        self.loaded = self._loader()
        self._apply()
        logger.info(f"Configuration reloaded (gateway {self.config.gateway_url})")

    def config_path(self, save_to: str | None = None) -> Path:
        """Target file for persisted updates."""
        paths = self.loaded.paths
        if save_to == SAVE_TO_GLOBAL:
            return paths.global_config
        if save_to == SAVE_TO_PROJECT and paths.project_config:
            return paths.project_config
        return preferred_config_path(paths)

    def update_config(self, updates: dict[str, Any], persist: bool = False, save_to: str | None = None) -> Path | None:
        """Apply ``updates`` in memory and optionally persist them.

        A None value clears the setting. Returns the file written, if any.

        Raises:
            ValidationException: If the updated configuration is invalid.
            ConfigException: If persisting fails.
        """
        self.loaded.config = merge_config(self.config, updates)
        self._apply()
        if "current_project" in updates:
            self.state.set_current_project(self.config.current_project)

        if not persist:
            return None
        path = self.config_path(save_to)
        save_config(updates, path)
        logger.info(f"Saved {sorted(updates)} to {path}")
        return path

    # -- Preconditions -----------------------------------------------------

    def require_agent(self) -> str:
        """
        Raises:
            PreconditionError: If no agent UUID is configured.
        """
        if not self.config.agent_uuid:
            raise PreconditionError("No agent configured.", remedy=KEYPAIR_REMEDY)
        return self.config.agent_uuid

    def require_signer(self) -> tuple[PayloadBuilder, bytes]:
        """Builder for the configured agent plus its private key.

        Raises:
            PreconditionError: If the key or the agent is missing.
        """
        private_key = self.keys.get_private_key()
        agent_uuid = self.require_agent()
        return self.builder(agent_uuid), private_key

    def builder(self, agent_uuid: str) -> PayloadBuilder:
        return PayloadBuilder(self.cache, agent_uuid, self.config.hub_host)

    def current_project(self, explicit: str | None = None) -> str | None:
        return explicit or self.config.current_project or self.state.current_project

    # -- Address resolution ------------------------------------------------

    def resolve(self, entity_uuid: str, domain: AddressDomain) -> Address:
        return self.cache.get(entity_uuid, domain, self.config.hub_host)

    def remember(self, *entities: Any) -> None:
        """Feed entities returned by the gateway into the address cache."""
        for entity in entities:
            self.cache.observe(entity)

    # -- Best-effort lookups -----------------------------------------------

    def lookup(self, fetch: Callable[[str], Any], uuid: str, kind: str) -> WisdomResponse:
        """Fetch an entity, reporting not-found and failure without raising."""
        try:
            entity = fetch(uuid)
        except GatewayNotFoundError:
            return not_found(f"{kind} {uuid} not found")
        except GatewayError as e:
            return err(f"{kind} {uuid} could not be loaded: {e.message}")
        self.remember(entity)
        return ok(entity)

    def lookup_fragment(self, uuid: str) -> WisdomResponse:
        return self.lookup(self.gateway.get_fragment, uuid, "Fragment")

    def transform_spec(self, transform_uuid: str | None = None, domain: str | None = None) -> str | None:
        """Transform specification (``additional_data``) to guide a delegation.

        Falls back to no specification when the transform cannot be found,
        logging whether it was missing or the lookup failed.
        """
        if transform_uuid:
            result = self.lookup(self.gateway.get_transform, transform_uuid, "Transform")
            if result.success:
                return result.data.additional_data or None
            if result.not_found:
                logger.info(f"{result.error}, using default transform")
            else:
                logger.warning(f"{result.error}, using default transform")
            return None

        if domain:
            try:
                page = self.gateway.list_transforms(domain=domain, limit=1)
            except GatewayError as e:
                logger.warning(f"Could not list transforms for domain {domain!r}, using default: {e.message}")
                return None
            if not page.items:
                logger.info(f"No transform for domain {domain!r}, using default")
                return None
            self.remember(page.items[0])
            return page.items[0].additional_data or None

        return None
