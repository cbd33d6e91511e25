# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""HTTP client for the shared-wisdom gateway API.

Every tool that touches the network goes through this module. Failures are
raised as GatewayError subclasses and never retried here. The hub's
capacity signal (``X-Hub-Status`` / ``X-Hub-Hint`` response headers) is
captured from every response so the server can relay it to the caller.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..core.exceptions import GatewayConnectionError, GatewayError, GatewayNotFoundError
from .types import (
    Agent,
    Fragment,
    HubStatus,
    Page,
    Project,
    Relation,
    ResourceLevel,
    Tag,
    Transform,
    TrustVote,
)

logger = logging.getLogger(__name__)

HUB_STATUS_HEADER = "X-Hub-Status"
HUB_HINT_HEADER = "X-Hub-Hint"

CRITICAL_WARNING = "⚠️ WARNING: Hub at critical capacity. Some operations may be restricted."
LOW_RESOURCES_NOTICE = "⚠️ NOTICE: Hub resources are running low."

# Upper bound on pages walked when looking a tag up by name
MAX_TAG_PAGES = 10


class GatewayClient:
    """Thin synchronous client for the gateway REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.last_hub_status: HubStatus | None = None

    def set_base_url(self, url: str) -> None:
        self.base_url = url.rstrip("/")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _handle_response(self, resp: httpx.Response) -> Any:
        """Parse response, raise GatewayError on failure."""
        if resp.status_code >= 400:
            message = f"Gateway error: {resp.status_code} {resp.reason_phrase}".rstrip()
            text = resp.text
            try:
                body = json.loads(text)
                if isinstance(body, dict):
                    message = body.get("message") or body.get("error") or message
            except json.JSONDecodeError:
                if text:
                    message = text
            if resp.status_code == 404:
                raise GatewayNotFoundError(message, status_code=404)
            raise GatewayError(message, status_code=resp.status_code)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except json.JSONDecodeError:
            raise GatewayError(
                f"Gateway returned invalid JSON: {resp.text[:200]}", status_code=resp.status_code
            ) from None

    def _update_hub_status(self, resp: httpx.Response) -> None:
        level = resp.headers.get(HUB_STATUS_HEADER)
        if not level:
            self.last_hub_status = None
            return
        try:
            resource_level = ResourceLevel(level.strip().lower())
        except ValueError:
            logger.debug(f"Ignoring unknown hub status {level!r}")
            self.last_hub_status = None
            return
        self.last_hub_status = HubStatus(level=resource_level, hint=resp.headers.get(HUB_HINT_HEADER) or None)
        if resource_level is not ResourceLevel.NORMAL:
            logger.info(f"Hub reports {resource_level.value} resource level")

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | list[tuple[str, Any]] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Execute an HTTP request with connection error handling."""
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.request(method, url, params=params, json=body)
        except httpx.ConnectError as e:
            raise GatewayConnectionError(self.base_url, str(e)) from e
        except httpx.TimeoutException as e:
            raise GatewayConnectionError(self.base_url, "request timed out") from e
        except httpx.HTTPError as e:
            raise GatewayConnectionError(self.base_url, str(e)) from e

        self._update_hub_status(resp)
        return self._handle_response(resp)

    # ------------------------------------------------------------------
    # Hub status
    # ------------------------------------------------------------------

    def reset_hub_status(self) -> None:
        """Forget the hub status seen by earlier requests."""
        self.last_hub_status = None

    def has_hub_warning(self) -> bool:
        return self.last_hub_status is not None and self.last_hub_status.level is not ResourceLevel.NORMAL

    def is_hub_critical(self) -> bool:
        return self.last_hub_status is not None and self.last_hub_status.level is ResourceLevel.CRITICAL

    def hub_warning_messages(self) -> list[str]:
        """User-facing messages for the last response's hub status."""
        status = self.last_hub_status
        if status is None or status.level is ResourceLevel.NORMAL:
            return []
        warnings = []
        if status.hint:
            warnings.append(status.hint)
        if status.level is ResourceLevel.CRITICAL:
            warnings.append(CRITICAL_WARNING)
        else:
            warnings.append(LOW_RESOURCES_NOTICE)
        return warnings

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def create_agent(self, agent: Agent) -> Agent:
        return Agent.from_dict(self._request("POST", "/api/agents", body=agent.to_dict()))

    def get_agent(self, uuid: str) -> Agent:
        return Agent.from_dict(self._request("GET", f"/api/agents/{uuid}"))

    def list_agents(self, limit: int = 20, offset: int = 0) -> Page[Agent]:
        data = self._request("GET", "/api/agents", params={"limit": limit, "offset": offset})
        return Page.from_response(data, Agent.from_dict)

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def create_fragment(self, fragment: Fragment, project: str | None = None) -> Fragment:
        params = {"project": project} if project else None
        return Fragment.from_dict(self._request("POST", "/api/fragments", params=params, body=fragment.to_dict()))

    def get_fragment(self, uuid: str) -> Fragment:
        return Fragment.from_dict(self._request("GET", f"/api/fragments/{uuid}"))

    def search_fragments(
        self,
        query: str | None = None,
        tags: list[str] | None = None,
        author: str | None = None,
        project: str | None = None,
        state: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Page[Fragment]:
        params: list[tuple[str, Any]] = []
        for key, value in (
            ("query", query),
            ("author", author),
            ("project", project),
            ("state", state),
            ("limit", limit),
            ("offset", offset),
        ):
            if value:
                params.append((key, value))
        for tag in tags or []:
            params.append(("tag", tag))
        data = self._request("GET", "/api/fragments", params=params)
        return Page.from_response(data, Fragment.from_dict)

    def list_fragments(self, limit: int = 20, offset: int = 0) -> Page[Fragment]:
        data = self._request("GET", "/api/fragments", params={"limit": limit, "offset": offset})
        return Page.from_response(data, Fragment.from_dict)

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def create_relation(self, relation: Relation) -> Relation:
        return Relation.from_dict(self._request("POST", "/api/relations", body=relation.to_dict()))

    def get_relation(self, uuid: str) -> Relation:
        return Relation.from_dict(self._request("GET", f"/api/relations/{uuid}"))

    def get_relations_for_entity(self, entity_uuid: str, direction: str | None = None) -> list[Relation]:
        """Relations touching an entity; ``direction`` is source, target or both."""
        params = {"entity": entity_uuid}
        if direction:
            params["direction"] = direction
        data = self._request("GET", "/api/relations", params=params)
        return Page.from_response(data, Relation.from_dict).items

    def list_relations(self, limit: int = 100, offset: int = 0) -> Page[Relation]:
        data = self._request("GET", "/api/relations", params={"limit": limit, "offset": offset})
        return Page.from_response(data, Relation.from_dict)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def create_tag(self, tag: Tag) -> Tag:
        return Tag.from_dict(self._request("POST", "/api/tags", body=tag.to_dict()))

    def get_tag(self, uuid: str) -> Tag:
        return Tag.from_dict(self._request("GET", f"/api/tags/{uuid}"))

    def list_tags(self, category: str | None = None, limit: int = 100, offset: int = 0) -> Page[Tag]:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if category:
            params["category"] = category
        data = self._request("GET", "/api/tags", params=params)
        return Page.from_response(data, Tag.from_dict)

    def get_tag_by_name(self, name: str) -> Tag | None:
        """Find a tag by exact name, walking the tag listing.

        Returns None when no tag has that name. Gateway failures propagate.
        """
        offset = 0
        for _ in range(MAX_TAG_PAGES):
            page = self.list_tags(limit=100, offset=offset)
            for tag in page.items:
                if tag.name == name:
                    return tag
            offset += len(page.items)
            if not page.items or page.total is None or offset >= page.total:
                return None
        logger.warning(f"Stopped looking for tag {name!r} after {MAX_TAG_PAGES} pages")
        return None

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def create_transform(self, transform: Transform) -> Transform:
        return Transform.from_dict(self._request("POST", "/api/transforms", body=transform.to_dict()))

    def get_transform(self, uuid: str) -> Transform:
        return Transform.from_dict(self._request("GET", f"/api/transforms/{uuid}"))

    def list_transforms(self, domain: str | None = None, limit: int = 20, offset: int = 0) -> Page[Transform]:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if domain:
            params["domain"] = domain
        data = self._request("GET", "/api/transforms", params=params)
        return Page.from_response(data, Transform.from_dict)

    # ------------------------------------------------------------------
    # Projects (gateway-only, not federated)
    # ------------------------------------------------------------------

    def create_project(self, project: dict[str, Any]) -> Project:
        return Project.from_dict(self._request("POST", "/api/projects", body=project))

    def get_project(self, uuid: str) -> Project:
        return Project.from_dict(self._request("GET", f"/api/projects/{uuid}"))

    def list_projects(self, owner: str | None = None, limit: int = 20, offset: int = 0) -> Page[Project]:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if owner:
            params["owner"] = owner
        data = self._request("GET", "/api/projects", params=params)
        return Page.from_response(data, Project.from_dict)

    def update_project(self, uuid: str, updates: dict[str, Any]) -> Project:
        return Project.from_dict(self._request("PUT", f"/api/projects/{uuid}", body=updates))

    # ------------------------------------------------------------------
    # Trust votes
    # ------------------------------------------------------------------

    def create_trust_vote(self, vote: TrustVote) -> TrustVote:
        return TrustVote.from_dict(self._request("POST", "/api/votes", body=vote.to_dict()))

    def get_votes_for_target(self, target_uuid: str) -> list[TrustVote]:
        data = self._request("GET", "/api/votes", params={"target": target_uuid})
        return Page.from_response(data, TrustVote.from_dict).items

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def health_check(self) -> dict[str, Any]:
        return self._request("GET", "/api/health")

    def is_reachable(self) -> bool:
        try:
            self.health_check()
        except GatewayError as e:
            logger.info(f"Gateway unreachable: {e}")
            return False
        return True
