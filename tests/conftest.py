"""Global test fixtures for the wisdom test suite."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest

from wisdom.core.address_cache import AddressCache
from wisdom.core.config import ConfigPaths, LoadedConfig, WisdomConfig
from wisdom.core.exceptions import GatewayError, GatewayNotFoundError
from wisdom.core.state import SessionState
from wisdom.crypto.keys import KeyPair, generate_keypair
from wisdom.gateway.types import (
    Address,
    AddressDomain,
    Agent,
    Fragment,
    FragmentState,
    Page,
    Project,
    Relation,
    Tag,
    Transform,
    TrustVote,
)
from wisdom.mcp.context import ServerContext

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


def new_id() -> str:
    return str(uuid4())


# ============================================================================
# In-memory gateway
# ============================================================================


class FakeGateway:
    """In-memory stand-in for GatewayClient.

    Entities round-trip through ``to_dict``/``from_dict`` like they would
    over the wire. When ``hub_host`` is set, stored entities come back with
    a hub-qualified ``address``, as a real hub would report them.
    ``errors`` maps an entity UUID to the GatewayError its lookup raises.
    """

    def __init__(self, hub_host: str | None = None):
        self.base_url = "http://gateway.test"
        self.timeout = 30.0
        self.hub_host = hub_host
        self.reachable = True
        self.warnings: list[str] = []
        self.errors: dict[str, GatewayError] = {}
        self.agents: dict[str, dict[str, Any]] = {}
        self.fragments: dict[str, dict[str, Any]] = {}
        self.fragment_projects: dict[str, str | None] = {}
        self.relations: dict[str, dict[str, Any]] = {}
        self.tags: dict[str, dict[str, Any]] = {}
        self.transforms: dict[str, dict[str, Any]] = {}
        self.projects: dict[str, dict[str, Any]] = {}
        self.votes: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, Any]] = []

    # -- plumbing ------------------------------------------------------------

    def set_base_url(self, url: str) -> None:
        self.base_url = url

    def reset_hub_status(self) -> None:
        self.warnings = []

    def hub_warning_messages(self) -> list[str]:
        return list(self.warnings)

    def _store(self, table: dict[str, dict[str, Any]], entity: Any, domain: AddressDomain | None) -> dict[str, Any]:
        data = entity.to_dict()
        if domain is not None and self.hub_host:
            data["address"] = Address.hub(self.hub_host, domain, data["uuid"]).to_dict()
        data.setdefault("created_at", FIXED_NOW.isoformat())
        table[data["uuid"]] = data
        return data

    def _get(self, table: dict[str, dict[str, Any]], uuid: str, kind: str) -> dict[str, Any]:
        self.calls.append((f"get_{kind}", uuid))
        if uuid in self.errors:
            raise self.errors[uuid]
        if uuid not in table:
            raise GatewayNotFoundError(f"{kind} not found", status_code=404)
        return table[uuid]

    @staticmethod
    def _page(items: list[Any], limit: int | None = None, offset: int | None = None) -> Page[Any]:
        offset = offset or 0
        window = items[offset : offset + limit] if limit else items[offset:]
        return Page(items=window, total=len(items), limit=limit, offset=offset)

    # -- seeding helpers -------------------------------------------------------

    def add_fragment(self, fragment: Fragment, project: str | None = None) -> Fragment:
        self.fragment_projects[fragment.uuid] = project
        return Fragment.from_dict(self._store(self.fragments, fragment, AddressDomain.FRAGMENT))

    def add_relation(self, relation: Relation) -> Relation:
        return Relation.from_dict(self._store(self.relations, relation, AddressDomain.RELATION))

    def add_agent(self, agent: Agent) -> Agent:
        return Agent.from_dict(self._store(self.agents, agent, AddressDomain.AGENT))

    # -- agents ---------------------------------------------------------------

    def create_agent(self, agent: Agent) -> Agent:
        return self.add_agent(agent)

    def get_agent(self, uuid: str) -> Agent:
        return Agent.from_dict(self._get(self.agents, uuid, "agent"))

    def list_agents(self, limit: int = 20, offset: int = 0) -> Page[Agent]:
        return self._page([Agent.from_dict(a) for a in self.agents.values()], limit, offset)

    # -- fragments -------------------------------------------------------------

    def create_fragment(self, fragment: Fragment, project: str | None = None) -> Fragment:
        return self.add_fragment(fragment, project)

    def get_fragment(self, uuid: str) -> Fragment:
        return Fragment.from_dict(self._get(self.fragments, uuid, "fragment"))

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
        self.calls.append(("search_fragments", {"query": query, "project": project, "limit": limit}))
        found = []
        for uuid, data in self.fragments.items():
            fragment = Fragment.from_dict(data)
            if query and query.lower() not in fragment.content.lower():
                continue
            if project and self.fragment_projects.get(uuid) != project:
                continue
            if author and fragment.creator.entity != author:
                continue
            if state and fragment.state is not FragmentState(state):
                continue
            if tags and not set(tags) & {t.entity for t in fragment.tags}:
                continue
            found.append(fragment)
        return self._page(found, limit, offset)

    def list_fragments(self, limit: int = 20, offset: int = 0) -> Page[Fragment]:
        return self._page([Fragment.from_dict(f) for f in self.fragments.values()], limit, offset)

    # -- relations -------------------------------------------------------------

    def create_relation(self, relation: Relation) -> Relation:
        return self.add_relation(relation)

    def get_relation(self, uuid: str) -> Relation:
        return Relation.from_dict(self._get(self.relations, uuid, "relation"))

    def get_relations_for_entity(self, entity_uuid: str, direction: str | None = None) -> list[Relation]:
        self.calls.append(("get_relations_for_entity", (entity_uuid, direction)))
        result = []
        for data in self.relations.values():
            relation = Relation.from_dict(data)
            is_source = relation.source.entity == entity_uuid
            is_target = relation.target.entity == entity_uuid
            if direction == "source" and not is_source:
                continue
            if direction == "target" and not is_target:
                continue
            if direction in (None, "both") and not (is_source or is_target):
                continue
            result.append(relation)
        return result

    def list_relations(self, limit: int = 100, offset: int = 0) -> Page[Relation]:
        return self._page([Relation.from_dict(r) for r in self.relations.values()], limit, offset)

    # -- tags -------------------------------------------------------------------

    def create_tag(self, tag: Tag) -> Tag:
        return Tag.from_dict(self._store(self.tags, tag, AddressDomain.TAG))

    def get_tag(self, uuid: str) -> Tag:
        return Tag.from_dict(self._get(self.tags, uuid, "tag"))

    def list_tags(self, category: str | None = None, limit: int = 100, offset: int = 0) -> Page[Tag]:
        tags = [Tag.from_dict(t) for t in self.tags.values() if not category or t["category"] == category]
        return self._page(tags, limit, offset)

    def get_tag_by_name(self, name: str) -> Tag | None:
        self.calls.append(("get_tag_by_name", name))
        for data in self.tags.values():
            if data["name"] == name:
                return Tag.from_dict(data)
        return None

    # -- transforms -------------------------------------------------------------

    def create_transform(self, transform: Transform) -> Transform:
        return Transform.from_dict(self._store(self.transforms, transform, AddressDomain.TRANSFORMATION))

    def get_transform(self, uuid: str) -> Transform:
        return Transform.from_dict(self._get(self.transforms, uuid, "transform"))

    def list_transforms(self, domain: str | None = None, limit: int = 20, offset: int = 0) -> Page[Transform]:
        items = [Transform.from_dict(t) for t in self.transforms.values()]
        if domain:
            items = [t for t in items if domain in t.name or domain in t.description]
        return self._page(items, limit, offset)

    # -- projects ---------------------------------------------------------------

    def create_project(self, project: dict[str, Any]) -> Project:
        return Project.from_dict(self._store(self.projects, Project.from_dict(project), None))

    def get_project(self, uuid: str) -> Project:
        return Project.from_dict(self._get(self.projects, uuid, "project"))

    def list_projects(self, owner: str | None = None, limit: int = 20, offset: int = 0) -> Page[Project]:
        items = [Project.from_dict(p) for p in self.projects.values() if not owner or p["owner"] == owner]
        return self._page(items, limit, offset)

    def update_project(self, uuid: str, updates: dict[str, Any]) -> Project:
        data = self._get(self.projects, uuid, "project")
        data.update(updates)
        data["updated_at"] = FIXED_NOW.isoformat()
        return Project.from_dict(data)

    # -- votes -------------------------------------------------------------------

    def create_trust_vote(self, vote: TrustVote) -> TrustVote:
        return TrustVote.from_dict(self._store(self.votes, vote, None))

    def get_votes_for_target(self, target_uuid: str) -> list[TrustVote]:
        return [TrustVote.from_dict(v) for v in self.votes.values() if v["target"] == target_uuid]

    # -- health -----------------------------------------------------------------

    def health_check(self) -> dict[str, Any]:
        if not self.reachable:
            raise GatewayError("Cannot connect to gateway")
        return {"status": "ok"}

    def is_reachable(self) -> bool:
        return self.reachable


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep tests away from the real global config and WISDOM_* variables."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "WISDOM_PRIVATE_KEY",
        "WISDOM_GATEWAY_URL",
        "WISDOM_AGENT_UUID",
        "WISDOM_PROJECT_UUID",
        "WISDOM_HUB_HOST",
        "WISDOM_CACHE_MAX_SIZE",
        "WISDOM_TIMEOUT",
        "WISDOM_LOG_LEVEL",
        "WISDOM_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root(tmp_path) -> Path:
    root = tmp_path / "project"
    (root / ".wisdom").mkdir(parents=True)
    return root


@pytest.fixture
def keypair() -> KeyPair:
    return generate_keypair()


@pytest.fixture
def agent_uuid() -> str:
    return new_id()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


def make_context(
    project_root: Path,
    gateway: FakeGateway,
    keypair: KeyPair | None = None,
    agent_uuid: str | None = None,
    **config: Any,
) -> ServerContext:
    if keypair is not None:
        config["private_key"] = keypair.private_key_base64
    if agent_uuid is not None:
        config["agent_uuid"] = agent_uuid
    loaded = LoadedConfig(
        config=WisdomConfig(**config),
        paths=ConfigPaths(
            project_root=project_root,
            project_config=project_root / ".wisdom" / "config.json",
            global_config=project_root.parent / "xdg" / "claude" / "wisdom.json",
        ),
    )
    return ServerContext(
        loaded,
        gateway=gateway,
        cache=AddressCache(max_size=100),
        state=SessionState(project_root),
        loader=lambda: loaded,
    )


@pytest.fixture
def ctx(project_root, gateway, keypair, agent_uuid) -> ServerContext:
    """Context with a registered agent and signing key."""
    gateway.add_agent(Agent(uuid=agent_uuid, public_key=keypair.public_key_base64, description="test agent"))
    return make_context(project_root, gateway, keypair, agent_uuid)


@pytest.fixture
def bare_ctx(project_root, gateway) -> ServerContext:
    """Context with no key and no agent."""
    return make_context(project_root, gateway)


@pytest.fixture
def transform_uuid(ctx, gateway, agent_uuid) -> str:
    transform = Transform(
        uuid=new_id(),
        name="software-notes",
        description="software engineering notes",
        transform_from="text/plain",
        transform_to="text/markdown",
        agent=Address.local(AddressDomain.AGENT, agent_uuid),
        additional_data="One claim per fragment.",
    )
    return gateway.create_transform(transform).uuid
