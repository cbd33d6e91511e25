# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Wire types for the shared-wisdom gateway (Address-based schema).

Every entity is named by a federated Address::

    {host_port}/{DOMAIN}/{entity-uuid}

An empty host_port denotes a local reference (string form starts with "/"),
a non-empty one a hub-qualified reference, e.g.
``hub1.example.org:443/FRAGMENT/6f1c...``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

logger = logging.getLogger(__name__)

# Version of the canonical payload format produced by wisdom.crypto.signing
SCHEMA_VERSION = 2

T = TypeVar("T")
E = TypeVar("E", bound=Enum)


# =============================================================================
# ENUMS
# =============================================================================


class AddressDomain(str, Enum):
    """Kind of entity an Address points at."""

    AGENT = "AGENT"
    TAG = "TAG"
    FRAGMENT = "FRAGMENT"
    RELATION = "RELATION"
    TRANSFORMATION = "TRANSFORMATION"
    HUB = "HUB"


class RelationType(str, Enum):
    """Typed, directed relation between two entities."""

    REFERENCES = "REFERENCES"
    SUPPORTS = "SUPPORTS"
    CONTRADICTS = "CONTRADICTS"
    DERIVED_FROM = "DERIVED_FROM"
    PART_OF = "PART_OF"
    SUPERSEDES = "SUPERSEDES"
    RELATED_TO = "RELATED_TO"
    EXAMPLE_OF = "EXAMPLE_OF"
    SPECIALIZES = "SPECIALIZES"
    GENERALIZES = "GENERALIZES"
    TYPED_AS = "TYPED_AS"


class TagCategory(str, Enum):
    """Closed set of tag categories."""

    TOPIC = "topic"
    DOMAIN = "domain"
    TYPE = "type"
    LANGUAGE = "language"
    SOURCE = "source"
    METHOD = "method"
    STATUS = "status"
    AUDIENCE = "audience"
    FORMAT = "format"
    PROJECT = "project"
    OTHER = "other"


class EvidenceType(str, Enum):
    """How a fragment's content was derived."""

    EMPIRICAL = "empirical"      # Observed or tested
    LOGICAL = "logical"          # Logically derived
    CONSENSUS = "consensus"      # Agreed upon by multiple sources
    SPECULATION = "speculation"  # Hypothetical
    UNKNOWN = "unknown"


class FragmentState(str, Enum):
    """Lifecycle state assigned by the hub from trust votes."""

    PROPOSED = "proposed"
    VERIFIED = "verified"
    CONTESTED = "contested"


class VoteType(str, Enum):
    VERIFY = "verify"
    CONTEST = "contest"
    RETRACT = "retract"


class ProjectVisibility(str, Enum):
    PRIVATE = "private"
    SHARED = "shared"
    PUBLIC = "public"


class ResourceLevel(str, Enum):
    """Hub capacity signal carried in response headers."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


# Semantic fragment types, expressed as TYPED_AS relations to "type:*" tags
FRAGMENT_TYPES = {
    "QUESTION": "type:question",
    "ANSWER": "type:answer",
    "FACT": "type:fact",
    "OPINION": "type:opinion",
    "DEFINITION": "type:definition",
    "EXAMPLE": "type:example",
    "PROCEDURE": "type:procedure",
    "INSIGHT": "type:insight",
}


def _enum(cls: type[E], value: Any, default: E) -> E:
    """Parse an enum value from the wire, tolerating values this client does not know."""
    if value is None:
        return default
    try:
        return cls(value)
    except ValueError:
        logger.debug(f"Unknown {cls.__name__} value from gateway: {value!r}")
        return default


# =============================================================================
# ADDRESS
# =============================================================================


@dataclass(frozen=True)
class Address:
    """Federated identifier of an entity."""

    host_port: str
    domain: AddressDomain
    entity: str

    def __post_init__(self) -> None:
        if "/" in self.host_port:
            raise ValueError(f"host_port must not contain '/': {self.host_port!r}")
        object.__setattr__(self, "domain", AddressDomain(self.domain))
        try:
            object.__setattr__(self, "entity", str(UUID(str(self.entity))))
        except ValueError:
            raise ValueError(f"Address entity is not a UUID: {self.entity!r}") from None

    @classmethod
    def local(cls, domain: AddressDomain | str, entity: str) -> Address:
        """Locally scoped reference."""
        return cls("", AddressDomain(domain), entity)

    @classmethod
    def hub(cls, host_port: str, domain: AddressDomain | str, entity: str) -> Address:
        """Hub-qualified reference."""
        if not host_port:
            raise ValueError("hub address requires a host_port")
        return cls(host_port, AddressDomain(domain), entity)

    @property
    def is_local(self) -> bool:
        return self.host_port == ""

    def to_string(self) -> str:
        return f"{self.host_port}/{self.domain.value}/{self.entity}"

    def __str__(self) -> str:
        return self.to_string()

    @classmethod
    def parse(cls, value: str) -> Address:
        """Parse ``{host_port}/{DOMAIN}/{uuid}``.

        Raises:
            ValueError: If the string is not a well-formed address.
        """
        parts = value.rsplit("/", 2)
        if len(parts) != 3:
            raise ValueError(f"Invalid address: {value!r}")
        host_port, domain, entity = parts
        try:
            domain_enum = AddressDomain(domain)
        except ValueError:
            raise ValueError(f"Invalid address domain {domain!r} in {value!r}") from None
        return cls(host_port, domain_enum, entity)

    def to_dict(self) -> dict[str, str]:
        return {
            "host_port": self.host_port,
            "domain": self.domain.value,
            "entity": self.entity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Address:
        return cls(data.get("host_port") or "", AddressDomain(data["domain"]), data["entity"])

    @classmethod
    def coerce(cls, value: Address | dict[str, Any] | str) -> Address:
        """Accept an Address, its dict form, or its string form."""
        if isinstance(value, Address):
            return value
        if isinstance(value, dict):
            return cls.from_dict(value)
        return cls.parse(value)


def _address_or_none(value: Any) -> Address | None:
    return Address.coerce(value) if value else None


def _addresses(values: Any) -> list[Address]:
    return [Address.coerce(v) for v in values or []]


def _drop_none(data: dict[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    """Remove server-assigned keys that are unset, so requests stay clean."""
    for key in keys:
        if data.get(key) is None:
            data.pop(key, None)
    return data


_SERVER_FIELDS = ("address", "created_at", "updated_at")


# =============================================================================
# FRAGMENT
# =============================================================================


@dataclass
class TrustSummary:
    """Aggregate of trust votes, computed by the hub."""

    score: float = 0.0
    votes_count: int = 0
    verifications: int = 0
    contestations: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "votes_count": self.votes_count,
            "verifications": self.verifications,
            "contestations": self.contestations,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TrustSummary:
        data = data or {}
        return cls(
            score=float(data.get("score", 0.0)),
            votes_count=int(data.get("votes_count", 0)),
            verifications=int(data.get("verifications", 0)),
            contestations=int(data.get("contestations", 0)),
        )


@dataclass
class Fragment:
    """An atomic, signed knowledge statement."""

    uuid: str
    content: str
    creator: Address
    when: str
    tags: list[Address] = field(default_factory=list)
    transform: Address | None = None
    confidence: float = 0.5
    evidence_type: EvidenceType = EvidenceType.UNKNOWN
    trust_summary: TrustSummary = field(default_factory=TrustSummary)
    state: FragmentState = FragmentState.PROPOSED
    version: int = 1
    signature: str = ""
    schema_version: int = SCHEMA_VERSION
    address: Address | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "uuid": self.uuid,
                "content": self.content,
                "creator": self.creator.to_dict(),
                "when": self.when,
                "tags": [t.to_dict() for t in self.tags],
                "transform": self.transform.to_dict() if self.transform else None,
                "confidence": self.confidence,
                "evidence_type": self.evidence_type.value,
                "trust_summary": self.trust_summary.to_dict(),
                "state": self.state.value,
                "version": self.version,
                "signature": self.signature,
                "schema_version": self.schema_version,
                "address": self.address.to_dict() if self.address else None,
                "created_at": self.created_at,
            },
            _SERVER_FIELDS,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Fragment:
        confidence = data.get("confidence")
        return cls(
            uuid=data["uuid"],
            content=data.get("content", ""),
            creator=Address.coerce(data["creator"]),
            when=data.get("when", ""),
            tags=_addresses(data.get("tags")),
            transform=_address_or_none(data.get("transform")),
            confidence=0.5 if confidence is None else float(confidence),
            evidence_type=_enum(EvidenceType, data.get("evidence_type"), EvidenceType.UNKNOWN),
            trust_summary=TrustSummary.from_dict(data.get("trust_summary")),
            state=_enum(FragmentState, data.get("state"), FragmentState.PROPOSED),
            version=int(data.get("version", 1)),
            signature=data.get("signature", ""),
            schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
            address=_address_or_none(data.get("address")),
            created_at=data.get("created_at"),
        )


# =============================================================================
# RELATION
# =============================================================================


@dataclass
class Relation:
    """Typed directed edge ``source -> target`` asserted by agent ``by``."""

    uuid: str
    source: Address
    target: Address
    by: Address
    type: RelationType
    when: str
    content: str = ""
    confidence: float = 1.0
    version: int = 1
    signature: str = ""
    schema_version: int = SCHEMA_VERSION
    address: Address | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "uuid": self.uuid,
                "from": self.source.to_dict(),
                "to": self.target.to_dict(),
                "by": self.by.to_dict(),
                "type": self.type.value,
                "when": self.when,
                "content": self.content,
                "confidence": self.confidence,
                "version": self.version,
                "signature": self.signature,
                "schema_version": self.schema_version,
                "address": self.address.to_dict() if self.address else None,
                "created_at": self.created_at,
            },
            _SERVER_FIELDS,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Relation:
        confidence = data.get("confidence")
        return cls(
            uuid=data["uuid"],
            source=Address.coerce(data["from"]),
            target=Address.coerce(data["to"]),
            by=Address.coerce(data["by"]),
            type=RelationType(data["type"]),
            when=data.get("when", ""),
            content=data.get("content") or "",
            confidence=1.0 if confidence is None else float(confidence),
            version=int(data.get("version", 1)),
            signature=data.get("signature", ""),
            schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
            address=_address_or_none(data.get("address")),
            created_at=data.get("created_at"),
        )


# =============================================================================
# TAG
# =============================================================================


@dataclass
class Tag:
    uuid: str
    name: str
    category: str
    creator: Address
    content: str = ""
    version: int = 1
    signature: str = ""
    schema_version: int = SCHEMA_VERSION
    address: Address | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "uuid": self.uuid,
                "name": self.name,
                "category": self.category,
                "content": self.content,
                "creator": self.creator.to_dict(),
                "version": self.version,
                "signature": self.signature,
                "schema_version": self.schema_version,
                "address": self.address.to_dict() if self.address else None,
                "created_at": self.created_at,
            },
            _SERVER_FIELDS,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tag:
        return cls(
            uuid=data["uuid"],
            name=data["name"],
            category=data.get("category", TagCategory.OTHER.value),
            creator=Address.coerce(data["creator"]),
            content=data.get("content") or "",
            version=int(data.get("version", 1)),
            signature=data.get("signature", ""),
            schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
            address=_address_or_none(data.get("address")),
            created_at=data.get("created_at"),
        )


# =============================================================================
# TRANSFORM
# =============================================================================


@dataclass
class Transform:
    """A named transformation that produced (or decodes) fragments."""

    uuid: str
    name: str
    description: str
    transform_from: str
    transform_to: str
    agent: Address
    additional_data: str = ""
    tags: list[Address] = field(default_factory=list)
    version: int = 1
    signature: str = ""
    schema_version: int = SCHEMA_VERSION
    address: Address | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "uuid": self.uuid,
                "name": self.name,
                "description": self.description,
                "transform_from": self.transform_from,
                "transform_to": self.transform_to,
                "additional_data": self.additional_data,
                "tags": [t.to_dict() for t in self.tags],
                "agent": self.agent.to_dict(),
                "version": self.version,
                "signature": self.signature,
                "schema_version": self.schema_version,
                "address": self.address.to_dict() if self.address else None,
                "created_at": self.created_at,
            },
            _SERVER_FIELDS,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transform:
        return cls(
            uuid=data["uuid"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            transform_from=data.get("transform_from", ""),
            transform_to=data.get("transform_to", ""),
            agent=Address.coerce(data["agent"]),
            additional_data=data.get("additional_data") or "",
            tags=_addresses(data.get("tags")),
            version=int(data.get("version", 1)),
            signature=data.get("signature", ""),
            schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
            address=_address_or_none(data.get("address")),
            created_at=data.get("created_at"),
        )


# =============================================================================
# AGENT
# =============================================================================


@dataclass
class TrustExpression:
    trust: float  # -1.0 to +1.0
    confidence: float  # 0.0 to 1.0

    def to_dict(self) -> dict[str, float]:
        return {"trust": self.trust, "confidence": self.confidence}


@dataclass
class AgentTrust:
    """Direct trust an agent expresses towards peers (peer UUID -> expression)."""

    direct: dict[str, TrustExpression] = field(default_factory=dict)
    default_trust: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "direct": {peer: expr.to_dict() for peer, expr in self.direct.items()},
            "default_trust": self.default_trust,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AgentTrust:
        data = data or {}
        direct = {
            peer: TrustExpression(float(expr.get("trust", 0.0)), float(expr.get("confidence", 0.0)))
            for peer, expr in (data.get("direct") or {}).items()
        }
        return cls(direct=direct, default_trust=float(data.get("default_trust", 0.0)))


@dataclass
class AgentProfile:
    """Derived expertise profile, maintained by the hub."""

    specializations: dict[str, float] = field(default_factory=dict)
    known_biases: list[dict[str, Any]] = field(default_factory=list)
    avg_confidence: float = 0.0
    fragment_count: int = 0
    historical_accuracy: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "specializations": self.specializations,
            "known_biases": self.known_biases,
            "avg_confidence": self.avg_confidence,
            "fragment_count": self.fragment_count,
            "historical_accuracy": self.historical_accuracy,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AgentProfile:
        data = data or {}
        return cls(
            specializations=dict(data.get("specializations") or {}),
            known_biases=list(data.get("known_biases") or []),
            avg_confidence=float(data.get("avg_confidence", 0.0)),
            fragment_count=int(data.get("fragment_count", 0)),
            historical_accuracy=float(data.get("historical_accuracy", 0.0)),
        )


@dataclass
class Agent:
    uuid: str
    public_key: str  # Base64 Ed25519 public key
    description: str = ""
    trust: AgentTrust = field(default_factory=AgentTrust)
    primary_hub: str | None = None
    reputation_score: float = 0.5
    profile: AgentProfile = field(default_factory=AgentProfile)
    version: int = 1
    signature: str = ""
    schema_version: int = SCHEMA_VERSION
    address: Address | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "uuid": self.uuid,
                "public_key": self.public_key,
                "description": self.description,
                "trust": self.trust.to_dict(),
                "primary_hub": self.primary_hub,
                "reputation_score": self.reputation_score,
                "profile": self.profile.to_dict(),
                "version": self.version,
                "signature": self.signature,
                "schema_version": self.schema_version,
                "address": self.address.to_dict() if self.address else None,
                "created_at": self.created_at,
            },
            _SERVER_FIELDS,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Agent:
        return cls(
            uuid=data["uuid"],
            public_key=data.get("public_key", ""),
            description=data.get("description", ""),
            trust=AgentTrust.from_dict(data.get("trust")),
            primary_hub=data.get("primary_hub") or None,
            reputation_score=float(data.get("reputation_score", 0.5)),
            profile=AgentProfile.from_dict(data.get("profile")),
            version=int(data.get("version", 1)),
            signature=data.get("signature", ""),
            schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
            address=_address_or_none(data.get("address")),
            created_at=data.get("created_at"),
        )


# =============================================================================
# TRUST VOTE
# =============================================================================


@dataclass
class TrustVote:
    uuid: str
    voter: Address
    target: str  # Entity UUID
    vote_type: VoteType
    comment: str = ""
    version: int = 1
    signature: str = ""
    schema_version: int = SCHEMA_VERSION
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "uuid": self.uuid,
                "voter": self.voter.to_dict(),
                "target": self.target,
                "vote_type": self.vote_type.value,
                "comment": self.comment,
                "version": self.version,
                "signature": self.signature,
                "schema_version": self.schema_version,
                "created_at": self.created_at,
            },
            _SERVER_FIELDS,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrustVote:
        return cls(
            uuid=data["uuid"],
            voter=Address.coerce(data["voter"]),
            target=data["target"],
            vote_type=VoteType(data["vote_type"]),
            comment=data.get("comment") or "",
            version=int(data.get("version", 1)),
            signature=data.get("signature", ""),
            schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
            created_at=data.get("created_at"),
        )


# =============================================================================
# PROJECT (gateway-only, not federated, unsigned)
# =============================================================================


@dataclass
class Project:
    uuid: str
    name: str
    owner: str  # Agent UUID
    description: str = ""
    default_tags: list[str] = field(default_factory=list)
    default_transform: str | None = None
    visibility: ProjectVisibility = ProjectVisibility.PRIVATE
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "uuid": self.uuid,
                "name": self.name,
                "description": self.description,
                "owner": self.owner,
                "default_tags": list(self.default_tags),
                "default_transform": self.default_transform,
                "visibility": self.visibility.value,
                "created_at": self.created_at,
                "updated_at": self.updated_at,
            },
            _SERVER_FIELDS,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        return cls(
            uuid=data["uuid"],
            name=data.get("name", ""),
            owner=data.get("owner", ""),
            description=data.get("description") or "",
            default_tags=list(data.get("default_tags") or []),
            default_transform=data.get("default_transform") or None,
            visibility=_enum(ProjectVisibility, data.get("visibility"), ProjectVisibility.PRIVATE),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


# =============================================================================
# PAGINATION / HUB STATUS
# =============================================================================


@dataclass
class Page(Generic[T]):
    """One page of a listing, with either cursor or offset pagination."""

    items: list[T]
    total: int | None = None
    limit: int | None = None
    offset: int | None = None
    next_cursor: str | None = None

    @classmethod
    def from_response(cls, data: Any, parse: Callable[[dict[str, Any]], T]) -> Page[T]:
        """Parse ``{"items": [...]}``, ``{"data": [...]}`` or a bare list."""
        if isinstance(data, list):
            return cls(items=[parse(d) for d in data], total=len(data))
        raw = data.get("items")
        if raw is None:
            raw = data.get("data") or []
        return cls(
            items=[parse(d) for d in raw],
            total=data.get("total"),
            limit=data.get("limit"),
            offset=data.get("offset"),
            next_cursor=data.get("next_cursor") or None,
        )


@dataclass
class HubStatus:
    level: ResourceLevel
    hint: str | None = None
    warnings: list[str] = field(default_factory=list)
