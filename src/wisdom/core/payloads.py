# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Builders for unsigned entity payloads.

A builder turns tool arguments plus session context (agent UUID, hub host)
into an entity ready for signing. Every cross-reference is resolved to an
Address through the AddressCache, and every check that can fail is made
here, before anything is signed or sent.
"""

from __future__ import annotations

import logging
import re
import uuid as uuid_lib
from collections.abc import Callable
from datetime import UTC, datetime

from ..gateway.types import (
    Address,
    AddressDomain,
    Agent,
    AgentTrust,
    EvidenceType,
    Fragment,
    Relation,
    RelationType,
    Tag,
    TagCategory,
    Transform,
    TrustExpression,
    TrustVote,
    VoteType,
)
from .address_cache import AddressCache
from .exceptions import ValidationException

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

DEFAULT_FRAGMENT_CONFIDENCE = 0.5
DEFAULT_RELATION_CONFIDENCE = 1.0


def is_uuid(value: str) -> bool:
    """True when ``value`` is a canonical hyphenated UUID (otherwise it is treated as a name)."""
    return bool(UUID_PATTERN.match(value))


def require_uuid(value: str, field: str) -> str:
    """Normalize a UUID argument.

    Raises:
        ValidationException: If ``value`` is not a UUID.
    """
    if not is_uuid(value):
        raise ValidationException(f"{field} must be a UUID", field=field, value=value)
    return value.lower()


def validate_confidence(value: float, field: str = "confidence") -> float:
    if not 0.0 <= value <= 1.0:
        raise ValidationException(f"{field} must be between 0 and 1", field=field, value=value)
    return value


def validate_trust(value: float, field: str = "trust_level") -> float:
    if not -1.0 <= value <= 1.0:
        raise ValidationException(f"{field} must be between -1 and 1", field=field, value=value)
    return value


def trust_expression(trust_level: float, confidence: float = 1.0) -> TrustExpression:
    return TrustExpression(trust=validate_trust(trust_level), confidence=validate_confidence(confidence))


def timestamp(now: datetime | None = None) -> str:
    """ISO 8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_uuid() -> str:
    return str(uuid_lib.uuid4())


def new_agent(public_key: str, description: str = "", primary_hub: str | None = None) -> Agent:
    """Unsigned registration payload for a fresh agent identity."""
    return Agent(
        uuid=new_uuid(),
        public_key=public_key,
        description=description,
        trust=AgentTrust(),
        primary_hub=primary_hub or None,
    )


class PayloadBuilder:
    """Builds unsigned entities on behalf of one agent."""

    def __init__(
        self,
        cache: AddressCache,
        agent_uuid: str,
        hub_host: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.cache = cache
        self.agent_uuid = agent_uuid
        self.hub_host = hub_host or None
        self._clock = clock

    def _now(self) -> str:
        return timestamp(self._clock() if self._clock else None)

    def resolve(self, entity_uuid: str, domain: AddressDomain) -> Address:
        """Address for a referenced entity, preferring what the gateway told us."""
        return self.cache.get(entity_uuid, domain, self.hub_host)

    def agent_address(self) -> Address:
        return self.resolve(self.agent_uuid, AddressDomain.AGENT)

    # -- Fragments ----------------------------------------------------------

    def fragment(
        self,
        content: str,
        source_transform: str | None,
        tags: list[str] | None = None,
        confidence: float | None = None,
        evidence_type: EvidenceType | str | None = None,
    ) -> Fragment:
        """
        Raises:
            ValidationException: If no source transform is given, or a value
                is out of range.
        """
        if not source_transform:
            raise ValidationException(
                "source_transform is required: every fragment must name the transform that produced it",
                field="source_transform",
            )
        if not content:
            raise ValidationException("content must be non-empty", field="content")
        transform_uuid = require_uuid(source_transform, "source_transform")
        confidence = DEFAULT_FRAGMENT_CONFIDENCE if confidence is None else validate_confidence(confidence)

        return Fragment(
            uuid=new_uuid(),
            content=content,
            creator=self.agent_address(),
            when=self._now(),
            tags=[self.resolve(require_uuid(t, "tags"), AddressDomain.TAG) for t in tags or []],
            transform=self.resolve(transform_uuid, AddressDomain.TRANSFORMATION),
            confidence=confidence,
            evidence_type=EvidenceType(evidence_type) if evidence_type else EvidenceType.UNKNOWN,
        )

    # -- Relations ----------------------------------------------------------

    def relation(
        self,
        source: str,
        target: str,
        relation_type: RelationType | str,
        content: str = "",
        confidence: float | None = None,
        source_domain: AddressDomain = AddressDomain.FRAGMENT,
        target_domain: AddressDomain = AddressDomain.FRAGMENT,
    ) -> Relation:
        confidence = DEFAULT_RELATION_CONFIDENCE if confidence is None else validate_confidence(confidence)
        return Relation(
            uuid=new_uuid(),
            source=self.resolve(require_uuid(source, "from_uuid"), source_domain),
            target=self.resolve(require_uuid(target, "to_uuid"), target_domain),
            by=self.agent_address(),
            type=RelationType(relation_type),
            when=self._now(),
            content=content or "",
            confidence=confidence,
        )

    # -- Tags ---------------------------------------------------------------

    def tag(self, name: str, category: TagCategory | str, content: str = "") -> Tag:
        if not name:
            raise ValidationException("tag name must be non-empty", field="name")
        return Tag(
            uuid=new_uuid(),
            name=name,
            category=TagCategory(category).value,
            creator=self.agent_address(),
            content=content or "",
        )

    # -- Transforms ---------------------------------------------------------

    def transform(
        self,
        name: str,
        description: str,
        transform_to: str,
        transform_from: str,
        additional_data: str = "",
        tags: list[str] | None = None,
    ) -> Transform:
        return Transform(
            uuid=new_uuid(),
            name=name,
            description=description,
            transform_from=transform_from,
            transform_to=transform_to,
            agent=self.agent_address(),
            additional_data=additional_data or "",
            tags=[self.resolve(require_uuid(t, "tags"), AddressDomain.TAG) for t in tags or []],
        )

    # -- Trust votes --------------------------------------------------------

    def trust_vote(self, target: str, vote_type: VoteType | str, comment: str = "") -> TrustVote:
        return TrustVote(
            uuid=new_uuid(),
            voter=self.agent_address(),
            target=require_uuid(target, "fragment_uuid"),
            vote_type=VoteType(vote_type),
            comment=comment or "",
        )
