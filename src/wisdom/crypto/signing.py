# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Canonical payloads and Ed25519 signatures for network entities.

``canonicalize`` is the single definition of the bytes that get signed:
compact JSON, keys sorted at every nesting level, UTF-8 without ASCII
escaping. Each entity kind has an explicit allow-list of signed fields
with fixed defaults, plus a ``schema`` marker so payload formats stay
distinguishable as they evolve. Changing any of these is a breaking
protocol change.

Verification always rebuilds the payload from the entity's stored fields,
never from the bytes that were sent over the wire.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..gateway.types import (
    SCHEMA_VERSION,
    Agent,
    Fragment,
    Relation,
    Tag,
    Transform,
    TrustVote,
)
from .keys import from_base64, to_base64

logger = logging.getLogger(__name__)


def canonicalize(fields: dict[str, Any]) -> str:
    """Deterministic JSON string for ``fields``."""
    return json.dumps(fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _to_bytes(message: bytes | str) -> bytes:
    return message.encode("utf-8") if isinstance(message, str) else message


def sign(message: bytes | str, private_key: bytes) -> str:
    """Sign ``message`` with a raw 32-byte seed; returns a base64 signature."""
    key = Ed25519PrivateKey.from_private_bytes(private_key)
    return to_base64(key.sign(_to_bytes(message)))


def verify(message: bytes | str, signature: str, public_key: bytes) -> bool:
    """Check a base64 signature. Never raises."""
    try:
        key = Ed25519PublicKey.from_public_bytes(public_key)
        key.verify(from_base64(signature), _to_bytes(message))
    except (InvalidSignature, ValueError, TypeError):
        return False
    return True


def _verify_entity(payload: str, entity: Any, public_key: bytes) -> bool:
    if entity.schema_version != SCHEMA_VERSION:
        logger.debug(
            f"Cannot verify {type(entity).__name__} {entity.uuid}: "
            f"unsupported schema version {entity.schema_version}"
        )
        return False
    return verify(payload, entity.signature, public_key)


# =============================================================================
# AGENT
# =============================================================================


def get_agent_signable_payload(agent: Agent) -> str:
    return canonicalize(
        {
            "schema": SCHEMA_VERSION,
            "uuid": agent.uuid,
            "public_key": agent.public_key,
            "description": agent.description,
            "trust": agent.trust.to_dict(),
            "primary_hub": agent.primary_hub or None,
        }
    )


def sign_agent(agent: Agent, private_key: bytes) -> str:
    return sign(get_agent_signable_payload(agent), private_key)


def verify_agent(agent: Agent, public_key: bytes) -> bool:
    return _verify_entity(get_agent_signable_payload(agent), agent, public_key)


# =============================================================================
# FRAGMENT
# =============================================================================


def get_fragment_signable_payload(fragment: Fragment) -> str:
    return canonicalize(
        {
            "schema": SCHEMA_VERSION,
            "uuid": fragment.uuid,
            "content": fragment.content,
            "creator": fragment.creator.to_dict(),
            "when": fragment.when,
            "tags": [t.to_dict() for t in fragment.tags],
            "transform": fragment.transform.to_dict() if fragment.transform else None,
            "confidence": 0.5 if fragment.confidence is None else fragment.confidence,
            "evidence_type": fragment.evidence_type.value,
        }
    )


def sign_fragment(fragment: Fragment, private_key: bytes) -> str:
    return sign(get_fragment_signable_payload(fragment), private_key)


def verify_fragment(fragment: Fragment, public_key: bytes) -> bool:
    return _verify_entity(get_fragment_signable_payload(fragment), fragment, public_key)


# =============================================================================
# RELATION
# =============================================================================


def get_relation_signable_payload(relation: Relation) -> str:
    return canonicalize(
        {
            "schema": SCHEMA_VERSION,
            "uuid": relation.uuid,
            "from": relation.source.to_dict(),
            "to": relation.target.to_dict(),
            "by": relation.by.to_dict(),
            "type": relation.type.value,
            "content": relation.content or "",
            "confidence": 1.0 if relation.confidence is None else relation.confidence,
            "when": relation.when,
        }
    )


def sign_relation(relation: Relation, private_key: bytes) -> str:
    return sign(get_relation_signable_payload(relation), private_key)


def verify_relation(relation: Relation, public_key: bytes) -> bool:
    return _verify_entity(get_relation_signable_payload(relation), relation, public_key)


# =============================================================================
# TAG
# =============================================================================


def get_tag_signable_payload(tag: Tag) -> str:
    return canonicalize(
        {
            "schema": SCHEMA_VERSION,
            "uuid": tag.uuid,
            "name": tag.name,
            "content": tag.content,
            "category": tag.category,
            "creator": tag.creator.to_dict(),
        }
    )


def sign_tag(tag: Tag, private_key: bytes) -> str:
    return sign(get_tag_signable_payload(tag), private_key)


def verify_tag(tag: Tag, public_key: bytes) -> bool:
    return _verify_entity(get_tag_signable_payload(tag), tag, public_key)


# =============================================================================
# TRANSFORM
# =============================================================================


def get_transform_signable_payload(transform: Transform) -> str:
    return canonicalize(
        {
            "schema": SCHEMA_VERSION,
            "uuid": transform.uuid,
            "name": transform.name,
            "description": transform.description,
            "tags": [t.to_dict() for t in transform.tags],
            "transform_to": transform.transform_to,
            "transform_from": transform.transform_from,
            "additional_data": transform.additional_data or "",
            "agent": transform.agent.to_dict(),
        }
    )


def sign_transform(transform: Transform, private_key: bytes) -> str:
    return sign(get_transform_signable_payload(transform), private_key)


def verify_transform(transform: Transform, public_key: bytes) -> bool:
    return _verify_entity(get_transform_signable_payload(transform), transform, public_key)


# =============================================================================
# TRUST VOTE
# =============================================================================


def get_trust_vote_signable_payload(vote: TrustVote) -> str:
    return canonicalize(
        {
            "schema": SCHEMA_VERSION,
            "uuid": vote.uuid,
            "voter": vote.voter.to_dict(),
            "target": vote.target,
            "vote_type": vote.vote_type.value,
            "comment": vote.comment or "",
        }
    )


def sign_trust_vote(vote: TrustVote, private_key: bytes) -> str:
    return sign(get_trust_vote_signable_payload(vote), private_key)


def verify_trust_vote(vote: TrustVote, public_key: bytes) -> bool:
    return _verify_entity(get_trust_vote_signable_payload(vote), vote, public_key)
