# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Delegation requests for the host LLM.

The server never runs a model. Transform and tag-suggestion tools return
a structured request with instructions; the host performs the work and
hands the result back through ``wisdom_store_transformed_fragments`` or
the tag tools.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

TRANSFORM_REQUEST = "transform_request"
TAG_SUGGESTION_REQUEST = "tag_suggestion_request"

ENCODE = "encode"
DECODE = "decode"

# Fragments are stored in English
FRAGMENT_LANGUAGE = "en"

DEFAULT_MAX_SUGGESTIONS = 5


def create_encode_instructions(content: str, transform_spec: str | None) -> str:
    instructions = """Please transform the following content into one or more English knowledge fragments. Each fragment should be:
1. Self-contained and atomic (one concept per fragment)
2. Written in clear, precise English
3. Factual and verifiable where possible

"""
    if transform_spec:
        instructions += f"Follow this transform specification:\n{transform_spec}\n\n"

    instructions += f"""Content to transform:
{content}

Return your result as JSON:
{{
  "fragments": [
    {{
      "content": "The transformed knowledge statement in English",
      "type": "FACT" | "QUESTION" | "ANSWER" | "DEFINITION" | "INSIGHT" | etc.
    }}
  ],
  "source_language_detected": "detected language code"
}}

After receiving this response, the fragments will be signed and stored."""
    return instructions


def create_decode_instructions(content: str, target_language: str, transform_spec: str | None) -> str:
    instructions = f"""Please translate/transform the following English knowledge fragment into {target_language}:

Fragment content:
{content}

"""
    if transform_spec:
        instructions += f"Follow this transform specification for decoding:\n{transform_spec}\n\n"

    instructions += f"""Maintain the semantic meaning while adapting to natural {target_language} expression.

Return your result as JSON:
{{
  "content": "The transformed content in {target_language}",
  "notes": "Any relevant notes about the transformation"
}}"""
    return instructions


def create_tag_suggestion_instructions(max_suggestions: int) -> str:
    return f"""Please analyze the content and suggest up to {max_suggestions} relevant tags from the existing tags list. If no suitable tags exist, suggest new tags to create. Return your suggestions in the format:

{{
  "existing_tags": ["uuid1", "uuid2"], // UUIDs of existing tags that match
  "new_tags": [
    {{"name": "tag-name", "category": "topic", "description": "..."}}
  ]
}}"""


@dataclass
class TransformDelegationRequest:
    """Encode or decode work handed to the host."""

    direction: str
    input: str
    target_language: str
    transform_spec: str | None
    instructions: str
    source_language: str | None = None
    domain: str | None = None
    fragment_uuid: str | None = None
    action: str = TRANSFORM_REQUEST

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "action": self.action,
            "direction": self.direction,
            "input": self.input,
            "source_language": self.source_language,
            "target_language": self.target_language,
            "transform_spec": self.transform_spec,
            "instructions": self.instructions,
        }
        if self.domain is not None:
            data["domain"] = self.domain
        if self.fragment_uuid is not None:
            data["fragment_uuid"] = self.fragment_uuid
        return data


@dataclass
class TagSuggestionRequest:
    content: str
    max_suggestions: int
    instructions: str
    existing_tags: list[dict[str, str]] = field(default_factory=list)
    action: str = TAG_SUGGESTION_REQUEST

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "content": self.content,
            "existing_tags": self.existing_tags,
            "max_suggestions": self.max_suggestions,
            "instructions": self.instructions,
        }


def encode_request(
    content: str,
    transform_spec: str | None = None,
    source_language: str | None = None,
    domain: str = "general",
) -> TransformDelegationRequest:
    spec = transform_spec or None
    return TransformDelegationRequest(
        direction=ENCODE,
        input=content,
        source_language=source_language or "auto",
        target_language=FRAGMENT_LANGUAGE,
        domain=domain,
        transform_spec=spec,
        instructions=create_encode_instructions(content, spec),
    )


def decode_request(
    fragment_uuid: str,
    content: str,
    target_language: str,
    transform_spec: str | None = None,
) -> TransformDelegationRequest:
    spec = transform_spec or None
    return TransformDelegationRequest(
        direction=DECODE,
        input=content,
        source_language=FRAGMENT_LANGUAGE,
        target_language=target_language,
        fragment_uuid=fragment_uuid,
        transform_spec=spec,
        instructions=create_decode_instructions(content, target_language, spec),
    )


def tag_suggestion_request(
    content: str,
    existing_tags: list[dict[str, str]],
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
) -> TagSuggestionRequest:
    return TagSuggestionRequest(
        content=content,
        existing_tags=existing_tags,
        max_suggestions=max_suggestions,
        instructions=create_tag_suggestion_instructions(max_suggestions),
    )
