# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Typed tool arguments.

Each tool validates its raw argument object into one of these models
before any handler code runs; the JSON schema advertised to the host is
generated from the same model.
"""

from __future__ import annotations

from typing import Annotated, Literal
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from ..core.validity import DEFAULT_MAX_DEPTH, DEFAULT_MIN_CONFIDENCE, DEFAULT_TOKEN_BUDGET
from ..gateway.types import (
    FRAGMENT_TYPES,
    AddressDomain,
    EvidenceType,
    FragmentState,
    ProjectVisibility,
    RelationType,
    TagCategory,
    VoteType,
)
from ..transform.delegation import DEFAULT_MAX_SUGGESTIONS


def _uuid(value: str) -> str:
    return str(UUID(value))


UUIDStr = Annotated[str, AfterValidator(_uuid)]
Confidence = Annotated[float, Field(ge=0.0, le=1.0)]
Limit = Annotated[int, Field(ge=1, le=500)]
Offset = Annotated[int, Field(ge=0)]
SaveTo = Literal["project", "global"]
Direction = Literal["source", "target", "both"]
FragmentTypeName = Literal[tuple(FRAGMENT_TYPES)]  # type: ignore[valid-type]


class ToolRequest(BaseModel):
    """Base for tool arguments. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", use_enum_values=False)


class EmptyRequest(ToolRequest):
    pass


# =============================================================================
# UTILITY
# =============================================================================


class GenerateKeypairRequest(ToolRequest):
    description: str = Field(default="AI Agent", description="Description for the new agent")
    save_to: SaveTo = Field(
        default="project",
        description="Where to save the key: project (.wisdom/config.json) or global (~/.config/claude/wisdom.json)",
    )
    register_agent: bool = Field(default=True, alias="register", description="Register the agent at the gateway")


class ConfigureRequest(ToolRequest):
    gateway_url: str | None = Field(default=None, description="Gateway URL (e.g., http://localhost:8080)")
    hub_host: str | None = Field(default=None, description="Hub host:port used to address new references")
    current_project: str | None = Field(default=None, description="Current project UUID (empty string clears it)")
    default_tags: list[UUIDStr] | None = Field(default=None, description="Default tag UUIDs for new fragments")
    default_transform: str | None = Field(default=None, description="Default transform UUID (empty string clears it)")
    save_to: SaveTo | None = Field(default=None, description="Where to save changes (default: project if inside one)")


class QuickstartRequest(ToolRequest):
    task_description: str | None = Field(default=None, description="Current task, used to preload relevant fragments")
    agent_description: str | None = Field(default=None, description="Agent description if registration is needed")


# =============================================================================
# FRAGMENTS
# =============================================================================


class CreateFragmentRequest(ToolRequest):
    content: str = Field(min_length=1, description="Knowledge statement, in English")
    source_transform: str | None = Field(
        default=None, description="UUID of the transform that produced this fragment (default: configured transform)"
    )
    tags: list[UUIDStr] | None = Field(default=None, description="Tag UUIDs (default: configured default tags)")
    confidence: Confidence | None = Field(default=None, description="Confidence 0-1 (default 0.5)")
    evidence_type: EvidenceType | None = Field(default=None, description="How the content was derived")
    project: UUIDStr | None = Field(default=None, description="Project UUID (default: current project)")


class UUIDRequest(ToolRequest):
    uuid: UUIDStr = Field(description="Entity UUID")


class SearchFragmentsRequest(ToolRequest):
    query: str | None = Field(default=None, description="Full-text query")
    tags: list[str] | None = Field(default=None, description="Filter by tag UUIDs")
    author: UUIDStr | None = Field(default=None, description="Filter by creator agent UUID")
    project: UUIDStr | None = Field(default=None, description="Filter by project (default: current project)")
    state: FragmentState | None = Field(default=None, description="Filter by lifecycle state")
    limit: Limit = Field(default=20, description="Maximum results")
    offset: Offset = Field(default=0, description="Offset for pagination")


class ListFragmentsRequest(ToolRequest):
    limit: Limit = Field(default=20, description="Maximum results")
    offset: Offset = Field(default=0, description="Offset for pagination")
    project: UUIDStr | None = Field(default=None, description="Project UUID (default: current project)")


# =============================================================================
# RELATIONS
# =============================================================================


class CreateRelationRequest(ToolRequest):
    source: UUIDStr = Field(description="UUID of the entity the relation starts from")
    target: UUIDStr = Field(description="UUID of the entity the relation points to")
    relation_type: RelationType = Field(description="Kind of relation")
    content: str = Field(default="", description="Free-text explanation")
    confidence: Confidence | None = Field(default=None, description="Confidence 0-1 (default 1.0)")
    source_domain: AddressDomain = Field(default=AddressDomain.FRAGMENT, description="Kind of the source entity")
    target_domain: AddressDomain = Field(default=AddressDomain.FRAGMENT, description="Kind of the target entity")


class GetRelationsRequest(ToolRequest):
    entity: UUIDStr = Field(description="Entity UUID")
    direction: Direction | None = Field(default=None, description="Relations where the entity is source, target or both")


class TypeFragmentRequest(ToolRequest):
    fragment: UUIDStr = Field(description="Fragment UUID")
    fragment_type: FragmentTypeName = Field(description="Semantic type")


class LinkAnswerRequest(ToolRequest):
    question: UUIDStr = Field(description="Question fragment UUID")
    answer: UUIDStr = Field(description="Answer fragment UUID")


# =============================================================================
# TAGS
# =============================================================================


class CreateTagRequest(ToolRequest):
    name: str = Field(min_length=1, description="Tag name")
    category: TagCategory = Field(description="Tag category")
    description: str = Field(default="", description="What the tag means")


class GetTagRequest(ToolRequest):
    uuid: UUIDStr | None = Field(default=None, description="Tag UUID")
    name: str | None = Field(default=None, description="Tag name, used when no UUID is given")


class ListTagsRequest(ToolRequest):
    category: TagCategory | None = Field(default=None, description="Filter by category")
    limit: Limit = Field(default=100, description="Maximum results")
    offset: Offset = Field(default=0, description="Offset for pagination")


class TagFragmentRequest(ToolRequest):
    fragment: UUIDStr = Field(description="Fragment UUID")
    tag: str = Field(min_length=1, description="Tag UUID or tag name")


class SuggestTagsRequest(ToolRequest):
    content: str = Field(min_length=1, description="Content to suggest tags for")
    max_suggestions: int = Field(default=DEFAULT_MAX_SUGGESTIONS, ge=1, le=50, description="Maximum suggestions")


# =============================================================================
# TRANSFORMS
# =============================================================================


class TransformToFragmentRequest(ToolRequest):
    content: str = Field(min_length=1, description="Content to transform into fragments")
    source_language: str | None = Field(default=None, description="Source language (auto-detected when omitted)")
    domain: str = Field(default="general", description="Domain used to pick a transform (e.g., software)")
    transform_uuid: UUIDStr | None = Field(default=None, description="Specific transform to follow")


class TransformFromFragmentRequest(ToolRequest):
    fragment_uuid: UUIDStr = Field(description="Fragment to transform")
    target_language: str = Field(min_length=1, description="Target language (e.g., de, German)")
    transform_uuid: UUIDStr | None = Field(default=None, description="Specific transform to follow")


class TransformedFragment(BaseModel):
    content: str = Field(min_length=1)
    type: str | None = None


class StoreTransformedFragmentsRequest(ToolRequest):
    fragments: list[TransformedFragment] = Field(min_length=1, description="Fragments produced by the host")
    source_transform: str | None = Field(
        default=None, description="Transform UUID that was used (default: configured transform)"
    )
    project: UUIDStr | None = Field(default=None, description="Project UUID (default: current project)")


class ListTransformsRequest(ToolRequest):
    domain: str | None = Field(default=None, description="Filter by domain")
    limit: Limit = Field(default=20, description="Maximum results")
    offset: Offset = Field(default=0, description="Offset for pagination")


class CreateTransformRequest(ToolRequest):
    name: str = Field(min_length=1, description="Transform name")
    description: str = Field(description="Transform description")
    transform_to: str = Field(description="Target format (e.g., text/markdown)")
    transform_from: str = Field(description="Source format (e.g., text/plain)")
    additional_data: str = Field(default="", description="Transform specification handed to the host")
    tags: list[UUIDStr] | None = Field(default=None, description="Tag UUIDs")


class SelectPresetRequest(ToolRequest):
    fragment_type: str = Field(min_length=1, description="Fragment type (DEFINITION, FACT, HYPOTHESIS, ...)")
    context_pressure: Confidence = Field(default=0.0, description="0 = plenty of room, 1 = budget exhausted")


# =============================================================================
# PROJECTS
# =============================================================================


class SetProjectRequest(ToolRequest):
    project: UUIDStr = Field(description="Project UUID")
    persist: bool = Field(default=True, description="Save to the config file")


class OptionalUUIDRequest(ToolRequest):
    uuid: UUIDStr | None = Field(default=None, description="Entity UUID (default: the current one)")


class CreateProjectRequest(ToolRequest):
    name: str = Field(min_length=1, description="Project name")
    description: str = Field(default="", description="Project description")
    default_tags: list[UUIDStr] | None = Field(default=None, description="Default tag UUIDs")
    default_transform: UUIDStr | None = Field(default=None, description="Default transform UUID")
    visibility: ProjectVisibility = Field(default=ProjectVisibility.PRIVATE, description="Who can see the project")
    set_as_current: bool = Field(default=True, description="Make it the current project")


class PageRequest(ToolRequest):
    limit: Limit = Field(default=20, description="Maximum results")
    offset: Offset = Field(default=0, description="Offset for pagination")


class UpdateProjectRequest(ToolRequest):
    uuid: UUIDStr | None = Field(default=None, description="Project UUID (default: current project)")
    name: str | None = Field(default=None, description="New name")
    description: str | None = Field(default=None, description="New description")
    default_tags: list[UUIDStr] | None = Field(default=None, description="New default tag UUIDs")
    default_transform: str | None = Field(default=None, description="New default transform (empty string clears it)")
    visibility: ProjectVisibility | None = Field(default=None, description="New visibility")


class ClearProjectRequest(ToolRequest):
    persist: bool = Field(default=True, description="Save to the config file")


# =============================================================================
# AGENTS & TRUST
# =============================================================================


class TrustAgentRequest(ToolRequest):
    target_agent: UUIDStr = Field(description="Agent to express trust in")
    trust_level: float = Field(description="Trust from -1.0 (distrust) to +1.0 (full trust)")
    confidence: float = Field(default=1.0, description="Confidence in this judgement, 0-1")


class VoteOnFragmentRequest(ToolRequest):
    fragment: UUIDStr = Field(description="Fragment UUID")
    vote_type: VoteType = Field(description="verify, contest or retract")
    comment: str = Field(default="", description="Optional justification")


class FragmentRefRequest(ToolRequest):
    fragment: UUIDStr = Field(description="Fragment UUID")


class CalculateTrustRequest(ToolRequest):
    entity: UUIDStr = Field(description="Fragment or agent UUID")
    perspective: UUIDStr | None = Field(default=None, description="Agent whose view to take (default: current agent)")


# =============================================================================
# VALIDITY
# =============================================================================


class FragmentIdRequest(ToolRequest):
    fragment_id: UUIDStr = Field(description="Fragment UUID")


class CheckDerivationChainRequest(ToolRequest):
    fragment_id: UUIDStr = Field(description="Fragment whose derivation chain to check")
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=0, le=100, description="Maximum depth to traverse")


class LoadContextRequest(ToolRequest):
    task_description: str = Field(min_length=1, description="Task to find relevant fragments for")
    token_budget: int = Field(default=DEFAULT_TOKEN_BUDGET, ge=1, description="Approximate token budget")
    min_confidence: Confidence = Field(default=DEFAULT_MIN_CONFIDENCE, description="Minimum fragment confidence")
    project: UUIDStr | None = Field(default=None, description="Project UUID (default: current project)")
