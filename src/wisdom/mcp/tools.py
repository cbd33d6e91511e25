# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Tool definitions and dispatch.

Provides:
    TOOL_SPECS -- tool name to ToolSpec (request model + handler)
    WISDOM_TOOLS -- MCP Tool definitions advertised to the host
    handle_wisdom_tool -- validate arguments and dispatch
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from mcp.types import Tool
from pydantic import ValidationError

from ..core.exceptions import ValidationException
from . import requests as rq
from .context import ServerContext
from .handlers import agents, fragments, projects, relations, tags, transforms, utility, validity


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    request: type[rq.ToolRequest]
    handler: Callable[[ServerContext, Any], dict[str, Any]]

    def definition(self) -> Tool:
        return Tool(name=self.name, description=self.description, inputSchema=self.request.model_json_schema())


_SPECS = [
    # Utility
    ToolSpec(
        "wisdom_whoami",
        "Call this at the start of each session to verify agent identity and gateway connectivity. "
        "Shows the current agent, project context and gateway configuration.",
        rq.EmptyRequest,
        utility.whoami,
    ),
    ToolSpec(
        "wisdom_generate_keypair",
        "Generate a new Ed25519 keypair, save it to the project or global config, and optionally "
        "register it as a new agent at the gateway.",
        rq.GenerateKeypairRequest,
        utility.generate_keypair_tool,
    ),
    ToolSpec(
        "wisdom_configure",
        "Update configuration (gateway URL, hub host, current project, default tags, default transform) "
        "and persist it.",
        rq.ConfigureRequest,
        utility.configure,
    ),
    ToolSpec(
        "wisdom_reload_config",
        "Re-read configuration from the config files and environment.",
        rq.EmptyRequest,
        utility.reload_config,
    ),
    ToolSpec(
        "wisdom_quickstart",
        "One-step setup: checks the agent, registers one if needed, verifies the gateway and project, "
        "and loads fragments relevant to the current task. Call this instead of separate setup calls.",
        rq.QuickstartRequest,
        utility.quickstart,
    ),
    # Fragments
    ToolSpec(
        "wisdom_create_fragment",
        "Create a signed knowledge fragment. Every fragment must name the transform that produced it "
        "(source_transform, or the configured default transform).",
        rq.CreateFragmentRequest,
        fragments.fragment_create,
    ),
    ToolSpec("wisdom_get_fragment", "Get a fragment by UUID.", rq.UUIDRequest, fragments.fragment_get),
    ToolSpec(
        "wisdom_search_fragments",
        "Search fragments by text, tags, author, project or state. Search BEFORE creating new fragments "
        "to avoid duplicating existing knowledge.",
        rq.SearchFragmentsRequest,
        fragments.fragment_search,
    ),
    ToolSpec(
        "wisdom_list_fragments",
        "List fragments, scoped to the current project when one is set.",
        rq.ListFragmentsRequest,
        fragments.fragment_list,
    ),
    ToolSpec(
        "wisdom_verify_fragment",
        "Verify a fragment's signature against its creator's public key.",
        rq.UUIDRequest,
        fragments.fragment_verify,
    ),
    # Relations
    ToolSpec(
        "wisdom_create_relation",
        "Create a signed, typed relation between two entities (SUPPORTS, CONTRADICTS, DERIVED_FROM, ...).",
        rq.CreateRelationRequest,
        relations.relation_create,
    ),
    ToolSpec(
        "wisdom_get_relations",
        "Get relations where an entity is the source, the target, or either.",
        rq.GetRelationsRequest,
        relations.relation_get,
    ),
    ToolSpec(
        "wisdom_type_fragment",
        "Assign a semantic type to a fragment (QUESTION, ANSWER, FACT, ...) via a TYPED_AS relation.",
        rq.TypeFragmentRequest,
        relations.fragment_type,
    ),
    ToolSpec(
        "wisdom_link_answer",
        "Link an answer fragment to a question fragment with a SUPPORTS relation.",
        rq.LinkAnswerRequest,
        relations.link_answer,
    ),
    # Tags
    ToolSpec("wisdom_create_tag", "Create a signed tag in a category.", rq.CreateTagRequest, tags.tag_create),
    ToolSpec("wisdom_get_tag", "Get a tag by UUID or by exact name.", rq.GetTagRequest, tags.tag_get),
    ToolSpec("wisdom_list_tags", "List tags, optionally by category.", rq.ListTagsRequest, tags.tag_list),
    ToolSpec(
        "wisdom_tag_fragment",
        "Apply a tag (UUID or name) to a fragment with a RELATED_TO relation.",
        rq.TagFragmentRequest,
        tags.tag_fragment,
    ),
    ToolSpec(
        "wisdom_suggest_tags",
        "Request tag suggestions for content. Returns the existing tags and instructions; "
        "you perform the analysis.",
        rq.SuggestTagsRequest,
        tags.tag_suggest,
    ),
    # Transforms
    ToolSpec(
        "wisdom_transform_to_fragment",
        "Transform content into English knowledge fragments. Returns instructions for you to follow; "
        "store the result with wisdom_store_transformed_fragments.",
        rq.TransformToFragmentRequest,
        transforms.transform_to_fragment,
    ),
    ToolSpec(
        "wisdom_transform_from_fragment",
        "Transform an English fragment into a target language. Returns instructions for you to follow.",
        rq.TransformFromFragmentRequest,
        transforms.transform_from_fragment,
    ),
    ToolSpec(
        "wisdom_store_transformed_fragments",
        "Sign and store the fragments produced from a transform request. Fragments are stored one by one; "
        "if one fails, the ones before it remain stored.",
        rq.StoreTransformedFragmentsRequest,
        transforms.store_transformed_fragments,
    ),
    ToolSpec("wisdom_get_transform", "Get a transform by UUID.", rq.UUIDRequest, transforms.transform_get),
    ToolSpec(
        "wisdom_list_transforms",
        "List transforms, optionally by domain.",
        rq.ListTransformsRequest,
        transforms.transform_list,
    ),
    ToolSpec(
        "wisdom_create_transform",
        "Create a signed transform describing how content is converted into fragments.",
        rq.CreateTransformRequest,
        transforms.transform_create,
    ),
    ToolSpec(
        "wisdom_select_preset",
        "Select a compression preset for a fragment type given the current context pressure (0-1).",
        rq.SelectPresetRequest,
        transforms.preset_select,
    ),
    # Projects
    ToolSpec(
        "wisdom_set_project",
        "Set the current project for this session.",
        rq.SetProjectRequest,
        projects.project_set,
    ),
    ToolSpec(
        "wisdom_get_project",
        "Get a project by UUID, or the current project.",
        rq.OptionalUUIDRequest,
        projects.project_get,
    ),
    ToolSpec(
        "wisdom_create_project",
        "Create a project owned by the current agent and (by default) make it current.",
        rq.CreateProjectRequest,
        projects.project_create,
    ),
    ToolSpec(
        "wisdom_list_projects",
        "List projects owned by the current agent.",
        rq.PageRequest,
        projects.project_list,
    ),
    ToolSpec(
        "wisdom_update_project",
        "Update a project (default: the current project).",
        rq.UpdateProjectRequest,
        projects.project_update,
    ),
    ToolSpec("wisdom_clear_project", "Clear the current project.", rq.ClearProjectRequest, projects.project_clear),
    # Agents & trust
    ToolSpec(
        "wisdom_get_agent",
        "Get an agent by UUID, or the current agent.",
        rq.OptionalUUIDRequest,
        agents.agent_get,
    ),
    ToolSpec("wisdom_list_agents", "List agents known to the gateway.", rq.PageRequest, agents.agent_list),
    ToolSpec(
        "wisdom_trust_agent",
        "Express trust in another agent (-1.0 to +1.0) with a confidence (0-1).",
        rq.TrustAgentRequest,
        agents.trust_agent,
    ),
    ToolSpec(
        "wisdom_vote_on_fragment",
        "Cast a signed verify, contest or retract vote on a fragment.",
        rq.VoteOnFragmentRequest,
        agents.vote_on_fragment,
    ),
    ToolSpec(
        "wisdom_get_fragment_votes",
        "Get the votes on a fragment with a summary by vote type.",
        rq.FragmentRefRequest,
        agents.fragment_votes,
    ),
    ToolSpec(
        "wisdom_calculate_trust",
        "Effective trust in a fragment or agent (direct trust summary or reputation; "
        "trust-path calculation is not implemented).",
        rq.CalculateTrustRequest,
        agents.calculate_trust,
    ),
    # Validity
    ToolSpec(
        "wisdom_get_evidence_balance",
        "Find all supporting and contradicting evidence for a thesis fragment. Returns weighted scores "
        "and a verdict.",
        rq.FragmentIdRequest,
        validity.evidence_balance,
    ),
    ToolSpec(
        "wisdom_find_contradictions",
        "Find fragments that contradict a fragment via CONTRADICTS relations.",
        rq.FragmentIdRequest,
        validity.find_contradictions,
    ),
    ToolSpec(
        "wisdom_check_derivation_chain",
        "Check the integrity of a fragment's derivation chain (DERIVED_FROM relations): missing sources, "
        "cycles, contested or low-confidence premises.",
        rq.CheckDerivationChainRequest,
        validity.derivation_chain,
    ),
    ToolSpec(
        "wisdom_load_context_for_task",
        "Load the most relevant fragments for a task, filtered by trust and confidence within a token budget. "
        "Call this BEFORE starting work on a task.",
        rq.LoadContextRequest,
        validity.load_context_for_task,
    ),
]

TOOL_SPECS: dict[str, ToolSpec] = {spec.name: spec for spec in _SPECS}

WISDOM_TOOLS: list[Tool] = [spec.definition() for spec in _SPECS]


def _validation_message(error: ValidationError) -> tuple[str, str | None]:
    problems = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"]) or "arguments"
        problems.append(f"{loc}: {item['msg']}")
    first = error.errors()[0]["loc"] if error.errors() else ()
    return "; ".join(problems), str(first[0]) if first else None


def handle_wisdom_tool(ctx: ServerContext, name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
    """Validate ``arguments`` against the tool's request model and run its handler.

    Raises:
        ValidationException: If the arguments do not match the request model.
    """
    spec = TOOL_SPECS.get(name)
    if spec is None:
        return {"success": False, "error": f"Unknown tool: {name}"}

    try:
        request = spec.request.model_validate(arguments or {})
    except ValidationError as e:
        message, field = _validation_message(e)
        raise ValidationException(message, field=field) from e
    return spec.handler(ctx, request)
