# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Identity, configuration and session bootstrap tools."""

from __future__ import annotations

import logging
from typing import Any

from ...core.exceptions import ConfigException, GatewayError
from ...core.payloads import new_agent
from ...core.validity import truncate
from ...crypto.keys import KeyPair, generate_keypair
from ...crypto.signing import sign_agent
from ...gateway.types import Agent
from ..context import KEYPAIR_REMEDY, ServerContext
from ..requests import ConfigureRequest, EmptyRequest, GenerateKeypairRequest, QuickstartRequest

logger = logging.getLogger(__name__)

QUICKSTART_SEARCH_LIMIT = 10
AUTO_REGISTERED_DESCRIPTION = "AI Agent (auto-registered)"


def _register_agent(ctx: ServerContext, keypair: KeyPair, description: str) -> Agent:
    """Sign a fresh Agent with ``keypair`` and register it at the gateway."""
    agent = new_agent(keypair.public_key_base64, description, ctx.config.hub_host)
    agent.signature = sign_agent(agent, keypair.private_key)
    created = ctx.gateway.create_agent(agent)
    ctx.remember(created)
    logger.info(f"Registered agent {created.uuid}")
    return created


def _config_summary(ctx: ServerContext) -> dict[str, Any]:
    config = ctx.config
    return {
        "gateway_url": config.gateway_url,
        "hub_host": config.hub_host,
        "current_project": config.current_project,
        "default_tags": config.default_tags,
        "default_transform": config.default_transform,
    }


def whoami(ctx: ServerContext, req: EmptyRequest) -> dict[str, Any]:
    """Current identity, project context and gateway connectivity."""
    config = ctx.config
    paths = ctx.loaded.paths
    has_key = ctx.keys.has_private_key()

    result: dict[str, Any] = {
        "success": True,
        "status": "configured" if has_key and config.agent_uuid else "unconfigured",
        "agent_uuid": config.agent_uuid,
        "has_private_key": has_key,
        "public_key": ctx.keys.get_public_key_base64() if has_key else None,
        "gateway_reachable": ctx.gateway.is_reachable(),
        **_config_summary(ctx),
        "current_project": ctx.current_project(),
        "config_paths": {
            "project_root": str(paths.project_root) if paths.project_root else None,
            "project_config": str(paths.project_config) if paths.project_config else None,
            "global_config": str(paths.global_config),
        },
        "recent_fragments": ctx.state.recent_fragments,
        "address_cache": ctx.cache.stats(),
    }
    if not has_key:
        result["hint"] = f"No private key configured. Run {KEYPAIR_REMEDY} to create one."
    elif not config.agent_uuid:
        result["hint"] = f"No agent registered. Run {KEYPAIR_REMEDY} to register one."
    return result


def generate_keypair_tool(ctx: ServerContext, req: GenerateKeypairRequest) -> dict[str, Any]:
    """Create a new signing key, optionally registering it as an agent.

    The key is saved even when registration fails, so registration can be
    retried without losing it. An agent UUID left over from a previous key
    is cleared because it no longer matches.
    """
    keypair = generate_keypair()
    result: dict[str, Any] = {
        "success": True,
        "public_key": keypair.public_key_base64,
        "private_key_preview": keypair.private_key_base64[:8] + "...",
    }

    updates: dict[str, Any] = {"private_key": keypair.private_key_base64, "agent_uuid": None}
    if req.register_agent:
        try:
            agent = _register_agent(ctx, keypair, req.description)
        except GatewayError as e:
            logger.warning(f"Agent registration failed: {e.message}")
            result["registered"] = False
            result["registration_error"] = e.message
        else:
            updates["agent_uuid"] = agent.uuid
            result["agent_uuid"] = agent.uuid
            result["registered"] = True

    try:
        path = ctx.update_config(updates, persist=True, save_to=req.save_to)
    except ConfigException as e:
        logger.error(f"Could not save new key: {e.message}")
        result["saved"] = False
        result["save_error"] = e.message
    else:
        result["saved"] = True
        result["saved_to"] = str(path)
    return result


def configure(ctx: ServerContext, req: ConfigureRequest) -> dict[str, Any]:
    """Update configuration values and persist them.

    An empty string for ``current_project`` or ``default_transform`` clears
    the setting; omitted fields are left alone.
    """
    given = req.model_fields_set
    updates: dict[str, Any] = {}
    if req.gateway_url:
        updates["gateway_url"] = req.gateway_url
    if "hub_host" in given:
        updates["hub_host"] = req.hub_host or None
    if "current_project" in given:
        updates["current_project"] = req.current_project or None
    if req.default_tags is not None:
        updates["default_tags"] = req.default_tags
    if "default_transform" in given:
        updates["default_transform"] = req.default_transform or None

    path = ctx.update_config(updates, persist=True, save_to=req.save_to) if updates else None
    return {
        "success": True,
        "updated": sorted(updates),
        "saved_to": str(path) if path else None,
        "current_config": _config_summary(ctx),
    }


def reload_config(ctx: ServerContext, req: EmptyRequest) -> dict[str, Any]:
    ctx.reload_config()
    return {
        "success": True,
        "message": "Configuration reloaded",
        "gateway_url": ctx.config.gateway_url,
        "agent_uuid": ctx.config.agent_uuid,
        "current_project": ctx.current_project(),
    }


def quickstart(ctx: ServerContext, req: QuickstartRequest) -> dict[str, Any]:
    """One-step setup: ensure an agent, probe the gateway, report the project,
    and preload fragments relevant to the task when one is described.
    """
    steps: list[str] = []
    result: dict[str, Any] = {"success": True}

    # Agent
    if ctx.keys.has_private_key() and ctx.config.agent_uuid:
        result["agent_uuid"] = ctx.config.agent_uuid
        result["auto_registered"] = False
        steps.append(f"Agent already configured: {ctx.config.agent_uuid}")
    else:
        steps.append("Agent not configured, auto-registering")
        keypair = generate_keypair()
        try:
            agent = _register_agent(ctx, keypair, req.agent_description or AUTO_REGISTERED_DESCRIPTION)
            ctx.update_config({"private_key": keypair.private_key_base64, "agent_uuid": agent.uuid}, persist=True)
        except (GatewayError, ConfigException) as e:
            logger.warning(f"Auto-registration failed: {e.message}")
            steps.append(f"Auto-registration failed: {e.message}")
            result["auto_registered"] = False
        else:
            result["agent_uuid"] = agent.uuid
            result["auto_registered"] = True
            steps.append(f"Agent registered: {agent.uuid}")

    # Gateway
    reachable = ctx.gateway.is_reachable()
    result["gateway_reachable"] = reachable
    steps.append("Gateway reachable" if reachable else "WARNING: Gateway not reachable")

    # Project
    project = ctx.current_project()
    result["current_project"] = project
    if project:
        steps.append(f"Project set: {project}")
    else:
        steps.append("No project set (use wisdom_create_project or wisdom_set_project)")

    # Context
    if req.task_description and reachable:
        try:
            page = ctx.gateway.search_fragments(
                query=req.task_description, project=project, limit=QUICKSTART_SEARCH_LIMIT
            )
        except GatewayError as e:
            logger.warning(f"Quickstart context search failed: {e.message}")
            steps.append(f"Could not load context (search failed: {e.message})")
        else:
            ctx.remember(*page.items)
            result["relevant_fragments"] = len(page.items)
            if page.items:
                result["context"] = [
                    {"uuid": f.uuid, "content": truncate(f.content), "trust_score": f.trust_summary.score}
                    for f in page.items
                ]
                steps.append(f"Loaded {len(page.items)} relevant fragments")
            else:
                steps.append("No prior knowledge found for this task")

    result["steps"] = steps
    return result
