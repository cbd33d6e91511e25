# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Wisdom MCP - knowledge network tools for LLM agents.

Exposes the shared-wisdom gateway (fragments, tags, relations, transforms,
trust votes, projects) as MCP tools. Everything a tool submits is signed
locally with the agent's Ed25519 key over a canonical payload.

Architecture:
  Tool call (pydantic request model)
    → Payload builder (addresses resolved through the LRU address cache)
    → Canonical payload + Ed25519 signature
    → Gateway (HTTP + JSON)

Read-path analysis (evidence balance, derivation chains, context loading)
runs locally over data fetched from the gateway.

Entry point: ``wisdom-mcp`` (stdio MCP server)
"""

__version__ = "0.2.0"
