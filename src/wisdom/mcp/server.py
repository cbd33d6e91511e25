# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""MCP stdio server for the shared-wisdom network.

Exposes the ``wisdom_*`` tools: identity and configuration, fragments,
relations, tags, transforms (delegated to the host), projects, agents and
trust votes, and validity analysis. Tool definitions and dispatch live in
tools.py; handlers in handlers/.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent

from .. import __version__
from ..core.config import load_config
from ..core.exceptions import (
    ConfigException,
    GatewayError,
    NotFoundError,
    PreconditionError,
    ValidationException,
)
from ..core.logging import configure_logging, correlation_context, tool_logger
from .context import ServerContext
from .tools import WISDOM_TOOLS, handle_wisdom_tool

logger = logging.getLogger(__name__)

server = Server("wisdom")

_context: ServerContext | None = None


def get_context() -> ServerContext:
    """Process-wide context, created on first use."""
    global _context
    if _context is None:
        _context = ServerContext.create()
    return _context


def set_context(ctx: ServerContext | None) -> None:
    global _context
    _context = ctx


# ============================================================================
# Tool Definitions
# ============================================================================


@server.list_tools()
async def list_tools():
    """List available tools."""
    return WISDOM_TOOLS


# ============================================================================
# Tool Router
# ============================================================================


def _error_result(message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    result: dict[str, Any] = {"success": False, "error": message}
    if details:
        result["details"] = details
    return result


def run_tool(ctx: ServerContext, name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
    """Run one tool call and map failures to an error result."""
    # Hub warnings belong to the call whose responses carried them
    ctx.gateway.reset_hub_status()
    try:
        return handle_wisdom_tool(ctx, name, arguments)
    except ValidationException as e:
        logger.warning(f"Validation error in tool {name}: {e}")
        return _error_result(f"Validation error: {e.message}", e.details)
    except PreconditionError as e:
        logger.warning(f"Precondition failed in tool {name}: {e}")
        return _error_result(e.message, e.details)
    except NotFoundError as e:
        logger.info(f"Not found in tool {name}: {e}")
        return _error_result(e.message, e.details)
    except ConfigException as e:
        logger.error(f"Configuration error in tool {name}: {e}")
        return _error_result(f"Configuration error: {e.message}", e.details)
    except GatewayError as e:
        logger.error(f"Gateway error in tool {name}: {e}")
        return _error_result(f"Gateway error: {e.message}", e.details)
    except Exception as e:
        logger.exception(f"Unexpected error in tool {name}")
        return _error_result(f"Internal error: {str(e)}")


def render_result(ctx: ServerContext, result: dict[str, Any]) -> list[TextContent]:
    """JSON result, followed by any hub resource warnings as a second block."""
    content = [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]
    warnings = ctx.gateway.hub_warning_messages()
    if warnings:
        content.append(TextContent(type="text", text="\n---\n" + "\n".join(warnings)))
    return content


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls by delegating to the tool handlers."""
    ctx = get_context()
    with correlation_context(tool=name):
        tool_logger.log_call(name, arguments or {})
        started = time.monotonic()
        result = run_tool(ctx, name, arguments)
        tool_logger.log_result(name, bool(result.get("success")), (time.monotonic() - started) * 1000)
        return render_result(ctx, result)


# ============================================================================
# Server Entry Point
# ============================================================================


def cli_health_check() -> int:
    """Print configuration and gateway reachability. Returns an exit code."""
    ctx = ServerContext.create()
    reachable = ctx.gateway.is_reachable()
    report = {
        "version": __version__,
        "gateway_url": ctx.config.gateway_url,
        "gateway_reachable": reachable,
        "agent_uuid": ctx.config.agent_uuid,
        "has_private_key": ctx.keys.has_private_key(),
        "current_project": ctx.current_project(),
    }
    print(json.dumps(report, indent=2))
    return 0 if reachable else 1


def run() -> None:
    """Run the MCP server."""
    parser = argparse.ArgumentParser(description="Wisdom MCP Server")
    parser.add_argument("--health-check", action="store_true", help="Check gateway connectivity and exit")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    args = parser.parse_args()

    configure_logging(load_config().config, level=args.log_level)

    if args.health_check:
        sys.exit(cli_health_check())

    ctx = get_context()
    logger.info(f"Wisdom MCP server {__version__} starting (gateway {ctx.config.gateway_url})")

    async def main():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    asyncio.run(main())


if __name__ == "__main__":
    run()
