"""MCP server surface: request models, tool registry, handlers and the stdio server."""
