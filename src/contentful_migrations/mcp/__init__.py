"""MCP server exposing content transfers over stdio."""
