"""MCP stdio server exposing the parallel thought tools."""
