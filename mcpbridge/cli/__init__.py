"""Command-line entry points for mcpbridge."""
