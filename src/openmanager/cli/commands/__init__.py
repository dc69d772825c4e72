"""Top-level OpenManager commands (one module per command)."""
