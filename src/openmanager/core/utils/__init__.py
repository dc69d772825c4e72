"""Shared utilities for OpenManager core (process, I/O, git)."""
