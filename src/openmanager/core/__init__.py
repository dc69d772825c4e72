"""OpenManager core: worktrees, image cache, hooks and the session lifecycle."""
