"""CLI commands for workspace-mentions."""

__all__ = [
    "mentions",
]
