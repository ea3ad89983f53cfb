"""Workspace @mention context loading for chat messages."""
