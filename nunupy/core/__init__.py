"""Core modules for nunupy."""
