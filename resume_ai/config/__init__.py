"""Configuration for resume-ai."""

from resume_ai.config.settings import Settings, get_settings, reset_settings

__all__ = ["Settings", "get_settings", "reset_settings"]
