"""Configuration loading for only-agent."""

from .runtime_config import AgentSettings, get_settings, load_config, reset_config

__all__ = ["AgentSettings", "get_settings", "load_config", "reset_config"]
