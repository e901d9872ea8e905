"""Configuration package."""

from agentpay.config.settings import Settings, settings


__all__ = ["Settings", "settings"]
