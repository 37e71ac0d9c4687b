"""Configuration package for the investment tracker service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
