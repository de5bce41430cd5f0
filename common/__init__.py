"""Configuración compartida del bridge."""

from .config import Settings, get_settings, parse_endpoint

__all__ = ["Settings", "get_settings", "parse_endpoint"]
