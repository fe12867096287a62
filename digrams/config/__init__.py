from .settings import Settings, load_settings, validate_settings

__all__ = ["Settings", "load_settings", "validate_settings"]
