from emfad.data.config_manager import ConfigManager

__all__ = ["ConfigManager"]
