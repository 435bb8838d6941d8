from emfad.config.loader import ConfigError, EngineConfig, deep_merge, load_config

__all__ = ["ConfigError", "EngineConfig", "deep_merge", "load_config"]
