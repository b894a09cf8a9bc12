from .paths import PathManager

__all__ = ["PathManager"]
