"""Book configuration and markdown chapter preprocessing."""

__version__ = "0.4.21"

__all__ = ["config", "sections", "preprocess", "linkparse", "links"]