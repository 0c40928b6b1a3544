"""dreamembed: asynchronous embedding and theme-extraction pipeline for dream narrations."""

__version__ = "0.1.0"
