"""Serving library for computer vision and AI robotics pipelines."""

__version__ = "0.0.1rc1"

__all__ = ["__version__"]