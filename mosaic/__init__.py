"""Mosaic - schema-driven multilingual content and page composition."""

__version__ = "0.1.0"
