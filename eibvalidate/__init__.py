"""Validation rules for edge image definitions and their configuration directory."""

__version__ = "0.1.0"