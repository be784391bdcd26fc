"""Confess Wall: anonymous confession feed with abuse protection."""

__version__ = "1.0.0"
