"""Kurator: governance relationship CRM with block-scoped access and audit."""

__version__ = "0.1.0"
