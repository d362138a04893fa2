"""Competency assessment report generation."""

__version__ = "0.1.0"
