"""Reporting and export module for survey statistics."""

from .tabular_exporter import TabularExporter, sanitize_header, LONG_COLUMNS

__all__ = [
    'TabularExporter',
    'sanitize_header',
    'LONG_COLUMNS'
]
