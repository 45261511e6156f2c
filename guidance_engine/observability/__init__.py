"""
Output layer for the guidance engine.

Main exports:
- ReportRenderer: Renders reports and recommendations as text, Markdown or JSON
- FORMATS: Supported output format names
"""
from .reporter import FORMATS, ReportRenderer, to_json

__all__ = [
    "FORMATS",
    "ReportRenderer",
    "to_json",
]
