"""
Report generation for explain output and index recommendations.
"""

from .formatters import (
    advice_to_document,
    export_advice_csv,
    export_advice_json,
    format_advice_console,
    format_explain_console,
    render_create_index,
)

__all__ = [
    "advice_to_document",
    "export_advice_csv",
    "export_advice_json",
    "format_advice_console",
    "format_explain_console",
    "render_create_index",
]
