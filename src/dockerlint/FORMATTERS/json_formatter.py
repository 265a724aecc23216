"""
JSON output: one compact array of failures across all files.
"""
import json
from typing import Sequence
from ..MODELS.lint_result import LintResult


def format_json(results: Sequence[LintResult]) -> str:
    """
    Renders failures as ``[{"line", "column", "code", "message", "level", "file"}, ...]``.
    ``column`` is null when unknown.
    """
    items = []
    for result in results:
        for failure in result.failures:
            items.append({
                "line": failure.line,
                "column": failure.column,
                "code": failure.code,
                "message": failure.message,
                "level": failure.severity.value,
                "file": result.file,
            })
    try:
        return json.dumps(items, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        return "[]"
