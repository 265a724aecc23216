"""
GNU compiler style output, understood by most editors.
"""
from typing import Sequence
from ..MODELS.lint_result import LintResult


def format_gnu(results: Sequence[LintResult]) -> str:
    """Renders ``file:line[:column]: severity: message [CODE]`` per failure."""
    lines = []
    for result in results:
        for f in result.failures:
            location = f"{result.file}:{f.line}"
            if f.column is not None:
                location += f":{f.column}"
            lines.append(f"{location}: {f.severity.value}: {f.message} [{f.code}]")
    return "\n".join(lines)
