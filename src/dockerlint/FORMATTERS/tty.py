"""
Human readable terminal output.
"""
from typing import List, Sequence
import click
from ..MODELS.check_failure import Severity
from ..MODELS.lint_result import LintResult

SEVERITY_COLORS = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "green",
    Severity.STYLE: "cyan",
    Severity.IGNORE: "white",
}


def _style(text: str, color: bool, **styles) -> str:
    return click.style(text, **styles) if color else text


def format_tty(results: Sequence[LintResult], color: bool = True) -> str:
    """
    Renders ``file:line severity CODE: message`` lines followed by a summary
    of the counts. Files without failures produce no output.
    """
    lines: List[str] = []
    for result in results:
        for f in result.failures:
            lines.append(
                f"{_style(result.file, color, bold=True)}:{_style(str(f.line), color, dim=True)} "
                f"{_style(f.severity.value, color, fg=SEVERITY_COLORS[f.severity])} "
                f"{_style(f.code, color, dim=True)}: {f.message}"
            )
    if not lines:
        return ""

    errors = sum(r.error_count for r in results)
    warnings = sum(r.warning_count for r in results)
    infos = sum(r.info_count for r in results)
    styles = sum(r.style_count for r in results)

    parts = []
    if errors:
        parts.append(_style(f"{errors} error{'' if errors == 1 else 's'}", color, fg="red"))
    if warnings:
        parts.append(_style(f"{warnings} warning{'' if warnings == 1 else 's'}", color, fg="yellow"))
    if infos:
        parts.append(_style(f"{infos} info", color, fg="green"))
    if styles:
        parts.append(_style(f"{styles} style", color, fg="cyan"))

    lines.append("")
    if parts:
        lines.append(", ".join(parts))
    return "\n".join(lines)
