"""
Output formatters. Every formatter is a pure function from lint results to text.
"""
from typing import Sequence
from ..MODELS.lint_result import LintResult
from .checkstyle import format_checkstyle
from .codeclimate import format_codeclimate
from .gnu import format_gnu
from .json_formatter import format_json
from .sarif import format_sarif
from .tty import format_tty

FORMATS = ("tty", "json", "checkstyle", "gnu", "sarif", "codeclimate")


def format_results(results: Sequence[LintResult], fmt: str = "tty", color: bool = False) -> str:
    """
    Renders results in the named format.

    :param results: One result per linted file.
    :param fmt: One of FORMATS.
    :param color: Colorize tty output.
    :raises ValueError: If the format is unknown.
    """
    if fmt == "tty":
        return format_tty(results, color=color)
    if fmt == "json":
        return format_json(results)
    if fmt == "checkstyle":
        return format_checkstyle(results)
    if fmt == "gnu":
        return format_gnu(results)
    if fmt == "sarif":
        return format_sarif(results)
    if fmt == "codeclimate":
        return format_codeclimate(results)
    raise ValueError(f"Unknown format: {fmt}")


def format_result(result: LintResult, fmt: str = "tty", color: bool = False) -> str:
    return format_results([result], fmt, color)
