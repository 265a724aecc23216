"""
Linting pipeline and inline pragma handling.
"""
from .linter import lint, lint_file, lint_files

__all__ = ["lint", "lint_file", "lint_files"]
