"""
Outcome of linting a single Dockerfile.
"""
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict
from .check_failure import CheckFailure, Severity
from .lint_config import LintConfig


class LintResult(BaseModel):
    """
    Ordered failures found in one file plus derived per-severity counts.
    """
    model_config = ConfigDict(frozen=True)

    file: str = "Dockerfile"
    failures: Tuple[CheckFailure, ...] = ()

    def _count(self, severity: Severity) -> int:
        return sum(1 for f in self.failures if f.severity == severity)

    @property
    def error_count(self) -> int:
        return self._count(Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return self._count(Severity.WARNING)

    @property
    def info_count(self) -> int:
        return self._count(Severity.INFO)

    @property
    def style_count(self) -> int:
        return self._count(Severity.STYLE)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def max_severity(self) -> Optional[Severity]:
        if not self.failures:
            return None
        return max((f.severity for f in self.failures), key=lambda s: s.rank)

    def codes(self):
        return [f.code for f in self.failures]

    def should_fail(self, config: Optional[LintConfig] = None) -> bool:
        """
        True when a failure reaches the configured threshold and ``no_fail`` is unset.
        """
        config = config or LintConfig()
        if config.no_fail:
            return False
        worst = self.max_severity
        if worst is None or worst == Severity.IGNORE:
            return False
        return worst >= config.failure_threshold
