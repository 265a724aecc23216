"""
GitLab Code Quality (CodeClimate) output, one JSON issue per line.
"""
import hashlib
import json
from typing import List, Sequence
from ..MODELS.check_failure import Severity
from ..MODELS.lint_result import LintResult

CODECLIMATE_SEVERITIES = {
    Severity.ERROR: "critical",
    Severity.WARNING: "major",
    Severity.INFO: "minor",
    Severity.STYLE: "info",
    Severity.IGNORE: "info",
}


def categories(code: str) -> List[str]:
    """Issue categories by rule number range."""
    if not code.startswith("DL") or not code[2:].isdigit():
        return ["Style"]
    number = int(code[2:])
    if 3000 <= number <= 3010:
        return ["Security", "Bug Risk"]
    if 3011 <= number <= 3030:
        return ["Style", "Clarity"]
    if 3031 <= number <= 3050:
        return ["Performance"]
    if 4000 <= number <= 4999:
        return ["Compatibility", "Bug Risk"]
    return ["Style"]


def fingerprint(filename: str, code: str, line: int) -> str:
    return hashlib.sha1(f"{filename}:{code}:{line}".encode("utf-8")).hexdigest()


def format_codeclimate(results: Sequence[LintResult]) -> str:
    lines = []
    for result in results:
        for f in result.failures:
            issue = {
                "type": "issue",
                "check_name": f.code,
                "description": f.message,
                "content": {
                    "body": f"See the hadolint wiki for more information: https://github.com/hadolint/hadolint/wiki/{f.code}",
                },
                "categories": categories(f.code),
                "location": {
                    "path": result.file,
                    "lines": {"begin": f.line, "end": f.line},
                },
                "severity": CODECLIMATE_SEVERITIES[f.severity],
                "fingerprint": fingerprint(result.file, f.code, f.line),
            }
            try:
                lines.append(json.dumps(issue, ensure_ascii=False))
            except (TypeError, ValueError):
                continue
    return "\n".join(lines)
