"""
SARIF 2.1.0 output for code scanning integrations.
"""
import json
from typing import Any, Dict, List, Sequence
from .. import __version__
from ..MODELS.check_failure import Severity
from ..MODELS.lint_result import LintResult

SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
SARIF_VERSION = "2.1.0"
HELP_URI = "https://github.com/hadolint/hadolint/wiki/{}"

SARIF_LEVELS = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.INFO: "note",
    Severity.STYLE: "note",
    Severity.IGNORE: "none",
}


def _document(rules: List[Dict[str, Any]], results: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [{
            "tool": {
                "driver": {
                    "name": "dockerlint",
                    "version": __version__,
                    "informationUri": "https://github.com/hadolint/hadolint",
                    "rules": rules,
                },
            },
            "results": results,
        }],
    }


def format_sarif(results: Sequence[LintResult]) -> str:
    """
    Renders a single SARIF run. Each rule that fired appears once in the
    driver's rule list, in order of first appearance.
    """
    rules: List[Dict[str, Any]] = []
    seen = set()
    entries: List[Dict[str, Any]] = []
    for result in results:
        for f in result.failures:
            if f.code not in seen:
                seen.add(f.code)
                rules.append({
                    "id": f.code,
                    "shortDescription": {"text": f.message},
                    "helpUri": HELP_URI.format(f.code),
                })
            region: Dict[str, Any] = {"startLine": f.line}
            if f.column is not None:
                region["startColumn"] = f.column
            entries.append({
                "ruleId": f.code,
                "level": SARIF_LEVELS[f.severity],
                "message": {"text": f.message},
                "locations": [{
                    "physicalLocation": {
                        "artifactLocation": {"uri": result.file},
                        "region": region,
                    },
                }],
            })
    try:
        return json.dumps(_document(rules, entries), indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return json.dumps(_document([], []), indent=2)
