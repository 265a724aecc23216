# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Linting entry points: parse, run rules, then filter by config and pragmas.
"""
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence
from ..MODELS.check_failure import CheckFailure, Severity
from ..MODELS.lint_config import LintConfig
from ..MODELS.lint_result import LintResult
from ..PARSERS.dockerfile_parser import DockerfileParser
from ..RULES import all_rules, run_rules
from .pragma import PragmaState, extract_pragmas, filter_failures


def lint(content: str, config: Optional[LintConfig] = None, filename: str = "Dockerfile") -> LintResult:
    """
    Lints Dockerfile text.

    Args:
        content (str): Dockerfile source.
        config (LintConfig): Options, defaults when omitted.
        filename (str): Name recorded in the result.

    Returns:
        LintResult: Failures ordered by line, then rule registration order.

    Raises:
        DockerfileParseError: If the Dockerfile is malformed.
    """
    config = config or LintConfig()
    instructions = DockerfileParser().parse_from_string(content)

    if config.disable_ignore_pragma:
        pragmas = PragmaState()
    else:
        pragmas = extract_pragmas(instructions)

    failures = run_rules(all_rules(config), instructions)
    failures = _apply_config(failures, config)
    failures = filter_failures(failures, pragmas)
    return LintResult(file=filename, failures=tuple(failures))


def lint_file(path: str, config: Optional[LintConfig] = None) -> LintResult:
    """
    Lints a Dockerfile on disk.

    :param path: Path to the Dockerfile.
    :param config: Options, defaults when omitted.
    :return: The lint result for the file.
    :raises UnicodeDecodeError: If the file is not UTF-8 text.
    """
    with open(path, 'r', encoding='utf-8') as f:
        content = f.read()
    return lint(content, config, filename=path)


def lint_files(paths: Sequence[str], config: Optional[LintConfig] = None, jobs: int = 1) -> List[LintResult]:
    """
    Lints several files, optionally in parallel. Results keep the order of ``paths``.
    Each file is linted independently, so a parse error propagates from the
    first failing file in order.
    """
    if jobs <= 1 or len(paths) <= 1:
        return [lint_file(path, config) for path in paths]
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        return list(executor.map(lambda p: lint_file(p, config), paths))


def _apply_config(failures: Sequence[CheckFailure], config: LintConfig) -> List[CheckFailure]:
    kept = []
    for failure in failures:
        if config.is_rule_ignored(failure.code):
            continue
        severity = config.effective_severity(failure.code, failure.severity)
        if severity == Severity.IGNORE or severity < config.failure_threshold:
            continue
        if severity != failure.severity:
            failure = failure.with_severity(severity)
        kept.append(failure)
    return kept
