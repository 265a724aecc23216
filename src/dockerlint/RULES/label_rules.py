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
Rules for LABEL instructions: OCI annotation formats and the configured label schema.
"""
import re
from datetime import datetime
from typing import Dict
from ..MODELS.check_failure import Severity
from ..MODELS.instruction import From, Label
from ..MODELS.lint_config import LabelType, LintConfig
from .engine import CustomRule, SimpleRule

RFC3339_RE = re.compile(
    r'^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$'
)
EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

SPDX_LICENSES = {
    "MIT", "APACHE-2.0", "GPL-2.0", "GPL-2.0-ONLY", "GPL-2.0-OR-LATER",
    "GPL-3.0", "GPL-3.0-ONLY", "GPL-3.0-OR-LATER", "BSD-2-CLAUSE",
    "BSD-3-CLAUSE", "ISC", "MPL-2.0", "LGPL-2.1", "LGPL-2.1-ONLY",
    "LGPL-2.1-OR-LATER", "LGPL-3.0", "LGPL-3.0-ONLY", "LGPL-3.0-OR-LATER",
    "AGPL-3.0", "AGPL-3.0-ONLY", "AGPL-3.0-OR-LATER", "UNLICENSE",
    "CC0-1.0", "CC-BY-4.0", "CC-BY-SA-4.0", "WTFPL", "ZLIB", "0BSD",
    "EPL-1.0", "EPL-2.0", "EUPL-1.2", "POSTGRESQL", "OFL-1.1",
    "ARTISTIC-2.0", "BSL-1.0", "CDDL-1.0", "CDDL-1.1", "CPL-1.0",
}
SPDX_OPERATORS = {"AND", "OR", "WITH"}

# Pre-OCI label-schema.org keys that duplicate org.opencontainers.image.*
SUPERFLUOUS_LABELS = {
    "description", "version", "build-date", "vcs-url", "vcs-ref", "vendor", "name", "url",
    "documentation", "source", "licenses", "title", "revision", "created",
}

OCI_CREATED = "org.opencontainers.image.created"
OCI_LICENSES = "org.opencontainers.image.licenses"
OCI_DOCUMENTATION = "org.opencontainers.image.documentation"
OCI_SOURCE = "org.opencontainers.image.source"


def is_rfc3339(value: str) -> bool:
    match = RFC3339_RE.match(value)
    if not match:
        return False
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    try:
        datetime(year, month, day, hour, minute, second)
    except ValueError:
        return False
    return True


def is_spdx(value: str) -> bool:
    parts = [p for p in re.split(r'[()\s]+', value.upper()) if p and p not in SPDX_OPERATORS]
    if not parts:
        return False
    return all(p in SPDX_LICENSES or p.startswith("LICENSEREF-") for p in parts)


def is_url(value: str) -> bool:
    return value.startswith(("http://", "https://")) and len(value.split("://", 1)[1]) > 0


def is_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def _label_value_check(key: str, validator):
    def predicate(instruction, shell) -> bool:
        if not isinstance(instruction, Label):
            return True
        return all(validator(value) for k, value in instruction.pairs if k == key)
    return predicate


DL3051 = SimpleRule(
    "DL3051", Severity.WARNING,
    "Label `org.opencontainers.image.created` is empty or not a valid RFC3339 date.",
    _label_value_check(OCI_CREATED, is_rfc3339),
)

DL3052 = SimpleRule(
    "DL3052", Severity.WARNING,
    "Label `org.opencontainers.image.licenses` is not a valid SPDX expression.",
    _label_value_check(OCI_LICENSES, is_spdx),
)

DL3055 = SimpleRule(
    "DL3055", Severity.WARNING,
    "Label `org.opencontainers.image.documentation` is not a valid URL.",
    _label_value_check(OCI_DOCUMENTATION, is_url),
)

DL3056 = SimpleRule(
    "DL3056", Severity.WARNING,
    "Label `org.opencontainers.image.source` is not a valid URL.",
    _label_value_check(OCI_SOURCE, is_url),
)


def missing_schema_labels(config: LintConfig) -> CustomRule:
    """
    DL3049: every label in the schema must be set in the final stage.

    A stage built ``FROM`` an earlier stage inherits that stage's labels.
    """
    schema = sorted(config.label_schema)

    def step(state, line, instruction, shell):
        if isinstance(instruction, From):
            state.file.set_int("stage_line", line)
            alias = instruction.image.alias
            state.stage.set_str("alias", alias or f"#{line}")
            for inherited in list(state.file.get_set(f"labels:{instruction.image.name}")):
                state.stage.add_to_set("labels", inherited)
                state.file.add_to_set(f"labels:{state.stage.get_str('alias')}", inherited)
        elif isinstance(instruction, Label):
            stage = state.stage.get_str("alias") or ""
            for key, _ in instruction.pairs:
                state.stage.add_to_set("labels", key)
                state.file.add_to_set(f"labels:{stage}", key)

    def done(state):
        if not schema or not state.file.get_int("stage_line"):
            return
        line = state.file.get_int("stage_line")
        for label in schema:
            if not state.stage.set_contains("labels", label):
                state.add_failure(line, f"Label `{label}` is missing.")

    return CustomRule("DL3049", Severity.INFO, "Label is missing.", step, done)


def superfluous_labels(config: LintConfig) -> SimpleRule:
    """
    DL3050: labels from the old label-schema.org set, or with strict labels
    any label outside the configured schema.
    """
    schema = set(config.label_schema)
    strict = config.strict_labels and bool(schema)

    def predicate(instruction, shell) -> bool:
        if not isinstance(instruction, Label):
            return True
        for key, _ in instruction.pairs:
            if key in SUPERFLUOUS_LABELS and key not in schema:
                return False
            if strict and key not in schema:
                return False
        return True

    return SimpleRule("DL3050", Severity.INFO, "Superfluous label present.", predicate)


def _schema_check(code: str, label_type: LabelType, validator, template: str, config: LintConfig) -> CustomRule:
    labels: Dict[str, LabelType] = {k: v for k, v in config.label_schema.items() if v == label_type}

    def step(state, line, instruction, shell):
        if not isinstance(instruction, Label):
            return
        for key, value in instruction.pairs:
            if key in labels and not validator(value):
                state.add_failure(line, template.format(key))

    return CustomRule(code, Severity.WARNING, template.format("<label>"), step)


def invalid_rfc3339_labels(config: LintConfig) -> CustomRule:
    return _schema_check(
        "DL3053", LabelType.RFC3339, is_rfc3339,
        "Label `{}` is not a valid time format - must conform to RFC3339.", config,
    )


def invalid_spdx_labels(config: LintConfig) -> CustomRule:
    return _schema_check(
        "DL3054", LabelType.SPDX, is_spdx,
        "Label `{}` is not a valid SPDX identifier.", config,
    )


def invalid_email_labels(config: LintConfig) -> CustomRule:
    return _schema_check(
        "DL3058", LabelType.EMAIL, is_email,
        "Label `{}` is not a valid email format - must conform to RFC5322.", config,
    )
