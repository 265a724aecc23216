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
Linter configuration.
"""
from enum import Enum
from typing import Dict, Set
from pydantic import BaseModel, Field
from .check_failure import Severity


class LabelType(str, Enum):
    """
    Expected format of a label value in the label schema.
    """
    EMAIL = "email"
    HASH = "hash"
    TEXT = "text"
    RFC3339 = "rfc3339"
    SEMVER = "semver"
    SPDX = "spdx"
    URL = "url"


class SeverityOverrides(BaseModel):
    """
    Rule codes whose severity is forced to a given level.
    """
    error: Set[str] = set()
    warning: Set[str] = set()
    info: Set[str] = set()
    style: Set[str] = set()

    def lookup(self, code: str):
        # Most severe override wins when a code is listed twice.
        if code in self.error:
            return Severity.ERROR
        if code in self.warning:
            return Severity.WARNING
        if code in self.info:
            return Severity.INFO
        if code in self.style:
            return Severity.STYLE
        return None


class LintConfig(BaseModel):
    """
    Options controlling which rules run, how they are reported and when
    linting counts as failed.
    """
    ignored: Set[str] = set()
    override: SeverityOverrides = Field(default_factory=SeverityOverrides)
    trusted_registries: Set[str] = set()
    label_schema: Dict[str, LabelType] = {}
    strict_labels: bool = False
    disable_ignore_pragma: bool = False
    failure_threshold: Severity = Severity.INFO
    no_fail: bool = False

    def is_rule_ignored(self, code: str) -> bool:
        return code in self.ignored

    def effective_severity(self, code: str, default: Severity) -> Severity:
        """
        Severity a failure is reported with once overrides are applied.

        :param code: Rule code, e.g. DL3008.
        :param default: The rule's own severity.
        :return: The overriding severity, or ``default``.
        """
        return self.override.lookup(code) or default
