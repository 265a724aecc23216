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
Severities and the single diagnostic produced by a rule.
"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    """
    Severity of a rule violation, ordered error > warning > info > style > ignore.
    """
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    STYLE = "style"
    IGNORE = "ignore"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, text: str) -> Optional["Severity"]:
        """
        Parses a severity name case-insensitively.

        :param text: Severity name, "none" is accepted as an alias of ignore.
        :return: The severity, or None when the name is unknown.
        """
        if text is None:
            return None
        name = str(text).strip().lower()
        if name == "none":
            return cls.IGNORE
        try:
            return cls(name)
        except ValueError:
            return None


_RANKS = {
    Severity.ERROR: 4,
    Severity.WARNING: 3,
    Severity.INFO: 2,
    Severity.STYLE: 1,
    Severity.IGNORE: 0,
}


class CheckFailure(BaseModel):
    """
    A single rule violation found in a Dockerfile.
    """
    model_config = ConfigDict(frozen=True)

    code: str
    severity: Severity
    message: str
    line: int
    column: Optional[int] = None

    def with_severity(self, severity: Severity) -> "CheckFailure":
        return self.model_copy(update={"severity": severity})
