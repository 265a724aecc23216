"""
Inline pragmas: ``# hadolint ignore=DL3008,DL3009``, ``# hadolint global ignore=...``
and ``# hadolint shell=/bin/bash``.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set
from ..MODELS.check_failure import CheckFailure
from ..MODELS.instruction import Comment, InstructionPos

IGNORE_RE = re.compile(r'^hadolint\s+ignore\s*=\s*([A-Za-z0-9,\s]+)$')
GLOBAL_IGNORE_RE = re.compile(r'^hadolint\s+global\s+ignore\s*=\s*([A-Za-z0-9,\s]+)$')
SHELL_RE = re.compile(r'^hadolint\s+shell\s*=\s*(\S+)\s*$')


@dataclass
class PragmaState:
    """
    Suppressions collected from a Dockerfile's comments.

    Attributes:
        ignored: Codes suppressed per instruction line.
        global_ignored: Codes suppressed for the whole file.
        shell: Shell declared with ``# hadolint shell=``, if any.
    """
    ignored: Dict[int, Set[str]] = field(default_factory=dict)
    global_ignored: Set[str] = field(default_factory=set)
    shell: Optional[str] = None

    def is_ignored(self, code: str, line: int) -> bool:
        return code in self.global_ignored or code in self.ignored.get(line, ())


def _codes(text: str) -> Set[str]:
    return {code.strip().upper() for code in text.split(",") if code.strip()}


def extract_pragmas(instructions: Sequence[InstructionPos]) -> PragmaState:
    """
    Collects pragmas. An ``ignore`` pragma applies to the next instruction
    that is not a comment, so consecutive pragmas accumulate.
    """
    state = PragmaState()
    pending: Set[str] = set()
    for pos in instructions:
        instruction = pos.instruction
        if not isinstance(instruction, Comment):
            if pending:
                state.ignored.setdefault(pos.line_number, set()).update(pending)
                pending = set()
            continue

        text = instruction.text.strip()
        match = GLOBAL_IGNORE_RE.match(text)
        if match:
            state.global_ignored.update(_codes(match.group(1)))
            continue
        match = IGNORE_RE.match(text)
        if match:
            pending.update(_codes(match.group(1)))
            continue
        match = SHELL_RE.match(text)
        if match:
            state.shell = match.group(1)
    return state


def filter_failures(failures: Sequence[CheckFailure], pragmas: PragmaState) -> List[CheckFailure]:
    """Drops failures suppressed by pragmas, keeping the order of the rest."""
    return [f for f in failures if not pragmas.is_ignored(f.code, f.line)]
