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
Rule engine: rule types, per-rule state and the evaluation loop.

Rules are evaluated instruction-major. For each instruction, in document
order, every rule runs once in registration order. A ``From`` instruction
starts a new build stage, and the engine clears every rule's stage-scoped
data before the rules see it.
"""
import sys
from typing import Any, Callable, Dict, List, Optional, Sequence
from ..MODELS.check_failure import CheckFailure, Severity
from ..MODELS.instruction import From, Instruction, InstructionPos, OnBuild, Run
from ..MODELS.parsed_shell import ParsedShell
from ..PARSERS.shell_parser import ShellParser


class RuleData:
    """
    Typed key/value scratch space for a rule.
    """

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def get_int(self, key: str, default: int = 0) -> int:
        return self._values.get(key, default)

    def set_int(self, key: str, value: int):
        self._values[key] = value

    def increment(self, key: str) -> int:
        value = self.get_int(key) + 1
        self._values[key] = value
        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self._values.get(key, default)

    def set_bool(self, key: str, value: bool = True):
        self._values[key] = value

    def get_str(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set_str(self, key: str, value: str):
        self._values[key] = value

    def remove(self, key: str):
        self._values.pop(key, None)

    def add_to_set(self, key: str, value: str):
        self._values.setdefault(key, set()).add(value)

    def set_contains(self, key: str, value: str) -> bool:
        return value in self._values.get(key, ())

    def get_set(self, key: str) -> set:
        return self._values.get(key, set())

    def append(self, key: str, value: Any):
        self._values.setdefault(key, []).append(value)

    def get_list(self, key: str) -> list:
        return self._values.get(key, [])

    def clear(self):
        self._values.clear()


class RuleState:
    """
    Per-rule, per-lint state: collected failures plus stage and file scoped data.
    """

    def __init__(self, rule: "Rule"):
        self.rule = rule
        self.failures: List[CheckFailure] = []
        self.stage = RuleData()
        self.file = RuleData()

    def add_failure(self, line: int, message: Optional[str] = None):
        self.failures.append(CheckFailure(
            code=self.rule.code,
            severity=self.rule.severity,
            message=message or self.rule.message,
            line=line,
        ))


class Rule:
    """
    Base class for all rules.
    """

    def __init__(self, code: str, severity: Severity, message: str):
        self.code = code
        self.severity = severity
        self.message = message

    def check(self, state: RuleState, line: int, instruction: Instruction, shell: Optional[ParsedShell]):
        raise NotImplementedError

    def finalize(self, state: RuleState):
        """Called once after the last instruction."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code})"


class SimpleRule(Rule):
    """
    A stateless rule defined by a predicate returning True when the
    instruction is compliant.
    """

    def __init__(self, code: str, severity: Severity, message: str,
                 predicate: Callable[[Instruction, Optional[ParsedShell]], bool]):
        super().__init__(code, severity, message)
        self.predicate = predicate

    def check(self, state, line, instruction, shell):
        if not self.predicate(instruction, shell):
            state.add_failure(line)


class CustomRule(Rule):
    """
    A stateful rule. ``step`` sees every instruction and may record failures
    through the state; ``done`` runs once at the end of the file.
    """

    def __init__(self, code: str, severity: Severity, message: str,
                 step: Callable[[RuleState, int, Instruction, Optional[ParsedShell]], None],
                 done: Optional[Callable[[RuleState], None]] = None):
        super().__init__(code, severity, message)
        self.step = step
        self.done = done

    def check(self, state, line, instruction, shell):
        self.step(state, line, instruction, shell)

    def finalize(self, state):
        if self.done is not None:
            self.done(state)


def on_run(check: Callable[[ParsedShell], bool]) -> Callable[[Instruction, Optional[ParsedShell]], bool]:
    """
    Wraps a shell predicate so it only applies to RUN instructions.
    """
    def predicate(instruction, shell):
        if not isinstance(instruction, Run) or shell is None:
            return True
        return check(shell)
    return predicate


def run_rules(rules: Sequence[Rule], instructions: Sequence[InstructionPos]) -> List[CheckFailure]:
    """
    Evaluates rules against an instruction stream.

    :param rules: Rules in registration order.
    :param instructions: Parsed instructions in document order.
    :return: Failures ordered by line, then rule registration order, then
             emission order.
    """
    states = [RuleState(rule) for rule in rules]

    for pos in instructions:
        instruction = pos.instruction
        if isinstance(instruction, From):
            for state in states:
                state.stage.clear()

        targets = [instruction]
        if isinstance(instruction, OnBuild):
            targets.append(instruction.instruction)

        for target in targets:
            shell = ShellParser.from_run(target) if isinstance(target, Run) else None
            for state in states:
                _guarded(state, pos.line_number, lambda s=state, t=target: s.rule.check(s, pos.line_number, t, shell))

    for state in states:
        _guarded(state, None, lambda s=state: s.rule.finalize(s))

    # sorted() is stable, so rule order and emission order survive within a line.
    failures = [failure for state in states for failure in state.failures]
    return sorted(failures, key=lambda f: f.line)


def _guarded(state: RuleState, line: Optional[int], call: Callable[[], None]):
    # A crashing rule counts as compliant: its partial failures are discarded.
    recorded = len(state.failures)
    try:
        call()
    except Exception as e:
        del state.failures[recorded:]
        where = f" on line {line}" if line is not None else ""
        print(f"Warning: Rule {state.rule.code} failed{where}: {e}", file=sys.stderr)
