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
Structured view of the shell code inside a RUN instruction.
"""
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Set


@dataclass
class Command:
    """
    A single simple command, e.g. ``apt-get install -y curl``.

    Attributes:
        name: Program name, the first word after any variable assignments.
        words: Every token after the name, in order.
        arguments: Positional tokens, i.e. words that are not flags.
        flags: Flag names without dashes or ``=value``. Short clusters such
            as ``-qy`` are split into single letters.
        operator: Control operator following the command, if any.
    """
    name: str
    words: List[str] = field(default_factory=list)
    arguments: List[str] = field(default_factory=list)
    flags: Set[str] = field(default_factory=set)
    operator: Optional[str] = None

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags

    def has_any_flag(self, flags: Iterable[str]) -> bool:
        return any(f in self.flags for f in flags)

    def has_arg(self, arg: str) -> bool:
        return arg in self.arguments

    def has_any_arg(self, args: Iterable[str]) -> bool:
        return any(a in self.arguments for a in args)

    def has_args(self, name: str, args: Iterable[str]) -> bool:
        """True if this command is ``name`` and has any of ``args`` as a positional argument."""
        return self.name == name and self.has_any_arg(args)

    def get_flag_value(self, flag: str) -> Optional[str]:
        """
        Returns the value given to a flag, either ``--flag=value`` or ``--flag value``.

        :param flag: Flag name without dashes.
        :return: The value, or None if the flag is absent or has no value.
        """
        long_prefix = f"--{flag}="
        short_prefix = f"-{flag}="
        for i, word in enumerate(self.words):
            if word.startswith(long_prefix):
                return word[len(long_prefix):]
            if word.startswith(short_prefix):
                return word[len(short_prefix):]
            if word in (f"--{flag}", f"-{flag}"):
                if i + 1 < len(self.words) and not self.words[i + 1].startswith("-"):
                    return self.words[i + 1]
                return None
        return None

    def packages_after(self, subcommands: Iterable[str], value_flags: Iterable[str] = ()) -> List[str]:
        """
        Package names given after the first of ``subcommands``.

        Words directly following one of ``value_flags`` are skipped, since they
        are the flag's value rather than a package.
        """
        wanted = set(subcommands)
        value_flags = set(value_flags)
        packages: List[str] = []
        found = False
        skip_next = False
        for word in self.words:
            if skip_next:
                skip_next = False
                continue
            if not found:
                if word in wanted:
                    found = True
                continue
            if word == "--":
                continue
            if word.startswith("-"):
                if word.lstrip("-") in value_flags:
                    skip_next = True
                continue
            packages.append(word)
        return packages

    @property
    def is_apt_get_install(self) -> bool:
        return self.name == "apt-get" and self.has_arg("install")

    @property
    def is_apk_add(self) -> bool:
        return self.name == "apk" and self.has_arg("add")

    @property
    def is_pip_install(self) -> bool:
        """
        ``pip install``, ``pip3 install`` or ``python -m pip install``.
        ``pipenv`` and ``pipx`` are not pip.
        """
        if self.name.startswith("pip") and self.name not in ("pipenv", "pipx"):
            return self.has_arg("install")
        if self.name.startswith("python"):
            try:
                i = self.words.index("-m")
            except ValueError:
                return False
            return self.words[i + 1:i + 3] == ["pip", "install"]
        return False


@dataclass
class ParsedShell:
    """
    The commands found in a piece of shell code.
    """
    original: str
    commands: List[Command] = field(default_factory=list)
    has_pipes: bool = False

    @classmethod
    def empty(cls, original: str = "") -> "ParsedShell":
        return cls(original=original)

    def any_command(self, predicate: Callable[[Command], bool]) -> bool:
        return any(predicate(c) for c in self.commands)

    def all_commands(self, predicate: Callable[[Command], bool]) -> bool:
        return all(predicate(c) for c in self.commands)

    def no_commands(self, predicate: Callable[[Command], bool]) -> bool:
        return not self.any_command(predicate)

    def using_program(self, name: str) -> bool:
        return any(c.name == name for c in self.commands)

    def find_command_names(self) -> List[str]:
        return [c.name for c in self.commands]

    def find_commands(self, name: str) -> List[Command]:
        return [c for c in self.commands if c.name == name]
