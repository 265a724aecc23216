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
Lightweight analyzer for the shell code in RUN instructions.

This is not a shell interpreter. It tokenizes respecting quotes and escapes,
splits on control operators and exposes each simple command's name, flags and
arguments. Nothing is expanded or executed.
"""
import re
from typing import List, Optional, Tuple
from ..MODELS.instruction import ExecArguments, Run
from ..MODELS.parsed_shell import Command, ParsedShell

OPERATORS = ("&&", "||", "|&", ";;", ";", "|", "&")
REDIRECT_RE = re.compile(r'[<>]&(?P<fd>[0-9]+|-)|&>>|&>|>>|>\||<<<|<<-|<<|<>|[<>]&|>|<')
ASSIGNMENT_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*(\[[^\]]*\])?\+?=')

# Words that open or close compound commands rather than name a program.
RESERVED_PREFIXES = {"!", "{", "(", "if", "then", "else", "elif", "do", "while", "until", "time"}
RESERVED_CLOSERS = {"}", ")", "fi", "done", "esac"}
RESERVED_SEGMENTS = {"for", "case", "select", "function"}

WORD, OPERATOR, REDIRECT, REDIRECT_FD = "word", "op", "redirect", "redirect-fd"


class ShellSyntaxError(ValueError):
    """Raised internally when shell code cannot be tokenized."""


class ShellParser:
    """
    Parses shell code into a ParsedShell.
    """

    @classmethod
    def parse(cls, text: str) -> ParsedShell:
        """
        Parses a piece of shell code.

        :param text: Shell source, e.g. the body of a RUN instruction.
        :return: The commands found, or an empty ParsedShell when the code
                 cannot be tokenized (unbalanced quotes and the like).
        """
        try:
            tokens = cls._tokenize(text)
        except ShellSyntaxError:
            return ParsedShell.empty(text)
        commands, has_pipes = cls._commands(tokens)
        return ParsedShell(original=text, commands=commands, has_pipes=has_pipes)

    @classmethod
    def from_run(cls, run: Run) -> ParsedShell:
        """
        Analyzes a RUN instruction. Exec form is a single command and is not tokenized.
        """
        if isinstance(run.arguments, ExecArguments):
            items = run.arguments.items
            if not items:
                return ParsedShell.empty()
            return ParsedShell(
                original=run.arguments.as_text(),
                commands=[build_command(items[0], items[1:])],
            )
        return cls.parse(run.arguments.text)

    @classmethod
    def _tokenize(cls, text: str) -> List[Tuple[str, str]]:
        tokens: List[Tuple[str, str]] = []
        word: List[str] = []
        in_word = False
        i = 0
        n = len(text)

        def flush():
            nonlocal word, in_word
            if in_word:
                tokens.append((WORD, "".join(word)))
            word = []
            in_word = False

        while i < n:
            ch = text[i]

            if ch == "\\":
                if i + 1 < n and text[i + 1] == "\n":
                    i += 2
                    continue
                if i + 1 < n:
                    word.append(text[i + 1])
                in_word = True
                i += 2
                continue

            if ch == "'":
                end = text.find("'", i + 1)
                if end == -1:
                    raise ShellSyntaxError("unterminated single quote")
                word.append(text[i + 1:end])
                in_word = True
                i = end + 1
                continue

            if ch == '"':
                i = cls._double_quoted(text, i + 1, word)
                in_word = True
                continue

            if ch == "`":
                end = text.find("`", i + 1)
                if end == -1:
                    raise ShellSyntaxError("unterminated backquote")
                word.append(text[i:end + 1])
                in_word = True
                i = end + 1
                continue

            if ch == "$" and i + 1 < n and text[i + 1] in "({":
                end = cls._matching(text, i + 1)
                word.append(text[i:end])
                in_word = True
                i = end
                continue

            if ch == "#" and not in_word:
                end = text.find("\n", i)
                i = n if end == -1 else end
                continue

            if ch == "\n":
                flush()
                tokens.append((OPERATOR, ";"))
                i += 1
                continue

            if ch.isspace():
                flush()
                i += 1
                continue

            if ch in "<>" or text.startswith("&>", i):
                # A word made only of digits right before a redirect is a file descriptor.
                if in_word and "".join(word).isdigit():
                    word = []
                    in_word = False
                flush()
                match = REDIRECT_RE.match(text, i)
                # 2>&1 and >&- carry their own target.
                tokens.append((REDIRECT if match.group("fd") is None else REDIRECT_FD, match.group(0)))
                i = match.end()
                continue

            op = next((o for o in OPERATORS if text.startswith(o, i)), None)
            if op:
                flush()
                tokens.append((OPERATOR, op))
                i += len(op)
                continue

            if ch in "()" and not in_word:
                tokens.append((WORD, ch))
                i += 1
                continue

            if ch == ")":
                flush()
                tokens.append((WORD, ch))
                i += 1
                continue

            word.append(ch)
            in_word = True
            i += 1

        flush()
        return tokens

    @staticmethod
    def _double_quoted(text: str, i: int, word: List[str]) -> int:
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == '"':
                return i + 1
            if ch == "\\" and i + 1 < n and text[i + 1] in '"\\$`\n':
                if text[i + 1] != "\n":
                    word.append(text[i + 1])
                i += 2
                continue
            word.append(ch)
            i += 1
        raise ShellSyntaxError("unterminated double quote")

    @staticmethod
    def _matching(text: str, i: int) -> int:
        """Index just past the bracket closing the one at ``i``."""
        opening = text[i]
        closing = ")" if opening == "(" else "}"
        depth = 0
        quote: Optional[str] = None
        while i < len(text):
            ch = text[i]
            if quote:
                if ch == quote:
                    quote = None
                elif ch == "\\" and quote == '"':
                    i += 1
            elif ch in "'\"":
                quote = ch
            elif ch == "\\":
                i += 1
            elif ch == opening:
                depth += 1
            elif ch == closing:
                depth -= 1
                if depth == 0:
                    return i + 1
            i += 1
        raise ShellSyntaxError(f"unterminated ${opening}")

    @classmethod
    def _commands(cls, tokens: List[Tuple[str, str]]) -> Tuple[List[Command], bool]:
        commands: List[Command] = []
        has_pipes = False
        segment: List[str] = []
        skip_target = False

        def close(operator: Optional[str]):
            command = cls._segment_to_command(segment)
            if command is not None:
                command.operator = operator
                commands.append(command)
            segment.clear()

        for kind, value in tokens:
            if kind == REDIRECT:
                skip_target = True
                continue
            if kind == REDIRECT_FD:
                continue
            if kind == OPERATOR:
                if value in ("|", "|&"):
                    has_pipes = True
                close(value)
                skip_target = False
                continue
            if skip_target:
                skip_target = False
                continue
            segment.append(value)
        close(None)
        return commands, has_pipes

    @staticmethod
    def _segment_to_command(words: List[str]) -> Optional[Command]:
        words = list(words)
        while words and (words[0] in RESERVED_PREFIXES or ASSIGNMENT_RE.match(words[0])):
            words.pop(0)
        while words and words[-1] in RESERVED_CLOSERS:
            words.pop()
        if not words or words[0] in RESERVED_SEGMENTS or words[0] in RESERVED_CLOSERS:
            return None
        return build_command(words[0], words[1:])


def build_command(name: str, words: List[str]) -> Command:
    """
    Builds a Command, separating flags from positional arguments.

    ``--flag[=value]`` yields ``flag``, ``-abc`` yields ``a``, ``b`` and ``c``.
    Everything after ``--`` is positional.
    """
    arguments: List[str] = []
    flags = set()
    options_done = False
    for word in words:
        if options_done or word == "-" or not word.startswith("-"):
            arguments.append(word)
        elif word == "--":
            options_done = True
        elif word.startswith("--"):
            flags.add(word[2:].split("=", 1)[0])
        else:
            flags.update(word[1:].split("=", 1)[0])
    return Command(name=name, words=list(words), arguments=arguments, flags=flags)
