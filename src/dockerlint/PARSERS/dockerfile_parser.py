"""
Parser for Dockerfiles, turning raw text into typed instructions.
"""
import json
import re
from typing import Dict, List, Optional, Tuple
from ..MODELS.instruction import (
    Add, AddFlags, Arg, Arguments, BaseImage, Cmd, Comment, Copy, CopyFlags,
    Entrypoint, Env, ExecArguments, Expose, From, Healthcheck, HealthcheckCmd,
    Heredoc, Instruction, InstructionPos, Label, Maintainer, OnBuild, Port, Run,
    RunFlags, RunMount, Shell, ShellArguments, Stopsignal, User, Volume, Workdir,
)

DIRECTIVE_RE = re.compile(r'^#\s*([a-zA-Z][a-zA-Z0-9_-]*)\s*=\s*(.*?)\s*$')
PARSER_DIRECTIVES = ("syntax", "escape", "check")

INSTRUCTION_RE = re.compile(r'^(\S+)(?:\s+(.*))?$', re.DOTALL)
FLAG_RE = re.compile(r'--([A-Za-z][A-Za-z0-9-]*)(?:=(\S*))?(?:\s+|$)')
HEREDOC_RE = re.compile(r'^<<(-?)(["\']?)([A-Za-z_][A-Za-z0-9_]*)\2$')


class DockerfileParseError(ValueError):
    """
    Raised when a Dockerfile cannot be parsed. Parsing stops at the first error.
    """

    def __init__(self, line: int, text: str, message: str):
        self.line = line
        self.text = text
        self.message = message
        super().__init__(f"line {line}: {message}")


class _Malformed(Exception):
    """Raised by instruction builders, converted to DockerfileParseError with location."""


class DockerfileParser:
    """
    Parser for Dockerfile instructions.
    """

    def parse(self, dockerfile_path: str) -> List[InstructionPos]:
        """
        Parses a Dockerfile from a file path.

        Args:
            dockerfile_path (str): Path to the Dockerfile.

        Returns:
            List[InstructionPos]: Parsed instructions in document order.
        """
        with open(dockerfile_path, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> List[InstructionPos]:
        """
        Parses a Dockerfile from a string content.

        Continuation lines are joined and reported under the line the
        instruction starts on. Comments are kept as ``Comment`` instructions.

        Args:
            content (str): Content of the Dockerfile.

        Returns:
            List[InstructionPos]: Parsed instructions in document order.

        Raises:
            DockerfileParseError: On the first malformed instruction.
        """
        lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        escape = self._escape_directive(lines)

        instructions: List[InstructionPos] = []
        i = 0
        while i < len(lines):
            stripped = lines[i].strip()
            if not stripped:
                i += 1
                continue
            if stripped.startswith("#"):
                instructions.append(InstructionPos(
                    line_number=i + 1,
                    instruction=Comment(text=stripped[1:].strip()),
                    source=stripped,
                ))
                i += 1
                continue

            start = i + 1
            text, i = self._logical_line(lines, i, escape)
            match = INSTRUCTION_RE.match(text.strip())
            keyword = match.group(1).upper()
            rest = (match.group(2) or "").strip()

            heredocs: List[Heredoc] = []
            if keyword in ("RUN", "COPY", "ADD"):
                for _, _, marker in heredoc_markers(rest, escape):
                    heredoc, i = self._read_heredoc(lines, i, marker, start, text)
                    heredocs.append(heredoc)

            try:
                instruction = self._build(keyword, rest, escape, heredocs)
            except _Malformed as e:
                raise DockerfileParseError(start, text.strip(), str(e)) from None

            instructions.append(InstructionPos(
                line_number=start,
                instruction=instruction,
                source=text.strip(),
            ))
        return instructions

    def _escape_directive(self, lines: List[str]) -> str:
        # Directives are only honoured before the first non-directive line.
        escape = "\\"
        for line in lines:
            match = DIRECTIVE_RE.match(line.strip())
            if not match or match.group(1).lower() not in PARSER_DIRECTIVES:
                break
            if match.group(1).lower() == "escape":
                if match.group(2) not in ("\\", "`"):
                    raise DockerfileParseError(
                        1, line.strip(), f"invalid escape token '{match.group(2)}' does not validate"
                    )
                escape = match.group(2)
        return escape

    def _logical_line(self, lines: List[str], i: int, escape: str) -> Tuple[str, int]:
        start = i + 1
        parts = []
        while True:
            line = lines[i]
            i += 1
            body = line.rstrip()
            if not body.endswith(escape):
                parts.append(line)
                return "".join(parts), i
            parts.append(body[:-1])
            # Blank and comment lines inside a continuation are dropped.
            while i < len(lines) and (not lines[i].strip() or lines[i].strip().startswith("#")):
                i += 1
            if i >= len(lines):
                raise DockerfileParseError(
                    start, "".join(parts).strip(), "unexpected end of file after line continuation"
                )

    def _read_heredoc(self, lines: List[str], i: int, marker, start: int, text: str) -> Tuple[Heredoc, int]:
        strip_tabs = marker.group(1) == "-"
        delimiter = marker.group(3)
        body = []
        while i < len(lines):
            line = lines[i]
            i += 1
            candidate = line.lstrip("\t") if strip_tabs else line
            if candidate.rstrip() == delimiter:
                return Heredoc(delimiter=delimiter, body="\n".join(body), strip_tabs=strip_tabs), i
            body.append(candidate)
        raise DockerfileParseError(start, text.strip(), f"unterminated heredoc '{delimiter}'")

    def _build(self, keyword: str, rest: str, escape: str, heredocs: List[Heredoc]) -> Instruction:
        builder = _BUILDERS.get(keyword)
        if builder is None:
            raise _Malformed(f"unknown instruction: {keyword}")
        if not rest:
            raise _Malformed(f"{keyword} requires at least one argument")
        return builder(self, rest, escape, heredocs)

    def _from(self, rest: str, escape: str, heredocs) -> From:
        flags, rest = _take_flags(rest)
        words = rest.split()
        if len(words) not in (1, 3) or (len(words) == 3 and words[1].lower() != "as"):
            raise _Malformed("FROM requires either one or three arguments")
        registry, name, tag, digest = parse_image_reference(words[0])
        return From(image=BaseImage(
            name=name,
            registry=registry,
            tag=tag,
            digest=digest,
            alias=words[2] if len(words) == 3 else None,
            platform=flags.get("platform"),
        ))

    def _run(self, rest: str, escape: str, heredocs: List[Heredoc]) -> Run:
        flags, rest = _take_flags(rest, multi=("mount",))
        if not rest:
            raise _Malformed("RUN requires a command")
        mounts = [_parse_mount(m) for m in flags.get("mount", [])]
        run_flags = RunFlags(mounts=mounts, network=flags.get("network"), security=flags.get("security"))
        if heredocs and rest.startswith("<<"):
            # RUN <<EOF: the heredoc body is the script itself.
            arguments: Arguments = ShellArguments(text=heredocs[0].body)
        elif heredocs:
            for begin, end, _ in reversed(heredoc_markers(rest, escape)):
                rest = rest[:begin] + rest[end:]
            arguments = ShellArguments(text=rest.strip())
        else:
            arguments = _arguments(rest)
        return Run(arguments=arguments, flags=run_flags, heredocs=heredocs)

    def _copy(self, rest: str, escape: str, heredocs: List[Heredoc]) -> Copy:
        flags, rest = _take_flags(rest)
        sources, dest = _sources_and_dest(rest, escape, "COPY")
        copy_flags = CopyFlags(
            from_stage=flags.get("from"),
            chown=flags.get("chown"),
            chmod=flags.get("chmod"),
            link="link" in flags and flags["link"] in (None, "true"),
        )
        return Copy(sources=sources, dest=dest, flags=copy_flags, heredocs=heredocs)

    def _add(self, rest: str, escape: str, heredocs: List[Heredoc]) -> Add:
        flags, rest = _take_flags(rest)
        sources, dest = _sources_and_dest(rest, escape, "ADD")
        add_flags = AddFlags(
            chown=flags.get("chown"),
            chmod=flags.get("chmod"),
            checksum=flags.get("checksum"),
            link="link" in flags and flags["link"] in (None, "true"),
        )
        return Add(sources=sources, dest=dest, flags=add_flags, heredocs=heredocs)

    def _env(self, rest: str, escape: str, heredocs) -> Env:
        return Env(pairs=_key_values(rest, escape, "ENV"))

    def _label(self, rest: str, escape: str, heredocs) -> Label:
        return Label(pairs=_key_values(rest, escape, "LABEL"))

    def _expose(self, rest: str, escape: str, heredocs) -> Expose:
        return Expose(ports=[_parse_port(word) for word in split_words(rest, escape)])

    def _arg(self, rest: str, escape: str, heredocs) -> Arg:
        words = split_words(rest, escape)
        name, sep, default = words[0].partition("=")
        if not name:
            raise _Malformed("ARG requires a name")
        return Arg(name=name, default=default if sep else None)

    def _entrypoint(self, rest: str, escape: str, heredocs) -> Entrypoint:
        return Entrypoint(arguments=_arguments(rest))

    def _cmd(self, rest: str, escape: str, heredocs) -> Cmd:
        return Cmd(arguments=_arguments(rest))

    def _shell(self, rest: str, escape: str, heredocs) -> Shell:
        return Shell(arguments=_arguments(rest))

    def _user(self, rest: str, escape: str, heredocs) -> User:
        return User(user=rest)

    def _workdir(self, rest: str, escape: str, heredocs) -> Workdir:
        return Workdir(path=rest)

    def _volume(self, rest: str, escape: str, heredocs) -> Volume:
        arguments = _arguments(rest)
        if isinstance(arguments, ExecArguments):
            return Volume(paths=arguments.items)
        return Volume(paths=split_words(rest, escape))

    def _maintainer(self, rest: str, escape: str, heredocs) -> Maintainer:
        return Maintainer(name=rest)

    def _stopsignal(self, rest: str, escape: str, heredocs) -> Stopsignal:
        return Stopsignal(signal=rest)

    def _healthcheck(self, rest: str, escape: str, heredocs) -> Healthcheck:
        if rest.upper() == "NONE":
            return Healthcheck(check=None)
        flags, rest = _take_flags(rest)
        keyword, _, command = rest.partition(" ")
        if keyword.upper() != "CMD" or not command.strip():
            raise _Malformed("HEALTHCHECK requires NONE or CMD followed by a command")
        retries = flags.get("retries")
        if retries is not None:
            try:
                retries = int(retries)
            except ValueError:
                raise _Malformed(f"invalid --retries value '{retries}'") from None
        return Healthcheck(check=HealthcheckCmd(
            arguments=_arguments(command),
            interval=flags.get("interval"),
            timeout=flags.get("timeout"),
            start_period=flags.get("start-period"),
            start_interval=flags.get("start-interval"),
            retries=retries,
        ))

    def _onbuild(self, rest: str, escape: str, heredocs) -> OnBuild:
        match = INSTRUCTION_RE.match(rest)
        keyword = match.group(1).upper()
        inner = self._build(keyword, (match.group(2) or "").strip(), escape, [])
        return OnBuild(instruction=inner)


_BUILDERS = {
    "FROM": DockerfileParser._from,
    "RUN": DockerfileParser._run,
    "COPY": DockerfileParser._copy,
    "ADD": DockerfileParser._add,
    "ENV": DockerfileParser._env,
    "LABEL": DockerfileParser._label,
    "EXPOSE": DockerfileParser._expose,
    "ARG": DockerfileParser._arg,
    "ENTRYPOINT": DockerfileParser._entrypoint,
    "CMD": DockerfileParser._cmd,
    "SHELL": DockerfileParser._shell,
    "USER": DockerfileParser._user,
    "WORKDIR": DockerfileParser._workdir,
    "VOLUME": DockerfileParser._volume,
    "MAINTAINER": DockerfileParser._maintainer,
    "STOPSIGNAL": DockerfileParser._stopsignal,
    "HEALTHCHECK": DockerfileParser._healthcheck,
    "ONBUILD": DockerfileParser._onbuild,
}


def parse_image_reference(reference: str) -> Tuple[Optional[str], str, Optional[str], Optional[str]]:
    """
    Splits an image reference into registry, name, tag and digest.

    Examples:
        - ubuntu -> (None, 'ubuntu', None, None)
        - localhost:5000/app:1.0 -> ('localhost:5000', 'app', '1.0', None)
        - gcr.io/project/image@sha256:abc -> ('gcr.io', 'project/image', None, 'sha256:abc')
    """
    digest = None
    if "@" in reference:
        reference, digest = reference.rsplit("@", 1)

    tag = None
    last_colon = reference.rfind(":")
    # A colon followed by a path separator belongs to a registry port.
    if last_colon != -1 and "/" not in reference[last_colon + 1:]:
        tag = reference[last_colon + 1:]
        reference = reference[:last_colon]

    registry = None
    parts = reference.split("/", 1)
    if len(parts) == 2:
        first = parts[0]
        if "." in first or ":" in first or first == "localhost":
            registry = first
            reference = parts[1]

    return registry, reference, tag, digest


def split_words(text: str, escape: str = "\\") -> List[str]:
    """
    Splits text on unquoted whitespace, removing quotes and escape characters.

    :raises _Malformed: If a quote is left open.
    """
    words: List[str] = []
    current: List[str] = []
    in_word = False
    quote = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote == "'":
            if ch == "'":
                quote = None
            else:
                current.append(ch)
        elif quote == '"':
            if ch == '"':
                quote = None
            elif ch == escape and i + 1 < len(text) and text[i + 1] in ('"', escape, "$"):
                i += 1
                current.append(text[i])
            else:
                current.append(ch)
        elif ch in ("'", '"'):
            quote = ch
            in_word = True
        elif ch == escape and i + 1 < len(text):
            i += 1
            current.append(text[i])
            in_word = True
        elif ch.isspace():
            if in_word:
                words.append("".join(current))
                current = []
                in_word = False
        else:
            current.append(ch)
            in_word = True
        i += 1
    if quote:
        raise _Malformed(f"unterminated {quote} quote")
    if in_word:
        words.append("".join(current))
    return words


def heredoc_markers(text: str, escape: str = "\\") -> List[Tuple[int, int, re.Match]]:
    """
    Finds heredoc markers such as ``<<EOF``, ``<<-EOF`` and ``<<'EOF'``.

    Only whole words outside of quotes count, so ``echo "cat <<EOF"`` and
    ``$((1<<SHIFT))`` have none. Never raises; an open quote ends the scan.

    :return: ``(start, end, match)`` per marker, in order of appearance.
    """
    markers = []
    start = None
    quote = None
    i = 0
    while i <= len(text):
        ch = text[i] if i < len(text) else None
        if quote:
            if ch is None:
                break
            if ch == escape and quote == '"':
                i += 1
            elif ch == quote:
                quote = None
        elif ch is None or ch.isspace():
            if start is not None:
                match = HEREDOC_RE.match(text[start:i])
                if match:
                    markers.append((start, i, match))
                start = None
        else:
            if start is None:
                start = i
            if ch == escape:
                i += 1
            elif ch in ("'", '"'):
                quote = ch
        i += 1
    return markers


def _take_flags(rest: str, multi: Tuple[str, ...] = ()) -> Tuple[Dict, str]:
    """
    Consumes leading ``--name[=value]`` flags. Flags listed in ``multi`` may repeat
    and are collected into lists.
    """
    flags: Dict = {}
    while True:
        match = FLAG_RE.match(rest)
        if not match:
            return flags, rest.strip()
        name, value = match.group(1).lower(), match.group(2)
        if name in multi:
            flags.setdefault(name, []).append(value or "")
        else:
            flags[name] = value
        rest = rest[match.end():]


def _parse_mount(raw: str) -> RunMount:
    options: Dict[str, str] = {}
    for part in raw.split(","):
        key, sep, value = part.partition("=")
        if key:
            options[key.strip()] = value.strip() if sep else "true"
    mount_type = options.pop("type", "bind")
    return RunMount(type=mount_type, options=options)


def _arguments(rest: str) -> Arguments:
    stripped = rest.strip()
    if stripped.startswith("["):
        try:
            items = json.loads(stripped)
        except ValueError:
            items = None
        if isinstance(items, list) and all(isinstance(item, str) for item in items):
            return ExecArguments(items=items)
    return ShellArguments(text=stripped)


def _sources_and_dest(rest: str, escape: str, keyword: str) -> Tuple[List[str], str]:
    arguments = _arguments(rest)
    if isinstance(arguments, ExecArguments):
        words = arguments.items
    else:
        words = split_words(rest, escape)
    if len(words) < 2:
        raise _Malformed(f"{keyword} requires at least two arguments")
    return words[:-1], words[-1]


def _key_values(rest: str, escape: str, keyword: str) -> List[Tuple[str, str]]:
    words = split_words(rest, escape)
    if not words:
        raise _Malformed(f"{keyword} requires at least one argument")

    if "=" not in words[0]:
        # Legacy form: KEY value with spaces
        key, _, value = rest.partition(" ")
        value = value.strip()
        if not value:
            raise _Malformed(f"{keyword} {key} requires a value")
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        return [(key, value)]

    pairs = []
    for word in words:
        key, sep, value = word.partition("=")
        if not sep:
            raise _Malformed(f"{keyword} syntax error - can't find = in \"{word}\"")
        if not key:
            raise _Malformed(f"{keyword} names can not be blank")
        pairs.append((key, value))
    return pairs


def _parse_port(word: str) -> Port:
    port, _, protocol = word.partition("/")
    start, sep, end = port.partition("-")
    number = int(start) if start.isascii() and start.isdigit() else None
    range_end = int(end) if sep and end.isascii() and end.isdigit() else None
    return Port(raw=word, number=number, range_end=range_end, protocol=(protocol or "tcp").lower())
