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
Models for parsed Dockerfile instructions.

Every instruction is a pydantic model carrying a ``kind`` literal equal to its
upper-case keyword, so the whole family can be used as a discriminated union.
"""
from typing import List, Dict, Optional, Tuple, Union, Literal, Annotated
from pydantic import BaseModel, ConfigDict, Field

ARCHIVE_EXTENSIONS = (
    ".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz",
    ".zip", ".gz", ".bz2", ".xz", ".Z", ".lz", ".lzma",
)

# Archives ADD unpacks into the destination directory.
TAR_EXTENSIONS = (
    ".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz",
    ".tar.zst", ".tar.lz", ".tar.lzma",
)

URL_PREFIXES = ("http://", "https://")


def is_url(path: str) -> bool:
    return path.startswith(URL_PREFIXES)


def is_archive(path: str) -> bool:
    return path.endswith(ARCHIVE_EXTENSIONS) or is_tar_archive(path)


def is_tar_archive(path: str) -> bool:
    return path.lower().endswith(TAR_EXTENSIONS)


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


class ShellArguments(_Node):
    """
    Arguments in shell form, kept verbatim.
    """
    form: Literal["shell"] = "shell"
    text: str

    @property
    def is_shell_form(self) -> bool:
        return True

    @property
    def is_exec_form(self) -> bool:
        return False

    def as_text(self) -> str:
        return self.text


class ExecArguments(_Node):
    """
    Arguments in exec form, a JSON array of strings.
    """
    form: Literal["exec"] = "exec"
    items: List[str]

    @property
    def is_shell_form(self) -> bool:
        return False

    @property
    def is_exec_form(self) -> bool:
        return True

    def as_text(self) -> str:
        return " ".join(self.items)


Arguments = Annotated[Union[ShellArguments, ExecArguments], Field(discriminator="form")]


class Heredoc(_Node):
    delimiter: str
    body: str
    strip_tabs: bool = False


class BaseImage(_Node):
    """
    Image reference of a FROM instruction.

    Examples:
        - ubuntu -> name=ubuntu
        - ubuntu:22.04 AS build -> name=ubuntu, tag=22.04, alias=build
        - ghcr.io/org/app@sha256:abc -> registry=ghcr.io, name=org/app, digest=sha256:abc
    """
    name: str
    registry: Optional[str] = None
    tag: Optional[str] = None
    digest: Optional[str] = None
    alias: Optional[str] = None
    platform: Optional[str] = None

    @property
    def is_scratch(self) -> bool:
        return self.name.lower() == "scratch"

    @property
    def is_variable(self) -> bool:
        return "$" in self.full_name

    @property
    def has_version(self) -> bool:
        return bool(self.tag) or bool(self.digest)

    @property
    def full_name(self) -> str:
        """Image name including the registry, without tag or digest."""
        if self.registry:
            return f"{self.registry}/{self.name}"
        return self.name


class RunMount(_Node):
    type: str = "bind"
    options: Dict[str, str] = {}


class RunFlags(_Node):
    mounts: List[RunMount] = []
    network: Optional[str] = None
    security: Optional[str] = None


class CopyFlags(_Node):
    from_stage: Optional[str] = None
    chown: Optional[str] = None
    chmod: Optional[str] = None
    link: bool = False


class AddFlags(_Node):
    chown: Optional[str] = None
    chmod: Optional[str] = None
    checksum: Optional[str] = None
    link: bool = False


class Port(_Node):
    """
    An exposed port or port range. ``number`` is None when the port is a variable.
    """
    raw: str
    number: Optional[int] = None
    range_end: Optional[int] = None
    protocol: str = "tcp"


class HealthcheckCmd(_Node):
    arguments: Arguments
    interval: Optional[str] = None
    timeout: Optional[str] = None
    start_period: Optional[str] = None
    start_interval: Optional[str] = None
    retries: Optional[int] = None


class From(_Node):
    kind: Literal["FROM"] = "FROM"
    image: BaseImage


class Run(_Node):
    kind: Literal["RUN"] = "RUN"
    arguments: Arguments
    flags: RunFlags = RunFlags()
    heredocs: List[Heredoc] = []


class Copy(_Node):
    kind: Literal["COPY"] = "COPY"
    sources: List[str]
    dest: str
    flags: CopyFlags = CopyFlags()
    heredocs: List[Heredoc] = []


class Add(_Node):
    kind: Literal["ADD"] = "ADD"
    sources: List[str]
    dest: str
    flags: AddFlags = AddFlags()
    heredocs: List[Heredoc] = []

    def has_url(self) -> bool:
        return any(is_url(s) for s in self.sources)

    def has_archive(self) -> bool:
        return any(is_archive(s) for s in self.sources)


class Env(_Node):
    kind: Literal["ENV"] = "ENV"
    pairs: List[Tuple[str, str]]


class Label(_Node):
    kind: Literal["LABEL"] = "LABEL"
    pairs: List[Tuple[str, str]]


class Expose(_Node):
    kind: Literal["EXPOSE"] = "EXPOSE"
    ports: List[Port]


class Arg(_Node):
    kind: Literal["ARG"] = "ARG"
    name: str
    default: Optional[str] = None


class Entrypoint(_Node):
    kind: Literal["ENTRYPOINT"] = "ENTRYPOINT"
    arguments: Arguments


class Cmd(_Node):
    kind: Literal["CMD"] = "CMD"
    arguments: Arguments


class Shell(_Node):
    kind: Literal["SHELL"] = "SHELL"
    arguments: Arguments


class User(_Node):
    kind: Literal["USER"] = "USER"
    user: str


class Workdir(_Node):
    kind: Literal["WORKDIR"] = "WORKDIR"
    path: str


class Volume(_Node):
    kind: Literal["VOLUME"] = "VOLUME"
    paths: List[str]


class Maintainer(_Node):
    kind: Literal["MAINTAINER"] = "MAINTAINER"
    name: str


class Healthcheck(_Node):
    """
    HEALTHCHECK instruction. ``check`` is None for ``HEALTHCHECK NONE``.
    """
    kind: Literal["HEALTHCHECK"] = "HEALTHCHECK"
    check: Optional[HealthcheckCmd] = None


class Stopsignal(_Node):
    kind: Literal["STOPSIGNAL"] = "STOPSIGNAL"
    signal: str


class Comment(_Node):
    kind: Literal["COMMENT"] = "COMMENT"
    text: str


class OnBuild(_Node):
    kind: Literal["ONBUILD"] = "ONBUILD"
    instruction: "Instruction"


Instruction = Annotated[
    Union[
        From, Run, Copy, Add, Env, Label, Expose, Arg, Entrypoint, Cmd, Shell,
        User, Workdir, Volume, Maintainer, Healthcheck, Stopsignal, Comment, OnBuild,
    ],
    Field(discriminator="kind"),
]

OnBuild.model_rebuild()


class InstructionPos(_Node):
    """
    An instruction together with the line it starts on and its source text.
    """
    line_number: int
    instruction: Instruction
    source: str = ""
