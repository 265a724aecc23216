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
Stateless rules over single instructions that do not need shell analysis.
"""
import re
from ..MODELS.check_failure import Severity
from ..MODELS.instruction import (
    Add, Cmd, Copy, Entrypoint, Env, Expose, From, Label, Maintainer, OnBuild,
    Workdir, is_tar_archive,
)
from .engine import SimpleRule

WINDOWS_PATH_RE = re.compile(r'^[A-Za-z]:[\\/]')
LABEL_KEY_RE = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')
IMAGE_NAME_RE = re.compile(r'^[a-z0-9][a-z0-9._/-]*$')
REGISTRY_RE = re.compile(r'^[A-Za-z0-9.-]+(:[0-9]+)?$')
REMOTE_PREFIXES = ("http://", "https://", "ftp://")
COMPRESSED_EXTENSIONS = (".gz", ".bz2", ".xz")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _absolute_workdir(instruction, shell) -> bool:
    if not isinstance(instruction, Workdir):
        return True
    path = _unquote(instruction.path.strip())
    return path.startswith("/") or path.startswith("$") or bool(WINDOWS_PATH_RE.match(path))


def _no_latest_tag(instruction, shell) -> bool:
    if not isinstance(instruction, From):
        return True
    return instruction.image.tag != "latest"


def _no_local_archive_copy(instruction, shell) -> bool:
    if not isinstance(instruction, Copy) or instruction.flags.from_stage:
        return True
    return not any(
        is_tar_archive(s) and not s.startswith(REMOTE_PREFIXES) and not s.startswith("$")
        for s in instruction.sources
    )


def _valid_ports(instruction, shell) -> bool:
    if not isinstance(instruction, Expose):
        return True
    for port in instruction.ports:
        if port.number is not None and port.number > 65535:
            return False
        if port.range_end is not None and port.range_end > 65535:
            return False
    return True


def _add_for_url_or_archive(instruction, shell) -> bool:
    if not isinstance(instruction, Add):
        return True
    return instruction.has_url() or instruction.has_archive()


def _add_only_remote_or_archive(instruction, shell) -> bool:
    if not isinstance(instruction, Add):
        return True
    return all(
        s.startswith(REMOTE_PREFIXES) or s.startswith("$")
        or is_tar_archive(s) or s.lower().endswith(COMPRESSED_EXTENSIONS)
        for s in instruction.sources
    )


def _exec_form_cmd(instruction, shell) -> bool:
    if isinstance(instruction, (Cmd, Entrypoint)):
        return instruction.arguments.is_exec_form
    return True


def _platform_is_variable(instruction, shell) -> bool:
    # --platform=$BUILDPLATFORM and friends are the cross-platform idiom.
    if not isinstance(instruction, From) or not instruction.image.platform:
        return True
    return "$" in instruction.image.platform


def _onbuild_allowed(instruction, shell) -> bool:
    if not isinstance(instruction, OnBuild):
        return True
    return instruction.instruction.kind not in ("ONBUILD", "FROM", "MAINTAINER")


def _env_no_self_reference(instruction, shell) -> bool:
    if not isinstance(instruction, Env):
        return True
    defined = []
    for key, value in instruction.pairs:
        for name in defined:
            if re.search(r'\$\{?' + re.escape(name) + r'(?![A-Za-z0-9_])', value):
                return False
        defined.append(key)
    return True


def _valid_label_keys(instruction, shell) -> bool:
    if not isinstance(instruction, Label):
        return True
    return all(LABEL_KEY_RE.match(key) for key, _ in instruction.pairs)


def _valid_image_name(instruction, shell) -> bool:
    if not isinstance(instruction, From):
        return True
    image = instruction.image
    if image.is_variable:
        return True
    if image.registry and not REGISTRY_RE.match(image.registry):
        return False
    return bool(IMAGE_NAME_RE.match(image.name))


def _no_maintainer(instruction, shell) -> bool:
    return not isinstance(instruction, Maintainer)


DL3000 = SimpleRule("DL3000", Severity.ERROR, "Use absolute WORKDIR", _absolute_workdir)

DL3007 = SimpleRule(
    "DL3007", Severity.WARNING,
    "Using latest is prone to errors if the image will ever update. "
    "Pin the version explicitly to a release tag",
    _no_latest_tag,
)

DL3010 = SimpleRule(
    "DL3010", Severity.INFO, "Use ADD for extracting archives into an image.", _no_local_archive_copy,
)

DL3011 = SimpleRule(
    "DL3011", Severity.ERROR, "Valid UNIX ports range from 0 to 65535", _valid_ports,
)

DL3020 = SimpleRule(
    "DL3020", Severity.ERROR, "Use COPY instead of ADD for files and folders", _add_for_url_or_archive,
)

DL3021 = SimpleRule(
    "DL3021", Severity.ERROR,
    "Use `COPY` instead of `ADD` for copying non-archive files.",
    _add_only_remote_or_archive,
)

DL3025 = SimpleRule(
    "DL3025", Severity.WARNING,
    "Use arguments JSON notation for CMD and ENTRYPOINT arguments",
    _exec_form_cmd,
)

DL3029 = SimpleRule(
    "DL3029", Severity.WARNING,
    "Do not use --platform flag with FROM unless you're building cross-platform images.",
    _platform_is_variable,
)

DL3043 = SimpleRule(
    "DL3043", Severity.ERROR,
    "`ONBUILD`, `FROM` or `MAINTAINER` triggered from within `ONBUILD` instruction.",
    _onbuild_allowed,
)

DL3044 = SimpleRule(
    "DL3044", Severity.ERROR,
    "Do not refer to an environment variable within the same `ENV` statement where it is defined.",
    _env_no_self_reference,
)

DL3048 = SimpleRule("DL3048", Severity.STYLE, "Invalid label key.", _valid_label_keys)

DL3061 = SimpleRule("DL3061", Severity.ERROR, "Invalid image name in `FROM`.", _valid_image_name)

DL4000 = SimpleRule("DL4000", Severity.ERROR, "MAINTAINER is deprecated", _no_maintainer)
