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
Stateful rules correlating instructions across a build stage or the whole file.

``state.stage`` is cleared by the engine on every FROM. Anything that must
outlive a stage, such as the set of stage aliases, lives in ``state.file``.
"""
import fnmatch
import re
from ..MODELS.check_failure import Severity
from ..MODELS.instruction import (
    Cmd, Comment, Copy, Entrypoint, ExecArguments, From, Healthcheck, Run, Shell, User, Workdir,
)
from ..MODELS.lint_config import LintConfig
from .engine import CustomRule

WINDOWS_PATH_RE = re.compile(r'^[A-Za-z]:[\\/]')
NON_POSIX_SHELLS = ("pwsh", "powershell", "cmd", "cmd.exe")


def _stage_alias(state, image) -> str:
    # Unnamed stages are addressed by index, which COPY --from also accepts.
    index = state.file.get_int("stage_count")
    state.file.set_int("stage_count", index + 1)
    alias = (image.alias or str(index)).lower()
    state.stage.set_str("alias", alias)
    return alias


# DL3002

def _track_last_user(state, line, instruction, shell):
    if isinstance(instruction, User):
        state.stage.set_str("user", instruction.user.strip())
        state.stage.set_int("user_line", line)


def _last_user_not_root(state):
    user = state.stage.get_str("user")
    if user is None:
        return
    name = user.split(":", 1)[0]
    if name in ("root", "0"):
        state.add_failure(state.stage.get_int("user_line"))


DL3002 = CustomRule(
    "DL3002", Severity.WARNING, "Last USER should not be root", _track_last_user, _last_user_not_root,
)


# DL3006

def _tagged_image(state, line, instruction, shell):
    if not isinstance(instruction, From):
        return
    image = instruction.image
    previous_stage = state.file.set_contains("aliases", image.name.lower())
    if not (image.is_scratch or image.has_version or image.is_variable or previous_stage):
        state.add_failure(line)
    if image.alias:
        state.file.add_to_set("aliases", image.alias.lower())


DL3006 = CustomRule(
    "DL3006", Severity.WARNING, "Always tag the version of an image explicitly", _tagged_image,
)


# DL3012, DL4003, DL4004

def _counting(kind):
    def step(state, line, instruction, shell):
        if isinstance(instruction, kind) and state.stage.increment("count") > 1:
            state.add_failure(line)
    return step


DL3012 = CustomRule(
    "DL3012", Severity.ERROR, "Multiple `HEALTHCHECK` instructions.", _counting(Healthcheck),
)

DL4003 = CustomRule(
    "DL4003", Severity.WARNING,
    "Multiple `CMD` instructions found. If you list more than one `CMD` then only the last `CMD` will take effect",
    _counting(Cmd),
)

DL4004 = CustomRule(
    "DL4004", Severity.ERROR,
    "Multiple `ENTRYPOINT` instructions found. If you list more than one `ENTRYPOINT` "
    "then only the last `ENTRYPOINT` will take effect",
    _counting(Entrypoint),
)


# DL3022, DL3062

def _copy_from_previous_stage(state, line, instruction, shell):
    if isinstance(instruction, From):
        if instruction.image.alias:
            state.file.add_to_set("aliases", instruction.image.alias.lower())
        state.file.increment("stage_count")
    elif isinstance(instruction, Copy) and instruction.flags.from_stage:
        source = instruction.flags.from_stage
        known_alias = state.file.set_contains("aliases", source.lower())
        known_index = source.isdigit() and int(source) < state.file.get_int("stage_count")
        external = "/" in source or ":" in source or "$" in source
        if not (known_alias or known_index or external):
            state.add_failure(line, f"`COPY --from={source}` references an undefined stage.")


DL3022 = CustomRule(
    "DL3022", Severity.WARNING,
    "`COPY --from` should reference a previously defined `FROM` alias.",
    _copy_from_previous_stage,
)


def _copy_from_stage_or_image(state, line, instruction, shell):
    if isinstance(instruction, From):
        if instruction.image.alias:
            state.file.add_to_set("stages", instruction.image.alias.lower())
    elif isinstance(instruction, Copy) and instruction.flags.from_stage:
        source = instruction.flags.from_stage
        if state.file.set_contains("stages", source.lower()) or source.isdigit():
            return
        if any(c in source for c in "/.:$"):
            return
        state.add_failure(line)


DL3062 = CustomRule(
    "DL3062", Severity.WARNING,
    "`COPY --from` should reference a defined build stage or an external image.",
    _copy_from_stage_or_image,
)


# DL3023

def _copy_from_self(state, line, instruction, shell):
    if isinstance(instruction, From):
        if instruction.image.alias:
            state.stage.set_str("alias", instruction.image.alias.lower())
    elif isinstance(instruction, Copy) and instruction.flags.from_stage:
        alias = state.stage.get_str("alias")
        if alias is not None and instruction.flags.from_stage.lower() == alias:
            state.add_failure(line)


DL3023 = CustomRule(
    "DL3023", Severity.ERROR, "`COPY --from` cannot reference its own `FROM` alias.", _copy_from_self,
)


# DL3024

def _unique_alias(state, line, instruction, shell):
    if not isinstance(instruction, From) or not instruction.image.alias:
        return
    alias = instruction.image.alias.lower()
    if state.file.set_contains("aliases", alias):
        state.add_failure(line, f"Duplicate `FROM` alias `{instruction.image.alias}`.")
    state.file.add_to_set("aliases", alias)


DL3024 = CustomRule("DL3024", Severity.ERROR, "`FROM` aliases (stage names) must be unique", _unique_alias)


# DL3045

def _is_absolute(path: str) -> bool:
    if len(path) >= 2 and path[0] == path[-1] and path[0] in ("'", '"'):
        path = path[1:-1]
    return path.startswith(("/", "$")) or bool(WINDOWS_PATH_RE.match(path))


def _copy_with_workdir(state, line, instruction, shell):
    if isinstance(instruction, From):
        alias = _stage_alias(state, instruction.image)
        if state.file.set_contains("workdir_stages", instruction.image.name.lower()):
            state.stage.set_bool("workdir")
            state.file.add_to_set("workdir_stages", alias)
    elif isinstance(instruction, Workdir):
        state.stage.set_bool("workdir")
        alias = state.stage.get_str("alias")
        if alias is not None:
            state.file.add_to_set("workdir_stages", alias)
    elif isinstance(instruction, Copy):
        if not state.stage.get_bool("workdir") and not _is_absolute(instruction.dest):
            state.add_failure(line)


DL3045 = CustomRule(
    "DL3045", Severity.WARNING, "`COPY` to a relative destination without `WORKDIR` set.", _copy_with_workdir,
)


# DL3047, DL4001

def _wget_or_curl_per_stage(state, line, instruction, shell):
    if not isinstance(instruction, Run) or shell is None:
        return
    if shell.using_program("wget"):
        state.stage.set_bool("wget")
    if shell.using_program("curl"):
        state.stage.set_bool("curl")
    if state.stage.get_bool("wget") and state.stage.get_bool("curl") and not state.stage.get_bool("reported"):
        state.stage.set_bool("reported")
        state.add_failure(line)


DL3047 = CustomRule(
    "DL3047", Severity.INFO,
    "Avoid using both `wget` and `curl` since they serve the same purpose.",
    _wget_or_curl_per_stage,
)


def _collect_downloaders(state, line, instruction, shell):
    if not isinstance(instruction, Run) or shell is None:
        return
    if shell.using_program("wget"):
        state.file.append("wget", line)
    if shell.using_program("curl"):
        state.file.append("curl", line)


def _report_downloaders(state):
    wget, curl = state.file.get_list("wget"), state.file.get_list("curl")
    if wget and curl:
        for line in sorted(set(wget) | set(curl)):
            state.add_failure(line)


DL4001 = CustomRule(
    "DL4001", Severity.WARNING, "Either use `wget` or `curl`, but not both.",
    _collect_downloaders, _report_downloaders,
)


# DL3057

def _track_healthcheck(state, line, instruction, shell):
    if isinstance(instruction, Healthcheck):
        state.file.set_bool("healthcheck")
    elif not isinstance(instruction, (From, Comment)):
        state.file.set_bool("content")


def _healthcheck_present(state):
    if state.file.get_bool("content") and not state.file.get_bool("healthcheck"):
        state.add_failure(1)


DL3057 = CustomRule(
    "DL3057", Severity.INFO, "HEALTHCHECK instruction missing.", _track_healthcheck, _healthcheck_present,
)


# DL3059

def _consecutive_runs(state, line, instruction, shell):
    if not isinstance(instruction, Run):
        state.stage.remove("flags")
        return
    flags = instruction.flags.model_dump_json()
    if state.stage.get_str("flags") == flags:
        state.add_failure(line)
    state.stage.set_str("flags", flags)


DL3059 = CustomRule(
    "DL3059", Severity.INFO,
    "Multiple consecutive `RUN` instructions. Consider consolidation.",
    _consecutive_runs,
)


# DL4006

def _sets_pipefail(arguments) -> bool:
    items = arguments.items if isinstance(arguments, ExecArguments) else arguments.as_text().split()
    for i, item in enumerate(items[:-1]):
        if item.startswith("-") and not item.startswith("--") and "o" in item and items[i + 1] == "pipefail":
            return True
    return False


def _pipefail_before_pipe(state, line, instruction, shell):
    if isinstance(instruction, Shell):
        items = instruction.arguments.items if isinstance(instruction.arguments, ExecArguments) else []
        program = items[0].rsplit("/", 1)[-1].lower() if items else ""
        state.stage.set_bool("non_posix", program in NON_POSIX_SHELLS)
        state.stage.set_bool("pipefail", _sets_pipefail(instruction.arguments))
    elif isinstance(instruction, Run) and shell is not None and shell.has_pipes:
        if state.stage.get_bool("pipefail") or state.stage.get_bool("non_posix"):
            return
        if shell.any_command(lambda c: c.name == "set" and "pipefail" in c.words):
            return
        state.add_failure(line)


DL4006 = CustomRule(
    "DL4006", Severity.WARNING,
    "Set the SHELL option -o pipefail before RUN with a pipe in it. If you are using /bin/sh "
    "in an alpine image or if your shell is symlinked to busybox then consider explicitly "
    "setting your SHELL to /bin/ash, or disable this check",
    _pipefail_before_pipe,
)


def trusted_registries(config: LintConfig) -> CustomRule:
    """
    DL3026: base images must come from a trusted registry. Patterns such as
    ``*.example.com`` are matched with shell-style wildcards.
    """
    trusted = sorted(config.trusted_registries)

    def step(state, line, instruction, shell):
        if not isinstance(instruction, From):
            return
        image = instruction.image
        previous_stage = state.file.set_contains("aliases", image.name.lower())
        if image.alias:
            state.file.add_to_set("aliases", image.alias.lower())
        if not trusted or image.is_scratch or image.is_variable or previous_stage:
            return
        registry = image.registry or "docker.io"
        if not any(fnmatch.fnmatch(registry, pattern) for pattern in trusted):
            state.add_failure(line)

    return CustomRule("DL3026", Severity.ERROR, "Use only an allowed registry in the FROM image", step)
