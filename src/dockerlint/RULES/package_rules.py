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
Rules for package manager usage in RUN instructions: version pinning,
non-interactive flags and cache cleanup.

Cleanup checks scan forward from the first install command, so a cleanup
that runs before the install does not count.
"""
import re
from typing import Callable, Iterable, List
from ..MODELS.check_failure import Severity
from ..MODELS.instruction import Run
from ..MODELS.parsed_shell import Command, ParsedShell
from .engine import SimpleRule, on_run

PIP_VERSION_RE = re.compile(r'(===|==|>=|<=|!=|~=|<|>|@)')

APT_VALUE_FLAGS = ("t", "target-release", "o", "option", "c", "config-file")
APK_VALUE_FLAGS = ("t", "virtual", "X", "repository", "p", "root", "cache-dir")
GEM_VALUE_FLAGS = ("i", "install-dir", "n", "bindir", "source", "platform", "g", "file")
PIP_VALUE_FLAGS = (
    "i", "index-url", "extra-index-url", "f", "find-links", "t", "target", "prefix",
    "root", "src", "trusted-host", "platform", "python-version", "implementation", "abi",
    "progress-bar", "upgrade-strategy", "only-binary", "no-binary", "log", "cache-dir",
    "proxy", "timeout", "retries", "exists-action", "cert", "client-cert",
)
YUM_VALUE_FLAGS = ("c", "config", "installroot", "enablerepo", "disablerepo", "x", "exclude", "releasever")
ZYPPER_VALUE_FLAGS = ("r", "repo", "t", "type", "from")


def _is_variable(package: str) -> bool:
    return "$" in package


def _cleans_after_install(shell: ParsedShell,
                          is_install: Callable[[Command], bool],
                          is_cleanup: Callable[[Command], bool]) -> bool:
    commands = shell.commands
    for i, command in enumerate(commands):
        if is_install(command):
            return any(is_cleanup(c) for c in commands[i + 1:])
    return True


def _removes(command: Command, prefix: str) -> bool:
    return command.name == "rm" and any(arg.startswith(prefix) for arg in command.arguments)


def _has_cache_mount(instruction, targets: Iterable[str]) -> bool:
    if not isinstance(instruction, Run):
        return False
    targets = tuple(targets)
    for mount in instruction.flags.mounts:
        if mount.type != "cache":
            continue
        target = mount.options.get("target") or mount.options.get("dst") or mount.options.get("destination")
        if target and target.rstrip("/") in targets:
            return True
    return False


# apt-get

def _apt_packages(command: Command) -> List[str]:
    return command.packages_after(("install",), APT_VALUE_FLAGS)


def _apt_pinned(shell: ParsedShell) -> bool:
    for command in shell.commands:
        if not command.is_apt_get_install:
            continue
        for package in _apt_packages(command):
            if _is_variable(package):
                continue
            if "=" not in package and "/" not in package and not package.endswith(".deb"):
                return False
    return True


def _apt_lists_removed(instruction, shell) -> bool:
    if not isinstance(instruction, Run) or shell is None:
        return True
    if _has_cache_mount(instruction, ("/var/lib/apt/lists", "/var/lib/apt", "/var/cache/apt")):
        return True
    return _cleans_after_install(
        shell,
        lambda c: c.is_apt_get_install,
        lambda c: _removes(c, "/var/lib/apt/lists") or c.has_args("apt-get", ("clean", "autoclean")),
    )


def _apt_assume_yes(shell: ParsedShell) -> bool:
    return shell.all_commands(
        lambda c: not c.is_apt_get_install
        or c.has_any_flag(("y", "yes", "assume-yes"))
        or "-qq" in c.words
        or "--quiet=2" in c.words
    )


def _apt_no_recommends(shell: ParsedShell) -> bool:
    return shell.all_commands(
        lambda c: not c.is_apt_get_install
        or c.has_flag("no-install-recommends")
        or "APT::Install-Recommends=false" in c.words
    )


# pip

def _pip_requirement_pinned(package: str) -> bool:
    if _is_variable(package) or "://" in package:
        return True
    if package.startswith((".", "/")) or package.endswith((".whl", ".tar.gz", ".zip")):
        return True
    return bool(PIP_VERSION_RE.search(package))


def _pip_pinned(shell: ParsedShell) -> bool:
    for command in shell.commands:
        if not command.is_pip_install:
            continue
        if command.has_any_flag(("r", "requirement", "c", "constraint", "e", "editable")):
            continue
        for package in command.packages_after(("install",), PIP_VALUE_FLAGS):
            if not _pip_requirement_pinned(package):
                return False
    return True


def _pip_no_cache(instruction, shell) -> bool:
    if not isinstance(instruction, Run) or shell is None:
        return True
    if _has_cache_mount(instruction, ("/root/.cache/pip", "/root/.cache")):
        return True
    return shell.all_commands(lambda c: not c.is_pip_install or c.has_flag("no-cache-dir"))


# npm

def _npm_package_pinned(package: str) -> bool:
    if _is_variable(package):
        return True
    if package.startswith((".", "/", "~", "git", "http", "file:")) or package.endswith(".tgz"):
        return True
    # The version separator is an @ after the first character, which may open a scope.
    return "@" in package[1:]


def _npm_pinned(shell: ParsedShell) -> bool:
    for command in shell.find_commands("npm"):
        for package in command.packages_after(("install", "i", "add")):
            if not _npm_package_pinned(package):
                return False
    return True


# apk

def _apk_pinned(shell: ParsedShell) -> bool:
    for command in shell.commands:
        if not command.is_apk_add:
            continue
        for package in command.packages_after(("add",), APK_VALUE_FLAGS):
            if _is_variable(package) or package.startswith("."):
                continue
            if "=" not in package and "~" not in package:
                return False
    return True


def _apk_no_cache(instruction, shell) -> bool:
    if not isinstance(instruction, Run) or shell is None:
        return True
    if _has_cache_mount(instruction, ("/var/cache/apk",)):
        return True
    return shell.all_commands(lambda c: not c.is_apk_add or c.has_flag("no-cache"))


# gem

def _gem_pinned(shell: ParsedShell) -> bool:
    for command in shell.find_commands("gem"):
        if command.has_any_flag(("v", "version")):
            continue
        for package in command.packages_after(("install", "i"), GEM_VALUE_FLAGS):
            if not _is_variable(package) and ":" not in package:
                return False
    return True


# yum

def _is_yum_install(command: Command) -> bool:
    return command.name == "yum" and command.has_any_arg(("install", "groupinstall", "localinstall"))


def _yum_cleaned(shell: ParsedShell) -> bool:
    return _cleans_after_install(
        shell,
        _is_yum_install,
        lambda c: c.has_args("yum", ("clean",)) or _removes(c, "/var/cache/yum"),
    )


def _rpm_pinned(package: str) -> bool:
    if _is_variable(package) or package.endswith(".rpm") or package.startswith("@"):
        return True
    _, sep, version = package.rpartition("-")
    return bool(sep) and version[:1].isdigit()


def _yum_pinned(shell: ParsedShell) -> bool:
    for command in shell.commands:
        if command.name != "yum" or not command.has_arg("install"):
            continue
        if not all(_rpm_pinned(p) for p in command.packages_after(("install",), YUM_VALUE_FLAGS)):
            return False
    return True


# zypper

ZYPPER_INSTALL = ("install", "in")
ZYPPER_OTHER_PROMPTING = ("remove", "rm", "update", "up", "patch", "dist-upgrade", "dup")
ZYPPER_NON_INTERACTIVE = ("n", "non-interactive", "no-confirm", "y")


def _is_zypper_install(command: Command) -> bool:
    return command.name == "zypper" and command.has_any_arg(ZYPPER_INSTALL)


def _zypper_install_non_interactive(shell: ParsedShell) -> bool:
    return shell.all_commands(
        lambda c: not _is_zypper_install(c) or c.has_any_flag(ZYPPER_NON_INTERACTIVE)
    )


def _zypper_other_non_interactive(shell: ParsedShell) -> bool:
    return shell.all_commands(
        lambda c: c.name != "zypper"
        or _is_zypper_install(c)
        or not c.has_any_arg(ZYPPER_OTHER_PROMPTING)
        or c.has_any_flag(ZYPPER_NON_INTERACTIVE)
    )


def _zypper_cleaned(shell: ParsedShell) -> bool:
    return _cleans_after_install(
        shell,
        _is_zypper_install,
        lambda c: c.has_args("zypper", ("clean", "cc")) or _removes(c, "/var/cache/zypp"),
    )


def _zypper_pinned(shell: ParsedShell) -> bool:
    for command in shell.commands:
        if not _is_zypper_install(command):
            continue
        for package in command.packages_after(ZYPPER_INSTALL, ZYPPER_VALUE_FLAGS):
            if _is_variable(package) or package.endswith(".rpm"):
                continue
            if not any(op in package for op in ("=", "<", ">")):
                return False
    return True


# dnf

def _is_dnf_install(command: Command) -> bool:
    return command.name in ("dnf", "microdnf") and command.has_any_arg(("install", "groupinstall", "localinstall"))


def _dnf_assume_yes(shell: ParsedShell) -> bool:
    return shell.all_commands(
        lambda c: not _is_dnf_install(c) or c.name == "microdnf" or c.has_any_flag(("y", "assumeyes"))
    )


def _dnf_cleaned(shell: ParsedShell) -> bool:
    return _cleans_after_install(
        shell,
        _is_dnf_install,
        lambda c: c.has_args("dnf", ("clean",)) or c.has_args("microdnf", ("clean",)) or _removes(c, "/var/cache/dnf"),
    )


def _dnf_pinned(shell: ParsedShell) -> bool:
    for command in shell.commands:
        if command.name not in ("dnf", "microdnf") or not command.has_arg("install"):
            continue
        if not all(_rpm_pinned(p) for p in command.packages_after(("install",), YUM_VALUE_FLAGS)):
            return False
    return True


# yarn

def _yarn_cleaned(shell: ParsedShell) -> bool:
    return _cleans_after_install(
        shell,
        lambda c: c.name == "yarn" and (c.has_arg("install") or not c.arguments),
        lambda c: c.name == "yarn" and c.arguments[:2] == ["cache", "clean"],
    )


DL3008 = SimpleRule(
    "DL3008", Severity.WARNING,
    "Pin versions in apt get install. Instead of `apt-get install <package>` "
    "use `apt-get install <package>=<version>`",
    on_run(_apt_pinned),
)

DL3009 = SimpleRule(
    "DL3009", Severity.INFO, "Delete the apt-get lists after installing something.", _apt_lists_removed,
)

DL3013 = SimpleRule(
    "DL3013", Severity.WARNING,
    "Pin versions in pip. Instead of `pip install <package>` use `pip install <package>==<version>` "
    "or `pip install --requirement <requirements file>`",
    on_run(_pip_pinned),
)

DL3014 = SimpleRule(
    "DL3014", Severity.WARNING,
    "Use the `-y` switch to avoid manual input `apt-get -y install <package>`.",
    on_run(_apt_assume_yes),
)

DL3015 = SimpleRule(
    "DL3015", Severity.INFO,
    "Avoid additional packages by specifying `--no-install-recommends`.",
    on_run(_apt_no_recommends),
)

DL3016 = SimpleRule(
    "DL3016", Severity.WARNING,
    "Pin versions in npm. Instead of `npm install <package>` use `npm install <package>@<version>`.",
    on_run(_npm_pinned),
)

DL3018 = SimpleRule(
    "DL3018", Severity.WARNING,
    "Pin versions in apk add. Instead of `apk add <package>` use `apk add <package>=<version>`.",
    on_run(_apk_pinned),
)

DL3019 = SimpleRule(
    "DL3019", Severity.INFO,
    "Use the `--no-cache` switch to avoid the need to use `--update` and remove `/var/cache/apk/*`.",
    _apk_no_cache,
)

DL3028 = SimpleRule(
    "DL3028", Severity.WARNING,
    "Pin versions in gem install. Instead of `gem install <gem>` use `gem install <gem>:<version>`.",
    on_run(_gem_pinned),
)

DL3030 = SimpleRule(
    "DL3030", Severity.WARNING,
    "Use the `--non-interactive` switch to avoid prompts during `zypper` install.",
    on_run(_zypper_install_non_interactive),
)

DL3032 = SimpleRule(
    "DL3032", Severity.WARNING, "`yum clean all` missing after yum command.", on_run(_yum_cleaned),
)

DL3033 = SimpleRule(
    "DL3033", Severity.WARNING,
    "Specify version with `yum install -y <package>-<version>`.",
    on_run(_yum_pinned),
)

DL3034 = SimpleRule(
    "DL3034", Severity.WARNING,
    "Non-interactive switch missing from `zypper` command: `zypper -n <command>`.",
    on_run(_zypper_other_non_interactive),
)

DL3036 = SimpleRule(
    "DL3036", Severity.WARNING, "`zypper clean` missing after zypper install.", on_run(_zypper_cleaned),
)

DL3037 = SimpleRule(
    "DL3037", Severity.WARNING,
    "Specify version with `zypper install <package>=<version>`.",
    on_run(_zypper_pinned),
)

DL3038 = SimpleRule(
    "DL3038", Severity.WARNING,
    "Use the -y switch to avoid manual input `dnf install -y <package>`",
    on_run(_dnf_assume_yes),
)

DL3040 = SimpleRule(
    "DL3040", Severity.WARNING, "`dnf clean all` missing after dnf install.", on_run(_dnf_cleaned),
)

DL3041 = SimpleRule(
    "DL3041", Severity.WARNING,
    "Specify version with `dnf install <package>-<version>`.",
    on_run(_dnf_pinned),
)

DL3042 = SimpleRule(
    "DL3042", Severity.WARNING,
    "Avoid use of cache directory with pip. Use `pip install --no-cache-dir <package>`.",
    _pip_no_cache,
)

DL3060 = SimpleRule(
    "DL3060", Severity.INFO, "`yarn cache clean` missing after `yarn install`.", on_run(_yarn_cleaned),
)
