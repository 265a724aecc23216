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
Stateless rules about which programs a RUN instruction invokes.
"""
from ..MODELS.check_failure import Severity
from ..MODELS.parsed_shell import Command, ParsedShell
from .engine import SimpleRule, on_run

INTERACTIVE_TOOLS = (
    "ssh", "vim", "shutdown", "service", "ps", "free", "top", "kill", "mount", "ifconfig", "nano",
)


def _no_interactive_tools(shell: ParsedShell) -> bool:
    return shell.no_commands(lambda c: c.name in INTERACTIVE_TOOLS)


def _no_cd(shell: ParsedShell) -> bool:
    return not shell.using_program("cd")


def _no_sudo(shell: ParsedShell) -> bool:
    return not shell.using_program("sudo")


def _no_apt_upgrade(shell: ParsedShell) -> bool:
    return shell.no_commands(lambda c: c.has_args("apt-get", ("upgrade", "dist-upgrade")))


def _no_apk_upgrade(shell: ParsedShell) -> bool:
    return shell.no_commands(lambda c: c.has_args("apk", ("upgrade",)))


def _no_apt(shell: ParsedShell) -> bool:
    return not shell.using_program("apt")


def _no_yum_update(shell: ParsedShell) -> bool:
    return shell.no_commands(lambda c: c.has_args("yum", ("update", "upgrade")))


def _no_zypper_dist_upgrade(shell: ParsedShell) -> bool:
    return shell.no_commands(lambda c: c.has_args("zypper", ("dist-upgrade", "dup")))


def _no_dnf_update(shell: ParsedShell) -> bool:
    return shell.no_commands(
        lambda c: c.name in ("dnf", "microdnf") and c.has_any_arg(("update", "upgrade", "upgrade-minimal"))
    )


def _large_uid_without_no_log_init(command: Command) -> bool:
    if command.name != "useradd" or command.has_any_flag(("l", "no-log-init")):
        return False
    uid = command.get_flag_value("u") or command.get_flag_value("uid")
    return uid is not None and uid.isdigit() and len(uid) > 5


def _useradd_no_log_init(shell: ParsedShell) -> bool:
    return shell.no_commands(_large_uid_without_no_log_init)


def _no_sh_symlink(shell: ParsedShell) -> bool:
    return shell.no_commands(lambda c: c.name == "ln" and "/bin/sh" in c.arguments)


DL3001 = SimpleRule(
    "DL3001", Severity.INFO,
    "For some bash commands it makes no sense running them in a Docker container like "
    "ssh, vim, shutdown, service, ps, free, top, kill, mount, ifconfig",
    on_run(_no_interactive_tools),
)

DL3003 = SimpleRule("DL3003", Severity.WARNING, "Use WORKDIR to switch to a directory", on_run(_no_cd))

DL3004 = SimpleRule(
    "DL3004", Severity.ERROR,
    "Do not use sudo as it leads to unpredictable behavior. Use a tool like gosu to enforce root",
    on_run(_no_sudo),
)

DL3005 = SimpleRule(
    "DL3005", Severity.WARNING, "Do not use `apt-get upgrade` or `dist-upgrade`.", on_run(_no_apt_upgrade),
)

DL3017 = SimpleRule("DL3017", Severity.ERROR, "Do not use `apk upgrade`.", on_run(_no_apk_upgrade))

DL3027 = SimpleRule(
    "DL3027", Severity.WARNING,
    "Do not use apt as it is meant to be an end-user tool, use apt-get or apt-cache instead",
    on_run(_no_apt),
)

DL3031 = SimpleRule("DL3031", Severity.ERROR, "Do not use yum update.", on_run(_no_yum_update))

DL3035 = SimpleRule(
    "DL3035", Severity.WARNING, "Do not use `zypper dist-upgrade`.", on_run(_no_zypper_dist_upgrade),
)

DL3039 = SimpleRule("DL3039", Severity.ERROR, "Do not use dnf update.", on_run(_no_dnf_update))

DL3046 = SimpleRule(
    "DL3046", Severity.WARNING,
    "`useradd` without flag `-l` and target UID not within `/etc/login.defs` "
    "may result in excessively large image.",
    on_run(_useradd_no_log_init),
)

DL4005 = SimpleRule(
    "DL4005", Severity.WARNING, "Use `SHELL` to change the default shell.", on_run(_no_sh_symlink),
)
