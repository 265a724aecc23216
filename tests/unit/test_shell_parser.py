from dockerlint.MODELS.instruction import ExecArguments, Run
from dockerlint.PARSERS.shell_parser import ShellParser, build_command


def names(text):
    return ShellParser.parse(text).find_command_names()


def test_splits_on_control_operators():
    shell = ShellParser.parse("apt-get update && apt-get install -y --no-install-recommends curl=7.0")
    assert shell.find_command_names() == ["apt-get", "apt-get"]
    install = shell.commands[1]
    assert install.has_flag("y")
    assert install.has_flag("no-install-recommends")
    assert install.arguments == ["install", "curl=7.0"]
    assert shell.commands[0].operator == "&&"


def test_quotes_are_respected():
    shell = ShellParser.parse('echo "a && b" && ls \'x; y\'')
    assert shell.find_command_names() == ["echo", "ls"]
    assert shell.commands[0].arguments == ["a && b"]
    assert shell.commands[1].arguments == ["x; y"]


def test_pipes():
    assert ShellParser.parse("curl -s http://example.com | sh").has_pipes
    assert not ShellParser.parse("true || false").has_pipes


def test_assignments_are_skipped():
    assert names("DEBIAN_FRONTEND=noninteractive apt-get install -y tzdata") == ["apt-get"]


def test_redirects_are_dropped():
    shell = ShellParser.parse("echo hi > /tmp/out 2>&1 && cat < /etc/hosts")
    assert shell.find_command_names() == ["echo", "cat"]
    assert shell.commands[0].arguments == ["hi"]
    assert shell.commands[1].arguments == []


def test_grouping_and_keywords():
    assert names("(cd /app && make)") == ["cd", "make"]
    assert names("if [ -f x ]; then rm x; fi") == ["[", "rm"]
    assert names("for f in *.txt; do cat $f; done") == ["cat"]


def test_newlines_separate_commands():
    assert names("apt-get update\napt-get install -y curl") == ["apt-get", "apt-get"]


def test_comments():
    assert names("echo hi # && rm -rf /") == ["echo"]


def test_command_substitution_stays_in_word():
    shell = ShellParser.parse("echo $(cd /tmp && pwd) && ls")
    assert shell.find_command_names() == ["echo", "ls"]
    assert shell.commands[0].arguments == ["$(cd /tmp && pwd)"]


def test_unbalanced_quote_degrades_to_empty():
    shell = ShellParser.parse("echo 'oops")
    assert shell.commands == []
    assert shell.original == "echo 'oops"


def test_from_run_exec_form():
    run = Run(arguments=ExecArguments(items=["apt-get", "install", "-y", "curl"]))
    shell = ShellParser.from_run(run)
    assert shell.find_command_names() == ["apt-get"]
    assert shell.commands[0].has_flag("y")


def test_build_command_flags():
    command = build_command("tar", ["-xzf", "a.tgz", "--strip-components=1", "--", "-weird"])
    assert command.flags == {"x", "z", "f", "strip-components"}
    assert command.arguments == ["a.tgz", "-weird"]


def test_flag_values():
    assert build_command("useradd", ["-u", "1000", "app"]).get_flag_value("u") == "1000"
    pip = build_command("pip", ["--index-url=https://pypi.example.com", "install", "x"])
    assert pip.get_flag_value("index-url") == "https://pypi.example.com"
    assert pip.get_flag_value("target") is None


def test_packages_after():
    command = build_command("apt-get", ["-t", "bookworm", "install", "-y", "curl", "git=1:2.39"])
    assert command.packages_after(("install",), ("t",)) == ["curl", "git=1:2.39"]
    pip = build_command("pip", ["install", "-i", "https://mirror", "flask==3.0"])
    assert pip.packages_after(("install",), ("i",)) == ["flask==3.0"]


def test_find_commands():
    shell = ShellParser.parse("npm ci && npm install express && yarn add react")
    npm = shell.find_commands("npm")
    assert [c.arguments for c in npm] == [["ci"], ["install", "express"]]
    assert shell.find_commands("pnpm") == []


def test_pip_detection():
    assert build_command("pip3", ["install", "x"]).is_pip_install
    assert build_command("python3", ["-m", "pip", "install", "x"]).is_pip_install
    assert not build_command("pipx", ["install", "x"]).is_pip_install
    assert not build_command("python", ["app.py"]).is_pip_install
