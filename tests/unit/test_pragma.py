from dockerlint.LINTER import lint
from dockerlint.LINTER.pragma import PragmaState, extract_pragmas, filter_failures
from dockerlint.MODELS.check_failure import CheckFailure, Severity
from dockerlint.MODELS.lint_config import LintConfig
from dockerlint.PARSERS.dockerfile_parser import DockerfileParser


def test_ignore_keeps_other_codes_on_the_same_line():
    content = "FROM ubuntu:22.04\n# hadolint ignore=DL3008\nRUN apt-get install -y curl\n"
    failures = [(f.code, f.line) for f in lint(content).failures]
    assert ("DL3008", 3) not in failures
    assert ("DL3015", 3) in failures


def test_ignore_targets_next_instruction_across_comments():
    content = (
        "FROM ubuntu:22.04\n"
        "# hadolint ignore=DL3008,DL3015\n"
        "# install curl\n"
        "RUN apt-get install -y curl\n"
        "RUN apt-get install -y wget\n"
    )
    failures = [(f.code, f.line) for f in lint(content).failures]
    assert ("DL3008", 4) not in failures
    assert ("DL3015", 4) not in failures
    assert ("DL3008", 5) in failures


def test_consecutive_pragmas_accumulate():
    content = (
        "FROM ubuntu:22.04\n"
        "# hadolint ignore=DL3008\n"
        "# hadolint ignore=DL3015\n"
        "RUN apt-get install -y curl\n"
    )
    codes = lint(content).codes()
    assert "DL3008" not in codes
    assert "DL3015" not in codes


def test_global_ignore():
    content = "# hadolint global ignore=DL3006\nFROM ubuntu\nRUN echo hi\nFROM debian\n"
    assert "DL3006" not in lint(content).codes()


def test_codes_are_case_insensitive():
    content = "# hadolint ignore=dl3006\nFROM ubuntu\n"
    assert "DL3006" not in lint(content).codes()


def test_disable_ignore_pragma():
    content = "# hadolint ignore=DL3006\nFROM ubuntu\n"
    assert "DL3006" in lint(content, LintConfig(disable_ignore_pragma=True)).codes()


def test_extract_pragmas():
    instructions = DockerfileParser().parse_from_string(
        "# hadolint shell=/bin/bash\n"
        "# hadolint global ignore=DL3059\n"
        "FROM alpine:3.19\n"
        "# hadolint ignore=DL3018, DL3019\n"
        "RUN apk add curl\n"
    )
    state = extract_pragmas(instructions)
    assert state.shell == "/bin/bash"
    assert state.global_ignored == {"DL3059"}
    assert state.ignored == {5: {"DL3018", "DL3019"}}
    assert state.is_ignored("DL3018", 5)
    assert not state.is_ignored("DL3018", 4)
    assert state.is_ignored("DL3059", 100)


def test_filter_failures_keeps_order():
    failures = [
        CheckFailure(code="DL3008", severity=Severity.WARNING, message="a", line=3),
        CheckFailure(code="DL3015", severity=Severity.INFO, message="b", line=3),
        CheckFailure(code="DL3009", severity=Severity.INFO, message="c", line=3),
    ]
    pragmas = PragmaState(ignored={3: {"DL3015"}})
    assert [f.code for f in filter_failures(failures, pragmas)] == ["DL3008", "DL3009"]
