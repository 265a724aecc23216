from dockerlint.MODELS.check_failure import Severity
from dockerlint.MODELS.instruction import Run
from dockerlint.PARSERS.dockerfile_parser import DockerfileParser
from dockerlint.RULES import CustomRule, RuleData, SimpleRule, all_rules, run_rules
from dockerlint.RULES.engine import on_run


def parse(content):
    return DockerfileParser().parse_from_string(content)


def no_run(instruction, shell):
    return not isinstance(instruction, Run)


def test_simple_rule_fails_on_each_instruction():
    rule = SimpleRule("T001", Severity.WARNING, "no RUN", no_run)
    failures = run_rules([rule], parse("FROM alpine:3.19\nRUN a\nRUN b\n"))
    assert [(f.code, f.line, f.message) for f in failures] == [("T001", 2, "no RUN"), ("T001", 3, "no RUN")]
    assert all(f.severity == Severity.WARNING for f in failures)


def test_failures_ordered_by_line_then_registration():
    first = SimpleRule("T001", Severity.INFO, "first", no_run)
    second = SimpleRule("T002", Severity.INFO, "second", no_run)
    at_end = CustomRule("T003", Severity.INFO, "at end", lambda *args: None, lambda state: state.add_failure(1))
    failures = run_rules([first, second, at_end], parse("FROM alpine:3.19\nRUN a\nRUN b\n"))
    assert [(f.code, f.line) for f in failures] == [
        ("T003", 1), ("T001", 2), ("T002", 2), ("T001", 3), ("T002", 3),
    ]


def test_stage_data_is_cleared_on_from():
    def step(state, line, instruction, shell):
        if isinstance(instruction, Run) and state.stage.increment("runs") > 1:
            state.add_failure(line)

    rule = CustomRule("T001", Severity.INFO, "second RUN in stage", step)
    content = "FROM a:1\nRUN a\nFROM b:1\nRUN b\nRUN c\n"
    assert [f.line for f in run_rules([rule], parse(content))] == [5]


def test_file_data_survives_stages():
    def step(state, line, instruction, shell):
        if isinstance(instruction, Run) and state.file.increment("runs") > 1:
            state.add_failure(line)

    rule = CustomRule("T001", Severity.INFO, "second RUN in file", step)
    assert [f.line for f in run_rules([rule], parse("FROM a:1\nRUN a\nFROM b:1\nRUN b\n"))] == [4]


def test_shell_is_only_passed_for_run():
    seen = []

    def predicate(instruction, shell):
        seen.append((instruction.kind, shell is not None))
        return True

    run_rules([SimpleRule("T001", Severity.INFO, "x", predicate)], parse("FROM a:1\nRUN echo hi\nUSER app\n"))
    assert seen == [("FROM", False), ("RUN", True), ("USER", False)]


def test_onbuild_inner_instruction_is_checked():
    rule = SimpleRule("T001", Severity.INFO, "no sudo", on_run(lambda shell: not shell.using_program("sudo")))
    failures = run_rules([rule], parse("FROM a:1\nONBUILD RUN sudo make\n"))
    assert [f.line for f in failures] == [2]


def test_crashing_rule_fails_open(capsys):
    def step(state, line, instruction, shell):
        state.add_failure(line)
        if isinstance(instruction, Run):
            raise RuntimeError("boom")

    crashing = CustomRule("T001", Severity.INFO, "crash", step)
    healthy = SimpleRule("T002", Severity.INFO, "no RUN", no_run)
    failures = run_rules([crashing, healthy], parse("FROM a:1\nRUN a\n"))

    assert [(f.code, f.line) for f in failures] == [("T001", 1), ("T002", 2)]
    assert "Warning: Rule T001 failed on line 2: boom" in capsys.readouterr().err


def test_custom_message():
    def step(state, line, instruction, shell):
        state.add_failure(line, "custom")

    failures = run_rules([CustomRule("T001", Severity.INFO, "default", step)], parse("FROM a:1\n"))
    assert failures[0].message == "custom"


def test_rule_data():
    data = RuleData()
    assert data.get_int("n") == 0
    assert data.increment("n") == 1
    data.add_to_set("s", "a")
    assert data.set_contains("s", "a")
    assert not data.set_contains("missing", "a")
    data.append("l", 1)
    assert data.get_list("l") == [1]
    data.set_str("k", "v")
    data.remove("k")
    assert data.get_str("k") is None
    data.clear()
    assert data.get_set("s") == set()


def test_registry_is_unique_and_ordered():
    codes = [rule.code for rule in all_rules()]
    assert len(codes) == len(set(codes))
    assert codes[0] == "DL3000"
    assert codes.index("DL3057") < codes.index("DL3008")
