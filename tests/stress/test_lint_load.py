import time
from dockerlint.LINTER import lint
from dockerlint.PARSERS.dockerfile_parser import DockerfileParser
from dockerlint.PARSERS.shell_parser import ShellParser


def build_dockerfile(stages, runs_per_stage):
    content = ""
    for stage in range(stages):
        content += f"FROM python:3.12-slim AS stage{stage}\n"
        content += "WORKDIR /app\n"
        for i in range(runs_per_stage):
            content += f"RUN apt-get update && apt-get install -y --no-install-recommends pkg{i}=1.{i} \\\n"
            content += "    && rm -rf /var/lib/apt/lists/* | tee /tmp/log\n"
        content += f"COPY --from=stage{max(stage - 1, 0)} /app /app\n"
    return content


def test_large_dockerfile_lint():
    content = build_dockerfile(stages=20, runs_per_stage=100)

    start_time = time.time()
    result = lint(content)
    end_time = time.time()

    print(f"Linted {len(content.splitlines())} lines in {end_time - start_time:.2f}s")
    assert result.has_failures
    assert end_time - start_time < 20.0


def test_large_dockerfile_parsing():
    parser = DockerfileParser()

    content = "FROM alpine:3.19\n"
    for i in range(5000):
        content += f"ENV VAR_{i}=VALUE_{i}\n"
        content += f"LABEL com.example.key{i}=\"value {i}\"\n"

    start_time = time.time()
    instructions = parser.parse_from_string(content)
    end_time = time.time()

    assert len(instructions) == 10001
    assert end_time - start_time < 5.0  # Should parse 10000 instructions in less than 5 seconds


def test_long_shell_script_tokenizing():
    script = " && ".join(f"echo \"step {i}\" > /tmp/out{i}" for i in range(5000))

    start_time = time.time()
    shell = ShellParser.parse(script)
    end_time = time.time()

    assert len(shell.commands) == 5000
    assert end_time - start_time < 5.0


def test_shell_is_parsed_once_per_run(monkeypatch):
    calls = []
    original = ShellParser.from_run

    def counting(run):
        calls.append(run)
        return original(run)

    monkeypatch.setattr(ShellParser, "from_run", counting)
    content = "FROM alpine:3.19\n" + "RUN apk add --no-cache curl=8.5.0-r0 | cat\n" * 50 + "ONBUILD RUN echo hi\n"
    lint(content)
    assert len(calls) == 51


def best_lint_time(content, repeats=3):
    best = None
    for _ in range(repeats):
        start_time = time.time()
        lint(content)
        elapsed = time.time() - start_time
        best = elapsed if best is None else min(best, elapsed)
    return best


def test_lint_time_grows_linearly():
    small = build_dockerfile(stages=1, runs_per_stage=200)
    large = build_dockerfile(stages=1, runs_per_stage=800)
    lint(small)  # warm-up

    small_time = best_lint_time(small)
    large_time = best_lint_time(large)

    print(f"200 RUNs: {small_time:.3f}s, 800 RUNs: {large_time:.3f}s")
    # 4x the input; a quadratic pass would take about 16x as long.
    assert large_time < 8 * max(small_time, 0.01)
