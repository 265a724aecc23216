import os
import pytest
from dockerlint.LINTER import lint
from dockerlint.PARSERS.config_parser import ConfigError, ConfigParser
from dockerlint.PARSERS.dockerfile_parser import DockerfileParser


def test_run_instructions_are_never_executed(tmp_path):
    """
    Linting only analyzes shell code. Nothing in a RUN, including command
    substitutions, may be executed.
    """
    marker = tmp_path / "injected.txt"
    content = (
        "FROM alpine:3.19\n"
        f"RUN touch {marker}\n"
        f"RUN echo $(touch {marker}) `touch {marker}`\n"
        f"HEALTHCHECK CMD touch {marker}\n"
    )
    lint(content)
    assert not marker.exists(), "Dockerfile content was executed during linting."


def test_config_does_not_construct_python_objects():
    """
    Config files are loaded with yaml.safe_load, so python tags are rejected.
    """
    content = "ignored: !!python/object/apply:os.system ['echo injected']\n"
    with pytest.raises(ConfigError):
        ConfigParser(context={}).parse_from_string(content)


def test_missing_dockerfile():
    parser = DockerfileParser()
    with pytest.raises(FileNotFoundError):
        parser.parse("non_existent_file_12345")


def test_environment_is_not_read_when_context_given(monkeypatch):
    monkeypatch.setenv("HADOLINT_IGNORE", "DL3006")
    config = ConfigParser(context={}).parse_from_string("")
    assert config.ignored == set()
    assert "DL3006" in ConfigParser(context=dict(os.environ)).parse_from_string("").ignored
