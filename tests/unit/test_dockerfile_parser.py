import pytest
from dockerlint.MODELS.instruction import (
    Add, Cmd, Comment, Copy, Env, ExecArguments, Expose, From, Healthcheck,
    Label, OnBuild, Run, ShellArguments, User, Workdir,
)
from dockerlint.PARSERS.dockerfile_parser import (
    DockerfileParseError, DockerfileParser, heredoc_markers, parse_image_reference,
    split_words,
)


def parse(content):
    return DockerfileParser().parse_from_string(content)


def test_parse_from_string():
    content = (
        "FROM python:3.9-slim AS build\n"
        "WORKDIR /app\n"
        "COPY . .\n"
        "RUN pip install -r requirements.txt \\\n"
        "    && echo \"done\"\n"
        "ENV PORT=8080\n"
        "CMD [\"python\", \"app.py\"]\n"
    )
    instructions = parse(content)

    kinds = [i.instruction.kind for i in instructions]
    assert kinds == ["FROM", "WORKDIR", "COPY", "RUN", "ENV", "CMD"]
    assert [i.line_number for i in instructions] == [1, 2, 3, 4, 6, 7]

    image = instructions[0].instruction.image
    assert image.name == "python"
    assert image.tag == "3.9-slim"
    assert image.alias == "build"

    copy = instructions[2].instruction
    assert copy.sources == ["."]
    assert copy.dest == "."

    run = instructions[3].instruction
    assert isinstance(run.arguments, ShellArguments)
    assert "&& echo \"done\"" in run.arguments.text

    assert instructions[4].instruction.pairs == [("PORT", "8080")]

    cmd = instructions[5].instruction
    assert isinstance(cmd.arguments, ExecArguments)
    assert cmd.arguments.items == ["python", "app.py"]


def test_continuation_is_reported_on_first_line():
    instructions = parse("RUN echo a \\\n  && echo b")
    assert len(instructions) == 1
    assert instructions[0].line_number == 1
    assert isinstance(instructions[0].instruction, Run)


def test_comments_inside_continuation_are_skipped():
    content = "RUN apt-get update && \\\n# install things\n\n    apt-get install -y curl\nUSER app\n"
    instructions = parse(content)
    assert [i.instruction.kind for i in instructions] == ["RUN", "USER"]
    assert "apt-get install -y curl" in instructions[0].instruction.arguments.text
    assert instructions[1].line_number == 5


def test_comments_become_instructions():
    instructions = parse("# hadolint ignore=DL3008\nFROM alpine:3.19\n")
    comment = instructions[0].instruction
    assert isinstance(comment, Comment)
    assert comment.text == "hadolint ignore=DL3008"


def test_keywords_are_case_insensitive():
    instructions = parse("from alpine:3.19\nrun echo hi\n")
    assert isinstance(instructions[0].instruction, From)
    assert isinstance(instructions[1].instruction, Run)


def test_crlf_line_endings():
    instructions = parse("FROM alpine:3.19\r\nRUN echo hi\r\n")
    assert instructions[1].line_number == 2
    assert instructions[1].instruction.arguments.text == "echo hi"


def test_escape_directive():
    content = "# escape=`\nFROM mcr.microsoft.com/windows/servercore:ltsc2022\nRUN echo a `\n  && echo b\n"
    instructions = parse(content)
    assert [i.instruction.kind for i in instructions] == ["COMMENT", "FROM", "RUN"]
    assert instructions[2].line_number == 3
    image = instructions[1].instruction.image
    assert image.registry == "mcr.microsoft.com"
    assert image.name == "windows/servercore"
    assert image.tag == "ltsc2022"


def test_invalid_escape_directive():
    with pytest.raises(DockerfileParseError):
        parse("# escape=x\nFROM alpine\n")


def test_continuation_at_end_of_file_is_an_error():
    with pytest.raises(DockerfileParseError) as exc:
        parse("FROM alpine\nRUN echo \\\n")
    assert exc.value.line == 2


def test_unknown_instruction():
    with pytest.raises(DockerfileParseError) as exc:
        parse("FROM alpine\nFOO bar\n")
    assert exc.value.line == 2
    assert exc.value.text == "FOO bar"
    assert str(exc.value) == "line 2: unknown instruction: FOO"


def test_missing_arguments():
    with pytest.raises(DockerfileParseError) as exc:
        parse("FROM alpine\nRUN\n")
    assert exc.value.line == 2


def test_malformed_from():
    with pytest.raises(DockerfileParseError):
        parse("FROM alpine AS\n")
    with pytest.raises(DockerfileParseError):
        parse("FROM alpine to build\n")


def test_from_with_platform_and_digest():
    instructions = parse("FROM --platform=$BUILDPLATFORM ghcr.io/org/app@sha256:abc AS base\n")
    image = instructions[0].instruction.image
    assert image.platform == "$BUILDPLATFORM"
    assert image.registry == "ghcr.io"
    assert image.name == "org/app"
    assert image.digest == "sha256:abc"
    assert image.tag is None
    assert image.alias == "base"
    assert image.has_version


def test_parse_image_reference():
    assert parse_image_reference("ubuntu") == (None, "ubuntu", None, None)
    assert parse_image_reference("localhost:5000/app:1.0") == ("localhost:5000", "app", "1.0", None)
    assert parse_image_reference("library/ubuntu:22.04") == (None, "library/ubuntu", "22.04", None)


def test_exec_form_and_invalid_json():
    instructions = parse("CMD [\"python\", \"app.py\"]\nCMD [\"python\", app.py]\n")
    assert isinstance(instructions[0].instruction.arguments, ExecArguments)
    assert isinstance(instructions[1].instruction.arguments, ShellArguments)
    assert instructions[1].instruction.arguments.text == "[\"python\", app.py]"


def test_env_forms():
    instructions = parse("ENV A=1 B=\"two words\"\nENV NAME some value\n")
    assert instructions[0].instruction.pairs == [("A", "1"), ("B", "two words")]
    assert instructions[1].instruction.pairs == [("NAME", "some value")]


def test_env_unterminated_quote():
    with pytest.raises(DockerfileParseError):
        parse("ENV A=\"oops\n")


def test_label_pairs():
    instructions = parse("LABEL org.opencontainers.image.title=\"My app\" version=1.0\n")
    label = instructions[0].instruction
    assert isinstance(label, Label)
    assert label.pairs == [("org.opencontainers.image.title", "My app"), ("version", "1.0")]


def test_expose_ports():
    ports = parse("EXPOSE 80/udp 8000-8080 $PORT\n")[0].instruction.ports
    assert isinstance(parse("EXPOSE 80\n")[0].instruction, Expose)
    assert ports[0].number == 80
    assert ports[0].protocol == "udp"
    assert ports[1].number == 8000
    assert ports[1].range_end == 8080
    assert ports[2].number is None


def test_healthcheck():
    instructions = parse(
        "HEALTHCHECK NONE\n"
        "HEALTHCHECK --interval=30s --retries=3 CMD curl -f http://localhost/\n"
    )
    assert isinstance(instructions[0].instruction, Healthcheck)
    assert instructions[0].instruction.check is None
    check = instructions[1].instruction.check
    assert check.interval == "30s"
    assert check.retries == 3
    assert check.arguments.as_text() == "curl -f http://localhost/"


def test_onbuild_wraps_instruction():
    onbuild = parse("ONBUILD RUN echo hi\n")[0].instruction
    assert isinstance(onbuild, OnBuild)
    assert isinstance(onbuild.instruction, Run)


def test_run_mount_flags():
    run = parse("RUN --mount=type=cache,target=/var/cache/apk apk add curl\n")[0].instruction
    assert run.flags.mounts[0].type == "cache"
    assert run.flags.mounts[0].options == {"target": "/var/cache/apk"}
    assert run.arguments.text == "apk add curl"


def test_copy_and_add_flags():
    instructions = parse(
        "COPY --from=build --chown=app:app /out/app /usr/local/bin/\n"
        "ADD --checksum=sha256:abc https://example.com/tool.tar.gz /opt/\n"
    )
    copy = instructions[0].instruction
    assert isinstance(copy, Copy)
    assert copy.flags.from_stage == "build"
    assert copy.flags.chown == "app:app"
    add = instructions[1].instruction
    assert isinstance(add, Add)
    assert add.flags.checksum == "sha256:abc"
    assert add.has_url()
    assert add.has_archive()


def test_run_heredoc_is_the_script():
    content = "FROM alpine:3.19\nRUN <<EOF\napk add curl\necho done\nEOF\nUSER app\n"
    instructions = parse(content)
    run = instructions[1].instruction
    assert run.arguments.text == "apk add curl\necho done"
    assert run.heredocs[0].delimiter == "EOF"
    assert isinstance(instructions[2].instruction, User)
    assert instructions[2].line_number == 6


def test_copy_heredoc():
    instructions = parse("COPY <<EOF /etc/app.conf\nkey=value\nEOF\nWORKDIR /app\n")
    copy = instructions[0].instruction
    assert copy.dest == "/etc/app.conf"
    assert copy.heredocs[0].body == "key=value"
    assert isinstance(instructions[1].instruction, Workdir)


def test_unterminated_heredoc():
    with pytest.raises(DockerfileParseError):
        parse("RUN <<EOF\necho hi\n")


def test_heredoc_tab_stripping():
    instructions = parse("FROM alpine:3.19\nRUN <<-EOF\n\techo hi\n\t\techo nested\n\tEOF\nUSER app\n")
    run = instructions[1].instruction
    assert run.heredocs[0].strip_tabs
    assert run.arguments.text == "echo hi\necho nested"
    assert isinstance(instructions[2].instruction, User)


def test_heredoc_quoted_delimiter():
    instructions = parse("FROM python:3.12\nRUN python3 <<'EOF' > /tmp/out\nprint('hi')\nEOF\n")
    run = instructions[1].instruction
    assert run.heredocs[0].delimiter == "EOF"
    assert run.heredocs[0].body == "print('hi')"
    assert run.arguments.text.split() == ["python3", ">", "/tmp/out"]

    copy = parse('COPY <<"END" /etc/motd\nwelcome\nEND\n')[0].instruction
    assert copy.heredocs[0].delimiter == "END"
    assert copy.heredocs[0].body == "welcome"


def test_heredoc_markers_inside_quotes_are_text():
    content = 'FROM alpine:3.19\nRUN echo "usage: cat <<EOF"\nUSER app\n'
    instructions = parse(content)
    run = instructions[1].instruction
    assert run.heredocs == []
    assert run.arguments.text == 'echo "usage: cat <<EOF"'
    assert isinstance(instructions[2].instruction, User)

    awk = parse("RUN awk 'BEGIN { print 1<<SHIFT }'\n")[0].instruction
    assert awk.heredocs == []
    arithmetic = parse("RUN echo $((1<<SHIFT))\n")[0].instruction
    assert arithmetic.heredocs == []


def test_heredoc_markers():
    assert [m.group(3) for _, _, m in heredoc_markers("cat <<EOF > out")] == ["EOF"]
    assert [m.group(3) for _, _, m in heredoc_markers("<<-A <<'B' <<\"C\"")] == ["A", "B", "C"]
    assert heredoc_markers('echo "<<EOF" \'<<EOF\' \\<<EOF x<<EOF') == []
    assert heredoc_markers('echo "unterminated <<EOF') == []


def test_split_words():
    assert split_words("a 'b c' \"d e\" f\\ g") == ["a", "b c", "d e", "f g"]


def test_parse_file(tmp_path):
    dockerfile = tmp_path / "Dockerfile"
    dockerfile.write_text("FROM alpine:3.19\nCMD [\"sh\"]\n")
    instructions = DockerfileParser().parse(str(dockerfile))
    assert isinstance(instructions[1].instruction, Cmd)
