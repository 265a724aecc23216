import pytest
from dockerlint.LINTER import lint
from dockerlint.MODELS.lint_config import LabelType, LintConfig
from dockerlint.RULES.label_rules import is_email, is_rfc3339, is_spdx, is_url


def codes(content, config=None):
    return lint(content, config).codes()


@pytest.mark.parametrize("value,expected", [
    ("2024-01-15T10:30:00Z", True),
    ("2024-01-15T10:30:00.123+02:00", True),
    ("2024-02-30T10:00:00Z", False),
    ("2024-01-15", False),
    ("", False),
])
def test_is_rfc3339(value, expected):
    assert is_rfc3339(value) is expected


@pytest.mark.parametrize("value,expected", [
    ("MIT", True),
    ("Apache-2.0 OR MIT", True),
    ("(MIT OR BSD-3-Clause) AND Apache-2.0", True),
    ("LicenseRef-Custom", True),
    ("NotALicense", False),
    ("", False),
])
def test_is_spdx(value, expected):
    assert is_spdx(value) is expected


def test_url_and_email():
    assert is_url("https://github.com/org/repo")
    assert not is_url("github.com/org/repo")
    assert not is_url("https://")
    assert is_email("dev@example.com")
    assert not is_email("nobody")


def test_oci_label_formats():
    content = (
        "FROM alpine:3.19\n"
        "LABEL org.opencontainers.image.created=\"yesterday\" \\\n"
        "      org.opencontainers.image.licenses=\"Proprietary-Thing\" \\\n"
        "      org.opencontainers.image.documentation=\"docs\" \\\n"
        "      org.opencontainers.image.source=\"ftp://example.com\"\n"
    )
    result = codes(content)
    for code in ("DL3051", "DL3052", "DL3055", "DL3056"):
        assert code in result


def test_valid_oci_labels():
    content = (
        "FROM alpine:3.19\n"
        "LABEL org.opencontainers.image.created=\"2024-01-15T10:30:00Z\" \\\n"
        "      org.opencontainers.image.licenses=\"MIT\" \\\n"
        "      org.opencontainers.image.documentation=\"https://example.com/docs\" \\\n"
        "      org.opencontainers.image.source=\"https://github.com/org/repo\"\n"
    )
    result = codes(content)
    for code in ("DL3050", "DL3051", "DL3052", "DL3055", "DL3056"):
        assert code not in result


def test_dl3049_missing_schema_label():
    config = LintConfig(label_schema={"maintainer": LabelType.TEXT})
    result = lint("FROM alpine:3.19\nRUN echo hi\n", config)
    missing = [f for f in result.failures if f.code == "DL3049"]
    assert len(missing) == 1
    assert missing[0].line == 1
    assert missing[0].message == "Label `maintainer` is missing."
    assert "DL3049" not in codes("FROM alpine:3.19\nLABEL maintainer=someone\n", config)


def test_dl3049_only_checks_last_stage():
    config = LintConfig(label_schema={"maintainer": LabelType.TEXT})
    content = "FROM alpine:3.19 AS build\nLABEL maintainer=someone\nFROM alpine:3.19\nRUN echo hi\n"
    failures = [f for f in lint(content, config).failures if f.code == "DL3049"]
    assert [f.line for f in failures] == [3]


def test_dl3049_labels_are_inherited_from_parent_stage():
    config = LintConfig(label_schema={"maintainer": LabelType.TEXT})
    content = "FROM alpine:3.19 AS base\nLABEL maintainer=someone\nFROM base\nRUN echo hi\n"
    assert "DL3049" not in codes(content, config)


def test_dl3050_superfluous_labels():
    assert "DL3050" in codes("FROM alpine:3.19\nLABEL version=1.0\n")
    assert "DL3050" not in codes("FROM alpine:3.19\nLABEL org.opencontainers.image.version=1.0\n")


def test_dl3050_strict_labels():
    config = LintConfig(label_schema={"maintainer": LabelType.TEXT}, strict_labels=True)
    assert "DL3050" in codes("FROM alpine:3.19\nLABEL maintainer=a foo=bar\n", config)
    assert "DL3050" not in codes("FROM alpine:3.19\nLABEL maintainer=a\n", config)


def test_schema_value_formats():
    config = LintConfig(label_schema={
        "build-date": LabelType.RFC3339,
        "license": LabelType.SPDX,
        "maintainer": LabelType.EMAIL,
    })
    content = "FROM alpine:3.19\nLABEL build-date=never license=foo maintainer=nobody\n"
    failures = {f.code: f for f in lint(content, config).failures}
    assert "DL3053" in failures
    assert "DL3054" in failures
    assert failures["DL3058"].message == \
        "Label `maintainer` is not a valid email format - must conform to RFC5322."
    assert "DL3050" not in failures

    valid = (
        "FROM alpine:3.19\n"
        "LABEL build-date=2024-01-15T10:30:00Z license=MIT maintainer=dev@example.com\n"
    )
    result = codes(valid, config)
    for code in ("DL3053", "DL3054", "DL3058"):
        assert code not in result
