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
Parser for .hadolint.yaml style configuration files.
"""
import os
import yaml
from typing import Any, Dict, List, Optional
from ..MODELS.check_failure import Severity
from ..MODELS.lint_config import LabelType, LintConfig, SeverityOverrides

CONFIG_FILE_NAMES = (".hadolint.yaml", ".hadolint.yml")

TRUE_VALUES = ("1", "true", "yes", "on")


class ConfigError(ValueError):
    """
    Raised when a configuration file cannot be read or is not valid YAML.
    """


class ConfigParser:
    """
    Loads a LintConfig from YAML and applies HADOLINT_* environment overrides.
    """

    def __init__(self, context: Optional[Dict[str, str]] = None):
        """
        Initializes the parser with an optional environment context.

        :param context: Environment variables consulted for overrides.
        """
        self.context = context if context is not None else dict(os.environ)

    def parse(self, config_path: str) -> LintConfig:
        """
        Parses a configuration file from a path.

        :param config_path: Path to the YAML file.
        :return: Parsed configuration with environment overrides applied.
        :raises ConfigError: If the file cannot be read.
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> LintConfig:
        """
        Parses configuration from a YAML string.

        :param content: YAML content.
        :return: Parsed configuration with environment overrides applied.
        :raises ConfigError: If the YAML is malformed or not a mapping.
        """
        try:
            data = yaml.safe_load(content)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f"Invalid YAML in config: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Config must be a YAML mapping")

        return self.apply_environment(self._from_dict(data))

    def find_and_load(self, search_dir: str = ".") -> LintConfig:
        """
        Loads the first configuration file found, or the defaults.

        Looks for .hadolint.yaml and .hadolint.yml in ``search_dir``, then
        hadolint.yaml in the XDG config directory, then ~/.hadolint.yaml.
        """
        path = self.find_config_file(search_dir)
        if path is None:
            return self.apply_environment(LintConfig())
        return self.parse(path)

    def find_config_file(self, search_dir: str = ".") -> Optional[str]:
        candidates = [os.path.join(search_dir, name) for name in CONFIG_FILE_NAMES]

        home = self.context.get("HOME") or os.path.expanduser("~")
        xdg = self.context.get("XDG_CONFIG_HOME") or os.path.join(home, ".config")
        candidates.append(os.path.join(xdg, "hadolint.yaml"))
        candidates.append(os.path.join(home, ".hadolint.yaml"))

        for candidate in candidates:
            if os.path.isfile(candidate):
                return candidate
        return None

    def apply_environment(self, config: LintConfig) -> LintConfig:
        """
        Applies HADOLINT_* variables from the context on top of a config.
        """
        updates: Dict[str, Any] = {}

        ignore = self.context.get("HADOLINT_IGNORE")
        if ignore:
            updates["ignored"] = config.ignored | set(_split_list(ignore))

        registries = self.context.get("HADOLINT_TRUSTED_REGISTRIES")
        if registries:
            updates["trusted_registries"] = config.trusted_registries | set(_split_list(registries))

        threshold = self.context.get("HADOLINT_FAILURE_THRESHOLD")
        if threshold:
            severity = Severity.parse(threshold)
            if severity is None:
                print(f"Warning: Unknown failure threshold '{threshold}' in HADOLINT_FAILURE_THRESHOLD, ignoring")
            else:
                updates["failure_threshold"] = severity

        for var, field in (
            ("HADOLINT_NOFAIL", "no_fail"),
            ("HADOLINT_DISABLE_IGNORE_PRAGMA", "disable_ignore_pragma"),
            ("HADOLINT_STRICT_LABELS", "strict_labels"),
        ):
            value = self.context.get(var)
            if value is not None and value != "":
                updates[field] = value.strip().lower() in TRUE_VALUES

        if not updates:
            return config
        return config.model_copy(update=updates)

    def _from_dict(self, data: Dict[str, Any]) -> LintConfig:
        override_data = data.get("override") or {}
        if not isinstance(override_data, dict):
            print("Warning: 'override' must be a mapping, ignoring")
            override_data = {}

        override = SeverityOverrides(
            error=set(_as_list(override_data.get("error"))),
            warning=set(_as_list(override_data.get("warning"))),
            info=set(_as_list(override_data.get("info"))),
            style=set(_as_list(override_data.get("style"))),
        )
        for key in override_data:
            if str(key) not in ("error", "warning", "info", "style"):
                print(f"Warning: Unknown override severity '{key}', ignoring")

        label_schema = {}
        schema_data = data.get("label-schema") or {}
        if isinstance(schema_data, dict):
            for label, kind in schema_data.items():
                try:
                    label_schema[str(label)] = LabelType(str(kind).lower())
                except ValueError:
                    print(f"Warning: Unknown label type '{kind}' for label '{label}', ignoring")

        config = LintConfig(
            ignored=set(_as_list(data.get("ignored"))),
            override=override,
            trusted_registries=set(_as_list(data.get("trustedRegistries"))),
            label_schema=label_schema,
            strict_labels=bool(data.get("strict-labels", False)),
            disable_ignore_pragma=bool(data.get("disable-ignore-pragma", False)),
            no_fail=bool(data.get("no-fail", False)),
        )

        threshold = data.get("failure-threshold")
        if threshold is not None:
            severity = Severity.parse(str(threshold))
            if severity is None:
                print(f"Warning: Unknown failure threshold '{threshold}', ignoring")
            else:
                config = config.model_copy(update={"failure_threshold": severity})
        return config


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    return [str(value)]


def _split_list(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]
