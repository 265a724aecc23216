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
Rule registry.

The order of ``all_rules`` is the registration order: for failures on the
same line, rules registered earlier are reported first.
"""
from typing import List, Optional
from ..MODELS.lint_config import LintConfig
from . import instruction_rules, label_rules, package_rules, shell_rules, stage_rules
from .engine import CustomRule, Rule, RuleData, RuleState, SimpleRule, run_rules


def all_rules(config: Optional[LintConfig] = None) -> List[Rule]:
    """
    Builds the rule list for a configuration.

    :param config: Configuration; rules it ignores are left out.
    :return: Rules in registration order.
    """
    config = config or LintConfig()
    rules: List[Rule] = [
        instruction_rules.DL3000,
        shell_rules.DL3001,
        shell_rules.DL3003,
        shell_rules.DL3004,
        shell_rules.DL3005,
        instruction_rules.DL3007,
        instruction_rules.DL3010,
        instruction_rules.DL3011,
        shell_rules.DL3017,
        instruction_rules.DL3020,
        instruction_rules.DL3021,
        instruction_rules.DL3025,
        stage_rules.trusted_registries(config),
        shell_rules.DL3027,
        instruction_rules.DL3029,
        shell_rules.DL3031,
        shell_rules.DL3035,
        shell_rules.DL3039,
        instruction_rules.DL3043,
        instruction_rules.DL3044,
        shell_rules.DL3046,
        instruction_rules.DL3048,
        label_rules.missing_schema_labels(config),
        label_rules.superfluous_labels(config),
        label_rules.DL3051,
        label_rules.DL3052,
        label_rules.invalid_rfc3339_labels(config),
        label_rules.invalid_spdx_labels(config),
        label_rules.DL3055,
        label_rules.DL3056,
        label_rules.invalid_email_labels(config),
        instruction_rules.DL3061,
        instruction_rules.DL4000,
        shell_rules.DL4005,
        stage_rules.DL3002,
        stage_rules.DL3006,
        stage_rules.DL3012,
        stage_rules.DL3022,
        stage_rules.DL3023,
        stage_rules.DL3024,
        stage_rules.DL3045,
        stage_rules.DL3047,
        stage_rules.DL3057,
        stage_rules.DL3059,
        stage_rules.DL3062,
        stage_rules.DL4001,
        stage_rules.DL4003,
        stage_rules.DL4004,
        stage_rules.DL4006,
        package_rules.DL3008,
        package_rules.DL3009,
        package_rules.DL3013,
        package_rules.DL3014,
        package_rules.DL3015,
        package_rules.DL3016,
        package_rules.DL3018,
        package_rules.DL3019,
        package_rules.DL3028,
        package_rules.DL3030,
        package_rules.DL3032,
        package_rules.DL3033,
        package_rules.DL3034,
        package_rules.DL3036,
        package_rules.DL3037,
        package_rules.DL3038,
        package_rules.DL3040,
        package_rules.DL3041,
        package_rules.DL3042,
        package_rules.DL3060,
    ]
    return [rule for rule in rules if not config.is_rule_ignored(rule.code)]


__all__ = [
    "CustomRule", "Rule", "RuleData", "RuleState", "SimpleRule", "all_rules", "run_rules",
]
