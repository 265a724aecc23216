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
Checkstyle XML output, rendered from a jinja2 template.
"""
from typing import Sequence
from jinja2 import Template, TemplateError
from ..MODELS.check_failure import Severity
from ..MODELS.lint_result import LintResult

# Values are escaped before rendering, the template itself does no escaping.
CHECKSTYLE_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<checkstyle version="4.3">
{% for file in files %}  <file name="{{ file.name }}">
{% for error in file.errors %}    <error line="{{ error.line }}"{% if error.column is not none %} column="{{ error.column }}"{% endif %} severity="{{ error.severity }}" message="{{ error.message }}" source="{{ error.source }}"/>
{% endfor %}  </file>
{% endfor %}</checkstyle>
"""

EMPTY_DOCUMENT = '<?xml version="1.0" encoding="UTF-8"?>\n<checkstyle version="4.3">\n</checkstyle>'

XML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


def escape_xml(text: str) -> str:
    # & must be replaced first so entities are not escaped twice.
    for char, entity in XML_ESCAPES:
        text = text.replace(char, entity)
    return text


def checkstyle_severity(severity: Severity) -> str:
    if severity in (Severity.ERROR, Severity.WARNING):
        return severity.value
    return "info"


def format_checkstyle(results: Sequence[LintResult]) -> str:
    """
    Renders one ``<file>`` block per result, even when it has no failures.
    """
    files = []
    for result in results:
        files.append({
            "name": escape_xml(result.file),
            "errors": [
                {
                    "line": f.line,
                    "column": f.column,
                    "severity": checkstyle_severity(f.severity),
                    "message": escape_xml(f.message),
                    "source": escape_xml(f.code),
                }
                for f in result.failures
            ],
        })
    try:
        return Template(CHECKSTYLE_TEMPLATE).render(files=files)
    except TemplateError:
        return EMPTY_DOCUMENT
