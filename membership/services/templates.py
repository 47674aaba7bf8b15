# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Template expansion, pure computation.
Only `{placeholder}` substitution; no loops, conditionals or escaping.
"""

import re
from datetime import date, datetime
from typing import Any, Mapping

from membership.services.dates import format_date

DATE_FIELDS: frozenset[str] = frozenset({"Scheduled On", "Expires", "Joined", "Renewed On"})

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


def _render(key: str, value: Any) -> str:
    if value is None or value is False or value == "":
        return ""
    if key in DATE_FIELDS and isinstance(value, (date, datetime)):
        return format_date(value if not isinstance(value, datetime) else value.date())
    return str(value)


def expand_template(template: str, row: Mapping[str, Any]) -> str:
    """
    Replace every `{key}` found in `row`. Date columns render as M/D/YYYY,
    empty values as "". Unknown placeholders are left in place.
    """
    if not template:
        return ""

    def substitute(match: re.Match) -> str:
        key = match.group(1)
        if key not in row:
            return match.group(0)
        return _render(key, row[key])

    return _PLACEHOLDER.sub(substitute, template)
