"""
Utilities for substituting template variables into manifest text.
"""
import re
from typing import Dict, List
from ..errors import InterpolationError

# $${VAR} is an escape and yields a literal ${VAR}
_PATTERN = re.compile(r'\$(\$)?\{([A-Za-z_][A-Za-z0-9_]*)(?::([-+])([^}]*))?\}')


class EnvironmentInterpolator:
    """
    Substitutes ``${VAR}``, ``${VAR:-default}`` and ``${VAR:+value}`` placeholders.

    Bare ``$name`` references are left alone so that controller snippets
    such as ``$http_x_forwarded_for`` pass through untouched.
    """
    @staticmethod
    def interpolate(template: str, context: Dict[str, str]) -> str:
        """
        Interpolates variables in the template string using the provided context.

        :param template: Text containing ${VAR} placeholders.
        :param context: Variable values.
        :return: The interpolated text.
        :raises InterpolationError: Listing every variable that is unset and has no default.
        """
        missing: List[str] = []

        def replace(match):
            escaped, var_name, modifier, alt_value = match.groups()
            if escaped:
                return match.group(0)[1:]

            value = context.get(var_name)
            if modifier == '-':
                return value if value else alt_value
            if modifier == '+':
                return alt_value if value else ''
            if value is None:
                missing.append(var_name)
                return ''
            return value

        result = _PATTERN.sub(replace, template)
        if missing:
            raise InterpolationError(missing)
        return result

    @staticmethod
    def variables(template: str) -> List[str]:
        """
        Lists the variable names referenced by a template, in order of first use.
        """
        names: List[str] = []
        for escaped, var_name, _, _ in _PATTERN.findall(template):
            if not escaped and var_name not in names:
                names.append(var_name)
        return names
