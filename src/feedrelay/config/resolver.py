"""
Placeholder substitution for configuration values.

``${VAR}`` reads the environment, ``${VAR:-default}`` falls back to
``default`` when VAR is unset or empty, and ``{env}`` becomes the active
environment name. A placeholder whose variable is unset and has no default
is kept verbatim; find_unresolved() reports it, so the settings layer can
refuse endpoint credentials that were never provided.
"""

import os
import re
from collections.abc import Iterator
from typing import Any

PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")
ENV_TOKEN = "{env}"


def resolve_config(config_data: dict[str, Any], env: str = "dev") -> dict[str, Any]:
    """
    Substitute placeholders throughout a configuration mapping.

    Args:
        config_data: Configuration dictionary
        env: Current environment name

    Returns:
        A new dictionary with every string value substituted
    """
    return _resolve(config_data, env)


def _resolve(value: Any, env: str) -> Any:
    if isinstance(value, dict):
        return {k: _resolve(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve(item, env) for item in value]
    if isinstance(value, str):
        return substitute(value, env)
    return value


def substitute(text: str, env: str = "dev") -> str:
    """Substitute ``${VAR}``, ``${VAR:-default}`` and ``{env}`` in one string."""

    def lookup(match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        value = os.environ.get(name)
        if value:
            return value
        if default is not None:
            return default
        # Set but empty is still a value; unset stays visible
        return match.group(0) if value is None else value

    return PLACEHOLDER.sub(lookup, text).replace(ENV_TOKEN, env)


def find_unresolved(value: Any, prefix: str = "") -> Iterator[tuple[str, str]]:
    """
    Yield ``(dotted key, variable name)`` for every placeholder left in ``value``.

    Examples:
        >>> list(find_unresolved({"server": {"password": "${SIS_PASSWORD}"}}, "integration"))
        [('integration.server.password', 'SIS_PASSWORD')]
    """
    if isinstance(value, dict):
        for key, item in value.items():
            yield from find_unresolved(item, f"{prefix}.{key}" if prefix else str(key))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from find_unresolved(item, f"{prefix}[{index}]")
    elif isinstance(value, str):
        for match in PLACEHOLDER.finditer(value):
            yield prefix, match.group(1)
