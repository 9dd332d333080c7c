"""
Environment substitution for loaded configuration.

String values may contain ``${NAME}``, ``${NAME:-fallback}`` and the
``{env}`` placeholder. A ``${NAME}`` with no fallback whose variable is unset
stays in the text unchanged, which makes the mistake visible downstream.
"""

import os
import re
from typing import Any

_ENV_VAR_RE = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def _substitute(match: re.Match[str]) -> str:
    name, fallback = match.group(1), match.group(2)
    value = os.getenv(name)
    if value is not None:
        return value
    return match.group(0) if fallback is None else fallback


def _resolve(node: Any, env: str) -> Any:
    if isinstance(node, str):
        return _ENV_VAR_RE.sub(_substitute, node).replace("{env}", env)
    if isinstance(node, dict):
        return {key: _resolve(value, env) for key, value in node.items()}
    if isinstance(node, list):
        return [_resolve(item, env) for item in node]
    return node


def resolve_config(config_data: dict[str, Any], env: str = "dev") -> dict[str, Any]:
    """Return a copy of ``config_data`` with substitutions applied for ``env``."""
    return _resolve(config_data, env)
