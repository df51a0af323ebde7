"""Execution context resolution.

The context is a plain dict seeded from the execution input and extended with
each successful step's object output, keyed by step id. Step configs reference
it with whole-value templates like ``{{ order.customer.email }}``; there is no
expression language beyond dotted paths.
"""

from typing import Any, Mapping, Optional

_OPEN = "{{"
_CLOSE = "}}"


def resolve_path(context: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path like ``steps_1.items.0.name`` against the context.

    Returns None when any segment is missing or an intermediate value is
    None. Never raises. Numeric segments index into lists.
    """
    if not isinstance(path, str) or not path:
        return None

    current: Any = context
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return None
        else:
            return None
    return current


def template_path(value: Any) -> Optional[str]:
    """Return the path inside a ``{{ path }}`` template, or None for anything else."""
    if isinstance(value, str) and value.startswith(_OPEN) and value.endswith(_CLOSE):
        return value[len(_OPEN):-len(_CLOSE)].strip()
    return None


def resolve_value(value: Any, context: Mapping[str, Any]) -> Any:
    """Resolve a single config value: templates are substituted, dicts recursed."""
    path = template_path(value)
    if path is not None:
        return resolve_path(context, path)
    if isinstance(value, dict):
        return resolve_templates(value, context)
    return value


def resolve_templates(config: Mapping[str, Any], context: Mapping[str, Any]) -> dict:
    """Recursively copy a config dict, substituting ``{{ path }}`` string leaves.

    Nested dicts are recursed; lists and other scalars pass through as-is.
    The input is never mutated.
    """
    return {key: resolve_value(value, context) for key, value in config.items()}
