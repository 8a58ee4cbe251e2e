"""Runtime helpers for working with environment-backed configuration."""

from __future__ import annotations

import os

from .errors import ConfigurationError

ENV_PREFIX = "OOM_NOTIFIER_"

_TRUE_VALUES = {"1", "true", "t", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "f", "no", "n", "off"}


def _env_name(name: str) -> str:
    if name.startswith(ENV_PREFIX):
        return name
    return f"{ENV_PREFIX}{name}"


def env_str(
    name: str,
    or_value: str | None = None,
    *,
    required: bool = False,
    strip: bool = True,
) -> str | None:
    """Fetch an ``OOM_NOTIFIER_`` environment variable as a string."""

    full_name = _env_name(name)
    value = os.getenv(full_name)
    if value is not None and strip:
        value = value.strip()

    if value is None or value == "":
        if required:
            raise ConfigurationError(f"Required environment variable {full_name!r} is not set")
        return or_value
    return value


def env_float(name: str, or_value: float | None = None, *, required: bool = False) -> float | None:
    """Fetch an environment variable and coerce it to ``float``."""

    raw = env_str(name, required=required and or_value is None)
    if raw is None:
        return or_value
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable {_env_name(name)!r} must be a float (got {raw!r})") from exc


def env_bool(name: str, or_value: bool | None = None, *, required: bool = False) -> bool | None:
    """Fetch an environment variable and coerce it to ``bool``."""

    raw = env_str(name, required=required and or_value is None)
    if raw is None:
        return or_value

    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"Environment variable {_env_name(name)!r} must be a boolean (allowed: {sorted(_TRUE_VALUES | _FALSE_VALUES)}, got {raw!r})"
    )


def split_list(raw: str, separator: str = ",") -> tuple[str, ...]:
    """Split a delimited string, dropping blanks and duplicates while keeping order."""

    seen: set[str] = set()
    items: list[str] = []
    for part in raw.split(separator):
        item = part.strip()
        if not item or item in seen:
            continue
        seen.add(item)
        items.append(item)
    return tuple(items)


__all__ = [
    "ENV_PREFIX",
    "env_bool",
    "env_float",
    "env_str",
    "split_list",
]
