"""Production environment detection.

A deployment framework can register a hook returning whether the process runs
in production. Without a hook the ``ROBUST_CLIENT_SOCKET_ENV`` (or
``APP_ENV``) environment variable is consulted, defaulting to development.
"""

from __future__ import annotations

import os
from typing import Callable

PRODUCTION = "production"
DEFAULT_ENV = "development"
ENV_VARS = ("ROBUST_CLIENT_SOCKET_ENV", "APP_ENV")

_environment_hook: Callable[[], bool] | None = None


def register_environment_hook(hook: Callable[[], bool]) -> None:
    """Use ``hook`` as the production signal instead of the environment."""
    global _environment_hook
    _environment_hook = hook


def clear_environment_hook() -> None:
    global _environment_hook
    _environment_hook = None


def current_env() -> str:
    """Return the deployment environment name from the environment."""
    for name in ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value.strip().lower()
    return DEFAULT_ENV


def is_production() -> bool:
    """Check whether the process runs in a production environment."""
    if _environment_hook is not None:
        return bool(_environment_hook())
    return current_env() == PRODUCTION
