# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Final, final, overload

from typing_extensions import override

from sloth.error import FormatError

LOG_LEVEL_VAR: Final = "SLOTH_LOG_LEVEL"

NO_RICH_VAR: Final = "SLOTH_NO_RICH"


class Environment(ABC):
    """Provides read access to configuration variables."""

    @abstractmethod
    def get(self, name: str) -> str: ...

    @overload
    def maybe_get(self, name: str) -> str | None: ...

    @overload
    def maybe_get(self, name: str, default: str) -> str: ...

    @abstractmethod
    def maybe_get(self, name: str, default: str | None = None) -> str | None: ...

    @abstractmethod
    def has(self, name: str) -> bool: ...


class EnvironmentVariableError(Exception):
    def __init__(self, var_name: str, message: str) -> None:
        super().__init__(message)

        self.var_name = var_name


@final
class StandardEnvironment(Environment):
    """Reads variables from the environment of the current process."""

    @override
    def get(self, name: str) -> str:
        return os.environ[name]

    @overload
    def maybe_get(self, name: str) -> str | None: ...

    @overload
    def maybe_get(self, name: str, default: str) -> str: ...

    @override
    def maybe_get(self, name: str, default: str | None = None) -> str | None:
        return os.environ.get(name, default)

    @override
    def has(self, name: str) -> bool:
        return name in os.environ


def maybe_get_log_level(env: Environment) -> int | None:
    """
    Returns the logging level named by ``SLOTH_LOG_LEVEL``, or ``None`` if the
    variable is not set.

    :raises FormatError:
    """
    s = env.maybe_get(LOG_LEVEL_VAR)
    if s is None:
        return None

    s = s.strip().upper()

    # `getLevelName()` maps a registered level name back to its number.
    level = logging.getLevelName(s)
    if not isinstance(level, int):
        try:
            level = int(s)
        except ValueError:
            raise FormatError(
                f"Expected to be a logging level name or an integer, but is '{s}' instead."
            ) from None

        if level < 0:
            raise FormatError(
                f"Expected to be equal or greater than 0, but is {level} instead."
            )

    return level


def maybe_get_no_rich(env: Environment) -> bool | None:
    """
    :raises FormatError:
    """
    return _maybe_get_bool(env, NO_RICH_VAR)


_TRUE_STRINGS: Final = frozenset(["1", "true", "yes", "on"])

_FALSE_STRINGS: Final = frozenset(["0", "false", "no", "off"])


def _maybe_get_bool(env: Environment, var_name: str) -> bool | None:
    s = env.maybe_get(var_name)
    if s is None:
        return None

    value = s.strip().lower()

    if value in _TRUE_STRINGS:
        return True

    if value in _FALSE_STRINGS:
        return False

    raise FormatError(f"Expected to be a boolean, but is '{s}' instead.")
