# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

import logging
from logging import WARNING, Formatter, Handler, Logger, StreamHandler, getLogger
from typing import Any, Final, final

from sloth.error import FormatError
from sloth.utils.env import (
    LOG_LEVEL_VAR,
    NO_RICH_VAR,
    Environment,
    EnvironmentVariableError,
    StandardEnvironment,
    maybe_get_log_level,
    maybe_get_no_rich,
)


@final
class LogWriter:
    """Writes log messages using ``format()`` strings."""

    _NO_HIGHLIGHT: Final = {"highlighter": None}

    def __init__(self, logger: Logger) -> None:
        self._logger = logger

    def debug(
        self, message: str, *args: Any, exc: BaseException | None = None, **kwargs: Any
    ) -> None:
        self._log(logging.DEBUG, message, args, kwargs, exc or False)

    def info(
        self, message: str, *args: Any, exc: BaseException | None = None, **kwargs: Any
    ) -> None:
        self._log(logging.INFO, message, args, kwargs, exc or False)

    def _log(
        self,
        level: int,
        message: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        exc_info: bool | BaseException = False,
    ) -> None:
        if args or kwargs:
            if not self._logger.isEnabledFor(level):
                return

            message = message.format(*args, **kwargs)

        self._logger.log(level, message, exc_info=exc_info, extra=self._NO_HIGHLIGHT)

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def is_enabled_for_debug(self) -> bool:
        return self._logger.isEnabledFor(logging.DEBUG)

    @property
    def logger(self) -> Logger:
        return self._logger


def get_log_writer(name: str | None = None) -> LogWriter:
    """Returns the :class:`LogWriter` for the specified name."""
    return LogWriter(getLogger(name))


log = get_log_writer("sloth")


def configure_logging(
    no_rich: bool | None = None,
    level: int | None = None,
    env: Environment | None = None,
) -> None:
    """
    Installs a console handler on the ``sloth`` logger.

    If ``no_rich`` or ``level`` is ``None``, ``SLOTH_NO_RICH`` and
    ``SLOTH_LOG_LEVEL`` environment variables are checked instead. The level
    defaults to ``WARNING``.

    :raises EnvironmentVariableError:
    """
    if env is None:
        env = StandardEnvironment()

    if no_rich is None:
        try:
            no_rich = maybe_get_no_rich(env)
        except FormatError as ex:
            raise EnvironmentVariableError(
                NO_RICH_VAR, f"`{NO_RICH_VAR}` environment variable cannot be parsed. See the nested exception for details."  # fmt: skip
            ) from ex

    if level is None:
        try:
            level = maybe_get_log_level(env)
        except FormatError as ex:
            raise EnvironmentVariableError(
                LOG_LEVEL_VAR, f"`{LOG_LEVEL_VAR}` environment variable cannot be parsed. See the nested exception for details."  # fmt: skip
            ) from ex

    logger = log.logger

    for old_handler in logger.handlers[:]:
        logger.removeHandler(old_handler)

        old_handler.close()

    datefmt = "%Y-%m-%d %H:%M:%S"

    handler: Handler

    if no_rich:
        handler = StreamHandler()

        console_formatter = Formatter(
            "%(asctime)s %(levelname)s: %(name)s - %(message)s", datefmt
        )
    else:
        from rich.console import Console
        from rich.logging import RichHandler

        console = Console(stderr=True, highlight=False)

        handler = RichHandler(console=console, show_path=False, keywords=[])

        console_formatter = Formatter("%(name)s - %(message)s", datefmt)

    handler.setFormatter(console_formatter)

    logger.addHandler(handler)

    logger.setLevel(WARNING if level is None else level)

    logger.propagate = False
