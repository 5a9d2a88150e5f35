# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from logging import Logger
from typing import final, overload

from typing_extensions import override

from sloth.utils.env import Environment


@final
class FooEnvironment(Environment):
    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data = {} if data is None else data

    @override
    def get(self, name: str) -> str:
        return self._data[name]

    @overload
    def maybe_get(self, name: str) -> str | None: ...

    @overload
    def maybe_get(self, name: str, default: str) -> str: ...

    @override
    def maybe_get(self, name: str, default: str | None = None) -> str | None:
        return self._data.get(name, default)

    @override
    def has(self, name: str) -> bool:
        return name in self._data


class CallCounter:
    def __init__(self) -> None:
        self.count = 0


class DropFlag:
    def __init__(self) -> None:
        self.count = 0


class Droppable:
    """Marks ``flag`` when garbage collected."""

    def __init__(self, flag: DropFlag) -> None:
        self.flag = flag

    def __del__(self) -> None:
        self.flag.count += 1


@contextmanager
def preserve_logger_state(logger: Logger) -> Iterator[None]:
    """Restores the handlers, level and propagation flag of ``logger`` on exit."""
    handlers = logger.handlers[:]

    level = logger.level

    propagate = logger.propagate

    try:
        yield
    finally:
        for handler in logger.handlers[:]:
            if handler not in handlers:
                logger.removeHandler(handler)

                handler.close()

        # `configure_logging()` removes existing handlers.
        for handler in handlers:
            if handler not in logger.handlers:
                logger.addHandler(handler)

        logger.setLevel(level)

        logger.propagate = propagate
