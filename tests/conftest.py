# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

from collections.abc import Iterator

import pytest

from sloth.logging import log
from tests.unit.helper import preserve_logger_state


@pytest.fixture(autouse=True)
def restore_sloth_logger() -> Iterator[None]:
    with preserve_logger_state(log.logger):
        yield
