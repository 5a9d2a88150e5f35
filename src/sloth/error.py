# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations


class InternalError(Exception):
    pass


class InvalidOperationError(Exception):
    pass


class BorrowError(InvalidOperationError):
    pass


class NotSupportedError(Exception):
    pass


class FormatError(Exception):
    pass
