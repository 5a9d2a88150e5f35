# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

from sloth.error import BorrowError as BorrowError
from sloth.error import InternalError as InternalError
from sloth.error import InvalidOperationError as InvalidOperationError
from sloth.error import NotSupportedError as NotSupportedError
from sloth.lazy import Lazy as Lazy
from sloth.lazy import Ref as Ref
from sloth.lazy import RefMut as RefMut

__version__ = "0.1.0.dev0"
