# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

import pytest

from sloth.error import BorrowError, InvalidOperationError
from sloth.lazy import Lazy, Ref, RefMut


class TestRef:
    def test_shared_borrows_coexist(self) -> None:
        lazy = Lazy(lambda: "foo")

        ref1 = lazy.value_ref()
        ref2 = lazy.value_ref()

        assert isinstance(ref1, Ref)

        assert ref1.value == "foo"
        assert ref2.value == "foo"

        assert lazy.as_ref() == "foo"
        assert lazy.value() == "foo"

        ref1.release()
        ref2.release()

    def test_value_mut_raises_error_when_shared_borrow_is_live(self) -> None:
        lazy = Lazy(lambda: 1)

        with lazy.value_ref():
            with pytest.raises(
                BorrowError, match=r"^The lazy value is already borrowed by 1 shared reference\(s\)\.$"  # fmt: skip
            ):
                lazy.value_mut()

            with pytest.raises(BorrowError):
                lazy.as_mut()

            with pytest.raises(BorrowError):
                lazy.unwrap()

            with pytest.raises(BorrowError):
                lazy += 1

        with lazy.value_mut() as ref:
            ref.value = 2

        assert lazy.unwrap() == 2

    def test_value_raises_error_when_released(self) -> None:
        lazy = Lazy(lambda: 1)

        ref = lazy.value_ref()

        ref.release()

        assert ref.released

        with pytest.raises(
            InvalidOperationError, match=r"^The shared borrow has already been released\.$"  # fmt: skip
        ):
            ref.value

    def test_release_is_idempotent(self) -> None:
        lazy = Lazy(lambda: 1)

        ref = lazy.value_ref()

        ref.release()
        ref.release()

        with lazy.value_mut():
            pass

    def test_garbage_collected_borrow_is_released(self) -> None:
        lazy = Lazy(lambda: 1)

        ref = lazy.value_ref()

        del ref

        with lazy.value_mut() as ref_mut:
            ref_mut.value = 3

        assert lazy.value() == 3

    def test_borrow_is_released_on_error(self) -> None:
        lazy = Lazy(lambda: 1)

        with pytest.raises(ValueError):
            with lazy.value_ref():
                raise ValueError()

        assert lazy.unwrap() == 1

    def test_repr_works(self) -> None:
        lazy = Lazy(lambda: 1)

        ref = lazy.value_ref()

        assert repr(ref) == "Ref(1)"

        ref.release()

        assert repr(ref) == "Ref(<released>)"


class TestRefMut:
    def test_shared_access_raises_error_when_exclusive_borrow_is_live(self) -> None:
        lazy = Lazy(lambda: 1)

        with lazy.value_mut() as ref:
            assert isinstance(ref, RefMut)

            with pytest.raises(
                BorrowError, match=r"^The lazy value is already mutably borrowed\.$"
            ):
                lazy.value_ref()

            with pytest.raises(BorrowError):
                lazy.value_mut()

            with pytest.raises(BorrowError):
                lazy.value()

            with pytest.raises(BorrowError):
                lazy.as_ref()

            with pytest.raises(BorrowError):
                lazy.as_mut()

            with pytest.raises(BorrowError):
                lazy.unwrap()

            with pytest.raises(BorrowError):
                lazy == 1

        assert lazy == 1

    def test_modification_sticks(self) -> None:
        lazy = Lazy(lambda: "initial")

        ref = lazy.value_mut()

        ref.value = "new"

        ref.release()

        assert lazy.value() == "new"
        assert lazy.as_ref() == "new"

        with lazy.value_ref() as value:
            assert value == "new"

        with lazy.value_mut() as ref:
            assert ref.value == "new"

    def test_value_raises_error_when_released(self) -> None:
        lazy = Lazy(lambda: 1)

        with lazy.value_mut() as ref:
            pass

        assert ref.released

        with pytest.raises(
            InvalidOperationError, match=r"^The exclusive borrow has already been released\.$"  # fmt: skip
        ):
            ref.value = 2

        assert lazy.value() == 1

    def test_garbage_collected_borrow_is_released(self) -> None:
        lazy = Lazy(lambda: 1)

        ref = lazy.value_mut()

        del ref

        assert lazy.value() == 1

    def test_borrow_is_released_on_error(self) -> None:
        lazy = Lazy(lambda: 1)

        with pytest.raises(ValueError):
            with lazy.value_mut() as ref:
                ref.value = 5

                raise ValueError()

        assert lazy.value() == 5

    def test_repr_works(self) -> None:
        lazy = Lazy(lambda: "foo")

        with lazy.value_mut() as ref:
            assert repr(ref) == "RefMut('foo')"

        assert repr(ref) == "RefMut(<released>)"
