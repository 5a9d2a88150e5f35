# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

import operator
from collections.abc import Callable, Iterator
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, Final, Generic, TypeVar, final

from sloth.error import (
    BorrowError,
    InternalError,
    InvalidOperationError,
    NotSupportedError,
)
from sloth.logging import log

T = TypeVar("T")

T_co = TypeVar("T_co", covariant=True)


class _LazyState(Enum):
    PENDING = 0
    EVALUATING = 1
    EVALUATED = 2
    FAILED = 3
    CONSUMED = 4


# Borrow state sentinel for a live exclusive borrow; a positive value is the
# number of live shared borrows.
_EXCLUSIVE: Final = -1


@final
class Lazy(Generic[T]):
    """
    Represents a value of type ``T`` lazily evaluated by a parameterless
    callable passed to the constructor.

    The evaluator is called at most once, the first time the value is accessed
    through any of :meth:`value_ref`, :meth:`value_mut`, :meth:`value`,
    :meth:`as_ref`, :meth:`as_mut`, :meth:`unwrap` or an operation forwarded
    to the value. If the value is never accessed, the evaluator is never
    called.

    Borrows follow the shared-XOR-exclusive discipline: any number of
    :class:`Ref` guards may be live at the same time, but a :class:`RefMut`
    guard excludes all other borrows. Violations raise :class:`BorrowError`.

    .. code:: python

        lazy_upper = Lazy(lambda: "the quick brown fox".upper())

        with lazy_upper.value_ref() as s:
            assert s == "THE QUICK BROWN FOX"

    Instances are not thread-safe.
    """

    __slots__ = ("_evaluator", "_value", "_state", "_borrow_state")

    _evaluator: Callable[[], T] | None
    _value: T | None
    _state: _LazyState
    _borrow_state: int

    def __init__(self, evaluator: Callable[[], T]) -> None:
        if not callable(evaluator):
            raise TypeError(
                f"`evaluator` must be callable, but is of type `{type(evaluator).__name__}` instead."
            )

        self._evaluator = evaluator
        self._value = None
        self._state = _LazyState.PENDING
        self._borrow_state = 0

    def value_ref(self) -> Ref[T]:
        """
        Immutably borrows the evaluated value.

        :raises BorrowError: if the value is mutably borrowed.
        """
        self._ensure_evaluated()

        self._acquire_shared()

        return Ref(self)

    def value_mut(self) -> RefMut[T]:
        """
        Mutably borrows the evaluated value.

        :raises BorrowError: if the value is already borrowed.
        """
        self._ensure_evaluated()

        self._acquire_exclusive()

        return RefMut(self)

    def value(self) -> T:
        """
        Returns a copy of the evaluated value.

        Only plain copyable values, which are immutable scalars such as
        ``int``, ``str`` and enum members and tuples or frozensets of them,
        can be copied this way. Use :meth:`value_ref` for anything else.

        :raises NotSupportedError: if the value is not plain copyable.
        :raises BorrowError: if the value is mutably borrowed.
        """
        self._ensure_evaluated()

        self._check_not_mutably_borrowed()

        value = self._get_value()

        if not _is_plain_copyable(value):
            raise NotSupportedError(
                f"`value()` is only supported for plain copyable values, but the value is of type `{type(value).__name__}`. Use `value_ref()` instead."
            )

        return value

    def as_ref(self) -> T:
        """
        Returns the evaluated value for read access so that the instance can
        be used in place of ``T``.

        :raises BorrowError: if the value is mutably borrowed.
        """
        self._ensure_evaluated()

        self._check_not_mutably_borrowed()

        return self._get_value()

    def as_mut(self) -> T:
        """
        Returns the evaluated value for in-place modification.

        :raises BorrowError: if the value is already borrowed.
        """
        self._ensure_evaluated()

        self._check_not_borrowed()

        return self._get_value()

    def replace(self, value: T) -> T:
        """
        Stores ``value`` and returns the previously stored one.

        The evaluator still runs first if it has not run yet.

        :raises BorrowError: if the value is already borrowed.
        """
        with self.value_mut() as ref:
            old_value = ref.value

            ref.value = value

        return old_value

    def unwrap(self) -> T:
        """
        Moves the evaluated value out of the instance and returns it.

        The instance holds no reference to the value afterwards and cannot be
        used anymore.

        :raises BorrowError: if the value is borrowed.
        """
        self._ensure_evaluated()

        self._check_not_borrowed()

        value = self._get_value()

        self._value = None

        self._state = _LazyState.CONSUMED

        return value

    @property
    def is_evaluated(self) -> bool:
        return self._state == _LazyState.EVALUATED

    def _ensure_evaluated(self) -> None:
        state = self._state

        if state == _LazyState.EVALUATED:
            return

        if state == _LazyState.PENDING:
            self._evaluate()

            return

        if state == _LazyState.EVALUATING:
            raise InvalidOperationError(
                "The lazy value is accessed by its own evaluator."
            )

        if state == _LazyState.FAILED:
            raise InvalidOperationError(
                "The evaluator of the lazy value has failed in a previous access and cannot be called again."
            )

        if state == _LazyState.CONSUMED:
            raise InvalidOperationError("The lazy value has already been unwrapped.")

        raise InternalError(f"`state` is `{state}`, which is not a valid state.")

    def _evaluate(self) -> None:
        evaluator = self._evaluator
        if evaluator is None:
            raise InternalError("`evaluator` must still be present at this point.")

        self._evaluator = None

        self._state = _LazyState.EVALUATING

        if log.is_enabled_for_debug():
            log.debug("Evaluating lazy value using {}.", _get_name(evaluator))

        try:
            value = evaluator()
        except BaseException:
            self._state = _LazyState.FAILED

            raise

        self._value = value

        self._state = _LazyState.EVALUATED

    def _get_value(self) -> T:
        if self._state != _LazyState.EVALUATED:
            raise InternalError(
                "The value slot must be initialized at this point, but it is empty."
            )

        return self._value  # type: ignore[return-value]

    def _set_value(self, value: T) -> None:
        if self._state != _LazyState.EVALUATED:
            raise InternalError(
                "The value slot must be initialized at this point, but it is empty."
            )

        self._value = value

    def _check_not_mutably_borrowed(self) -> None:
        if self._borrow_state == _EXCLUSIVE:
            raise BorrowError("The lazy value is already mutably borrowed.")

    def _check_not_borrowed(self) -> None:
        self._check_not_mutably_borrowed()

        if self._borrow_state > 0:
            raise BorrowError(
                f"The lazy value is already borrowed by {self._borrow_state} shared reference(s)."
            )

    def _acquire_shared(self) -> None:
        self._check_not_mutably_borrowed()

        self._borrow_state += 1

    def _release_shared(self) -> None:
        if self._borrow_state <= 0:
            raise InternalError(
                f"`borrow_state` must be positive when releasing a shared borrow, but is {self._borrow_state} instead."
            )

        self._borrow_state -= 1

    def _acquire_exclusive(self) -> None:
        self._check_not_borrowed()

        self._borrow_state = _EXCLUSIVE

    def _release_exclusive(self) -> None:
        if self._borrow_state != _EXCLUSIVE:
            raise InternalError(
                f"`borrow_state` must be {_EXCLUSIVE} when releasing an exclusive borrow, but is {self._borrow_state} instead."
            )

        self._borrow_state = 0

    def __getattr__(self, name: str) -> Any:
        # Internal slots and dunder lookups (e.g. by `copy` or `pickle`) must
        # never trigger evaluation.
        if name.startswith("__") or name in Lazy.__slots__:
            raise AttributeError(
                f"`{type(self).__name__}` object has no attribute `{name}`."
            )

        return getattr(self.as_ref(), name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("__") or name in Lazy.__slots__:
            object.__setattr__(self, name, value)
        else:
            setattr(self.as_mut(), name, value)

    def __delattr__(self, name: str) -> None:
        if name.startswith("__") or name in Lazy.__slots__:
            object.__delattr__(self, name)
        else:
            delattr(self.as_mut(), name)

    # A copy would share the single-use evaluator, the value and the borrow
    # state with the original.
    def __copy__(self) -> Lazy[T]:
        raise TypeError("`Lazy` instances cannot be copied.")

    def __deepcopy__(self, memo: dict[int, Any]) -> Lazy[T]:
        raise TypeError("`Lazy` instances cannot be copied.")

    def __reduce_ex__(self, protocol: Any) -> Any:
        raise TypeError("`Lazy` instances cannot be copied.")

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.as_ref()(*args, **kwargs)  # type: ignore[operator]

    def __reversed__(self) -> Iterator[Any]:
        return reversed(self.as_ref())  # type: ignore[call-overload]

    def __repr__(self) -> str:
        state = self._state

        if state == _LazyState.EVALUATED:
            return f"Lazy({self._value!r})"

        return f"Lazy(<{state.name.lower()}>)"

    def __str__(self) -> str:
        return str(self.as_ref())

    def __bytes__(self) -> bytes:
        return bytes(self.as_ref())  # type: ignore[call-overload]

    def __format__(self, format_spec: str) -> str:
        return format(self.as_ref(), format_spec)

    def __bool__(self) -> bool:
        return bool(self.as_ref())

    def __hash__(self) -> int:
        return hash(self.as_ref())

    def __len__(self) -> int:
        return len(self.as_ref())  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.as_ref())  # type: ignore[call-overload]

    def __contains__(self, item: object) -> bool:
        return item in self.as_ref()  # type: ignore[operator]

    def __getitem__(self, key: Any) -> Any:
        return self.as_ref()[key]  # type: ignore[index]

    def __setitem__(self, key: Any, value: Any) -> None:
        self.as_mut()[key] = value  # type: ignore[index]

    def __delitem__(self, key: Any) -> None:
        del self.as_mut()[key]  # type: ignore[attr-defined]

    def __int__(self) -> int:
        return int(self.as_ref())  # type: ignore[call-overload]

    def __float__(self) -> float:
        return float(self.as_ref())  # type: ignore[arg-type]

    def __complex__(self) -> complex:
        return complex(self.as_ref())  # type: ignore[arg-type]

    def __index__(self) -> int:
        return operator.index(self.as_ref())  # type: ignore[arg-type]

    def __neg__(self) -> Any:
        return -self.as_ref()  # type: ignore[operator]

    def __pos__(self) -> Any:
        return +self.as_ref()  # type: ignore[operator]

    def __abs__(self) -> Any:
        return abs(self.as_ref())  # type: ignore[arg-type]

    def __invert__(self) -> Any:
        return ~self.as_ref()  # type: ignore[operator]


def _forward(op: Callable[[Any, Any], Any]) -> Callable[[Lazy[Any], Any], Any]:
    def forward(self: Lazy[Any], other: Any) -> Any:
        return op(self.as_ref(), other)

    return forward


def _forward_reflected(
    op: Callable[[Any, Any], Any],
) -> Callable[[Lazy[Any], Any], Any]:
    def forward(self: Lazy[Any], other: Any) -> Any:
        return op(other, self.as_ref())

    return forward


def _forward_inplace(
    op: Callable[[Any, Any], Any],
) -> Callable[[Lazy[Any], Any], Lazy[Any]]:
    def forward(self: Lazy[Any], other: Any) -> Lazy[Any]:
        with self.value_mut() as ref:
            ref.value = op(ref.value, other)

        return self

    return forward


_COMPARISON_OPS: Final = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}

_ARITHMETIC_OPS: Final = {
    "add": (operator.add, operator.iadd),
    "sub": (operator.sub, operator.isub),
    "mul": (operator.mul, operator.imul),
    "matmul": (operator.matmul, operator.imatmul),
    "truediv": (operator.truediv, operator.itruediv),
    "floordiv": (operator.floordiv, operator.ifloordiv),
    "mod": (operator.mod, operator.imod),
    "pow": (operator.pow, operator.ipow),
    "lshift": (operator.lshift, operator.ilshift),
    "rshift": (operator.rshift, operator.irshift),
    "and": (operator.and_, operator.iand),
    "xor": (operator.xor, operator.ixor),
    "or": (operator.or_, operator.ior),
}


# Set after class creation, otherwise defining `__eq__` would reset `__hash__`.
for _name, _op in _COMPARISON_OPS.items():
    setattr(Lazy, f"__{_name}__", _forward(_op))

for _name, (_op, _iop) in _ARITHMETIC_OPS.items():
    setattr(Lazy, f"__{_name}__", _forward(_op))
    setattr(Lazy, f"__r{_name}__", _forward_reflected(_op))
    setattr(Lazy, f"__i{_name}__", _forward_inplace(_iop))

del _name, _op, _iop


@final
class Ref(Generic[T_co]):
    """
    Represents a shared borrow of a :class:`Lazy` value.

    The borrow ends when :meth:`release` is called, when the ``with`` block
    exits, or when the guard is garbage collected.
    """

    _lazy: Lazy[Any] | None

    def __init__(self, lazy: Lazy[T_co]) -> None:
        self._lazy = lazy

    @property
    def value(self) -> T_co:
        """:raises InvalidOperationError: if the borrow is released."""
        return self._get_lazy()._get_value()  # type: ignore[no-any-return]

    def release(self) -> None:
        lazy, self._lazy = self._lazy, None

        if lazy is not None:
            lazy._release_shared()

    @property
    def released(self) -> bool:
        return self._lazy is None

    def _get_lazy(self) -> Lazy[Any]:
        if self._lazy is None:
            raise InvalidOperationError("The shared borrow has already been released.")

        return self._lazy

    def __enter__(self) -> T_co:
        return self.value

    def __exit__(self, *_: Any) -> None:
        self.release()

    def __del__(self) -> None:
        self.release()

    def __repr__(self) -> str:
        if self._lazy is None:
            return "Ref(<released>)"

        return f"Ref({self._lazy._value!r})"


@final
class RefMut(Generic[T]):
    """
    Represents an exclusive borrow of a :class:`Lazy` value.

    Assigning to :attr:`value` replaces the stored value for good; the
    evaluator is never called again.
    """

    _lazy: Lazy[T] | None

    def __init__(self, lazy: Lazy[T]) -> None:
        self._lazy = lazy

    @property
    def value(self) -> T:
        """:raises InvalidOperationError: if the borrow is released."""
        return self._get_lazy()._get_value()

    @value.setter
    def value(self, value: T) -> None:
        self._get_lazy()._set_value(value)

    def release(self) -> None:
        lazy, self._lazy = self._lazy, None

        if lazy is not None:
            lazy._release_exclusive()

    @property
    def released(self) -> bool:
        return self._lazy is None

    def _get_lazy(self) -> Lazy[T]:
        if self._lazy is None:
            raise InvalidOperationError(
                "The exclusive borrow has already been released."
            )

        return self._lazy

    def __enter__(self) -> RefMut[T]:
        return self

    def __exit__(self, *_: Any) -> None:
        self.release()

    def __del__(self) -> None:
        self.release()

    def __repr__(self) -> str:
        if self._lazy is None:
            return "RefMut(<released>)"

        return f"RefMut({self._lazy._value!r})"


_PLAIN_COPYABLE_TYPES: Final = (
    type(None),
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    Decimal,
    Fraction,
    Enum,
)


def _is_plain_copyable(value: object) -> bool:
    if isinstance(value, (tuple, frozenset)):
        return all(_is_plain_copyable(v) for v in value)

    return isinstance(value, _PLAIN_COPYABLE_TYPES)


def _get_name(evaluator: Callable[..., Any]) -> str:
    name = getattr(evaluator, "__qualname__", None)
    if isinstance(name, str):
        return name

    return repr(evaluator)
