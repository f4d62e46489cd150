"""
irflow.lattice
==============

The constant-propagation value lattice.

::

                    NAC                 (top: may vary at runtime)
          /   /   /  |  \\   \\   \\
       …  -2  -1  0  1  2  …           CONSTANT(k)
          \\   \\   \\  |  /   /   /
                   UNDEF                (bottom: no information yet)

Two distinct constants are incomparable and meet to ``NAC``.  The height is
3, so every ascending chain of a single variable stabilises after at most
two changes; that bound is what makes the worklist solver terminate.

Public API
----------
    Value        - immutable lattice element
    UNDEF, NAC   - the two payload-free elements
    meet_value   - the meet operator used by constant propagation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Final, Optional, Union

from irflow.errors import AnalysisException


class _UndefSentinel:
    """Unique payload for ``UNDEF``."""
    _instance: ClassVar[Optional[_UndefSentinel]] = None

    def __new__(cls) -> _UndefSentinel:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEF"

    def __hash__(self) -> int:
        return hash("__UNDEF__")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _UndefSentinel)


class _NacSentinel:
    """Unique payload for ``NAC``."""
    _instance: ClassVar[Optional[_NacSentinel]] = None

    def __new__(cls) -> _NacSentinel:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NAC"

    def __hash__(self) -> int:
        return hash("__NAC__")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _NacSentinel)


_UNDEF_PAYLOAD: Final = _UndefSentinel()
_NAC_PAYLOAD: Final = _NacSentinel()


@dataclass(frozen=True, slots=True)
class Value:
    """
    Element of the constant-propagation lattice.

    Representation:
        payload=UNDEF sentinel  →  UNDEF
        payload=NAC sentinel    →  NAC
        payload=<int>           →  CONSTANT(int)

    Equality is structural, so ``Value.make_constant(3) ==
    Value.make_constant(3)`` holds without interning.

    Examples
    --------
    >>> meet_value(Value.make_constant(5), Value.get_undef())
    Value(5)
    >>> meet_value(Value.make_constant(5), Value.make_constant(6))
    Value(NAC)
    """
    payload: Union[int, _UndefSentinel, _NacSentinel]

    # ---- Constructors ----------------------------------------------------

    @staticmethod
    def get_undef() -> Value:
        return UNDEF

    @staticmethod
    def get_nac() -> Value:
        return NAC

    @staticmethod
    def make_constant(v: int) -> Value:
        return Value(int(v))

    # ---- Queries ---------------------------------------------------------

    def is_undef(self) -> bool:
        return isinstance(self.payload, _UndefSentinel)

    def is_nac(self) -> bool:
        return isinstance(self.payload, _NacSentinel)

    def is_constant(self) -> bool:
        return isinstance(self.payload, int)

    def get_constant(self) -> int:
        """The integer payload; only valid for constants."""
        if not isinstance(self.payload, int):
            raise AnalysisException(f"{self} is not a constant")
        return self.payload

    def __str__(self) -> str:
        if self.is_undef():
            return "UNDEF"
        if self.is_nac():
            return "NAC"
        return str(self.payload)

    def __repr__(self) -> str:
        return f"Value({self})"


UNDEF: Final[Value] = Value(_UNDEF_PAYLOAD)
NAC: Final[Value] = Value(_NAC_PAYLOAD)


def meet_value(v1: Value, v2: Value) -> Value:
    """Meet two values.

    ``UNDEF`` is the identity, ``NAC`` absorbs everything, equal constants
    are kept and different constants collapse to ``NAC``.
    """
    if v2.is_nac() or v1 == v2 or v1.is_undef():
        return v2
    if v1.is_nac():
        return NAC
    if v2.is_undef():
        return v1
    return NAC
