from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .errors import InvalidArgumentError


@dataclass(slots=True)
class MemoryBlock:
    """
    Contiguous address range ``[base_address, base_address + length)``.

    Blocks compare by value. They are mutable because a free block is shrunk
    in place when an allocation consumes its front.
    """

    base_address: int
    length: int

    def __post_init__(self) -> None:
        if not isinstance(self.base_address, int) or isinstance(self.base_address, bool) or self.base_address < 0:
            raise InvalidArgumentError(f"base_address must be a non-negative int, got {self.base_address!r}")
        if not isinstance(self.length, int) or isinstance(self.length, bool) or self.length <= 0:
            raise InvalidArgumentError(f"length must be a positive int, got {self.length!r}")

    @property
    def end(self) -> int:
        return self.base_address + self.length

    def adjacent_to(self, other: "MemoryBlock") -> bool:
        """True when ``other`` starts exactly where this block ends."""
        return self.end == other.base_address

    def overlaps(self, other: "MemoryBlock") -> bool:
        return self.base_address < other.end and other.base_address < self.end

    def as_tuple(self) -> Tuple[int, int]:
        return self.base_address, self.length

    def __str__(self) -> str:
        return f"({self.base_address} , {self.length})"
