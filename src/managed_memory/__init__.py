"""
Simulated managed memory space with first-fit allocation.

Blocks are tracked in two explicit lists, allocated and free; nothing here
touches real memory.
"""

from .block_list import BlockList
from .errors import (
    ALLOCATION_FAILED,
    BlockNotFoundError,
    IndexOutOfRangeError,
    InvalidArgumentError,
    LayoutViolationError,
    MemorySpaceError,
)
from .memory_block import MemoryBlock
from .memory_space import MemorySpace

__all__ = [
    "ALLOCATION_FAILED",
    "BlockList",
    "BlockNotFoundError",
    "IndexOutOfRangeError",
    "InvalidArgumentError",
    "LayoutViolationError",
    "MemoryBlock",
    "MemorySpace",
    "MemorySpaceError",
]
