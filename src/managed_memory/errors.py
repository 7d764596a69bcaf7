"""
Exception hierarchy for the managed memory space.

Allocation failure is not an exception: ``MemorySpace.allocate`` reports it
with the ``ALLOCATION_FAILED`` sentinel so callers can branch on it directly.
"""

ALLOCATION_FAILED = -1


class MemorySpaceError(Exception):
    """Base exception for all memory space errors."""


class InvalidArgumentError(MemorySpaceError, ValueError):
    """Operation was called with a structurally illegal argument."""


class IndexOutOfRangeError(InvalidArgumentError, IndexError):
    """Index falls outside the range accepted by a block list operation."""


class BlockNotFoundError(MemorySpaceError, LookupError):
    """No block in the list matches the value being removed."""


class LayoutViolationError(MemorySpaceError):
    """Allocated and free blocks no longer tile the address space exactly."""
