"""
Part planning.

Reproduces the backend's arithmetic: part n starts at (n-1)*part_size and
ends at min(n*part_size, file_size). Only the last part may be short.
"""
from typing import List

from .models import PartDescriptor


def expected_part_count(file_size: int, part_size: int) -> int:
    """ceil(file_size / part_size), with an empty file still taking one part."""
    if part_size <= 0:
        raise ValueError("Part size must be positive")
    if file_size <= 0:
        return 1
    return -(-file_size // part_size)


def part_range(part_number: int, part_size: int, file_size: int) -> PartDescriptor:
    """Byte range of a single part."""
    if part_number < 1:
        raise ValueError(f"Part numbers start at 1, got {part_number}")
    start = (part_number - 1) * part_size
    end = min(start + part_size, file_size)
    if start > end or (start == file_size and file_size > 0):
        raise ValueError(f"Part {part_number} starts beyond end of file ({file_size} bytes)")
    return PartDescriptor(part_number=part_number, start=start, end=end)


def plan_parts(file_size: int, part_size: int, total_parts: int) -> List[PartDescriptor]:
    """
    Calculate the byte range of every part.

    Args:
        file_size: Total file size in bytes
        part_size: Part size chosen by the backend
        total_parts: Part count chosen by the backend

    Returns:
        One PartDescriptor per part number 1..total_parts

    Raises:
        ValueError: If the backend's part count does not match its part size
    """
    if file_size < 0:
        raise ValueError("File size cannot be negative")
    expected = expected_part_count(file_size, part_size)
    if total_parts != expected:
        raise ValueError(
            f"Backend reported {total_parts} parts but {file_size} bytes "
            f"in parts of {part_size} bytes needs {expected}"
        )
    return [part_range(n, part_size, file_size) for n in range(1, total_parts + 1)]


def batch_part_numbers(total_parts: int, batch_size: int) -> List[List[int]]:
    """
    Split 1..total_parts into consecutive batches.

    Example:
        >>> batch_part_numbers(5, 2)
        [[1, 2], [3, 4], [5]]
    """
    if batch_size < 1:
        raise ValueError("Batch size must be positive")
    return [
        list(range(start, min(start + batch_size, total_parts + 1)))
        for start in range(1, total_parts + 1, batch_size)
    ]
