"""Chunked data-parallel helpers.

Work is split into fixed-size contiguous chunks and mapped over a thread
pool. Results come back in chunk order, so any reduction over them is
independent of the number of workers.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from landmap.constants import CHUNK_SIZE, NUM_WORKERS
from landmap.errors import InvalidConfiguration

T = TypeVar("T")


def resolve_workers(n_workers: int | None) -> int:
    """Return the worker count to use, falling back to the configured default."""
    if n_workers is None:
        return NUM_WORKERS
    if n_workers < 1:
        raise InvalidConfiguration(f"n_workers must be >= 1, got {n_workers}")
    return int(n_workers)


def chunk_ranges(n_items: int, chunk_size: int | None = None) -> list[tuple[int, int]]:
    """Split ``range(n_items)`` into contiguous (start, stop) pairs."""
    chunk_size = CHUNK_SIZE if chunk_size is None else int(chunk_size)
    if chunk_size < 1:
        raise InvalidConfiguration(f"chunk_size must be >= 1, got {chunk_size}")
    return [(start, min(start + chunk_size, n_items)) for start in range(0, n_items, chunk_size)]


def map_chunks(
    fn: Callable[[int, int], T],
    n_items: int,
    chunk_size: int | None = None,
    n_workers: int | None = None,
) -> list[T]:
    """Apply ``fn(start, stop)`` to every chunk and return results in chunk order.

    With a single worker or a single chunk the calls run inline.
    """
    ranges = chunk_ranges(n_items, chunk_size)
    max_workers = min(resolve_workers(n_workers), max(len(ranges), 1))

    if max_workers <= 1:
        return [fn(start, stop) for start, stop in ranges]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(lambda r: fn(r[0], r[1]), ranges))
