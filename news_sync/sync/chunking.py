"""Chunk planning for batched remote fetches."""

from collections.abc import Sequence


# Number of ids fetched per batch request. Bounds request/response size
# and the number of payloads held in memory at once.
SYNC_BATCH_SIZE = 40


def plan_chunks(ids: Sequence[str], chunk_size: int = SYNC_BATCH_SIZE) -> list[list[str]]:
    """
    Split ids into consecutive chunks of at most chunk_size.

    Concatenating the chunks in order gives back ids exactly; only the
    last chunk may be shorter. An empty input yields no chunks.

    Raises:
        ValueError: If chunk_size is less than 1.

    Example:
        >>> plan_chunks(["a", "b", "c"], 2)
        [['a', 'b'], ['c']]
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be a positive integer, got {chunk_size}")
    return [list(ids[start:start + chunk_size]) for start in range(0, len(ids), chunk_size)]
