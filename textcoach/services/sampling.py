"""Sampling-boundary detection for periodic side tasks."""


def should_trigger(current_count: int, batch_size: int, interval: int) -> bool:
    """Decide whether a batch crossed a multiple of ``interval``.

    ``current_count`` is the conversation's inbound total after the batch
    was recorded and ``batch_size`` how many of those messages this batch
    accounts for. The batch crossed a boundary iff the half-open range
    ``(current_count - batch_size, current_count]`` contains a multiple of
    ``interval``. Claiming messages 60 and 61 together (count=61,
    batch_size=2) still fires for 60; counts that cross nothing never fire.

    Args:
        current_count: Inbound total after this batch.
        batch_size: Messages accounted for by this batch.
        interval: Boundary spacing, e.g. 30.

    Returns:
        True when a boundary was crossed; False for non-positive counts.

    Raises:
        ValueError: If interval <= 0 or a count is negative.
    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")
    if current_count < 0 or batch_size < 0:
        raise ValueError("counts must be non-negative")
    if current_count <= 0:
        return False
    return current_count // interval > (current_count - batch_size) // interval
