"""
Batch signatures and the bounded signature history.

A batch is identified by the key fields of its most recent reading. The
signature is an explicit concatenation of those fields with parameters in
sorted order, so it does not depend on dict ordering anywhere upstream.

Key Features:
    - Deterministic data signature for a reading batch
    - Bounded ring of recently processed signatures with O(1) membership
    - Oldest signature evicted once capacity is reached

Example:
    >>> history = SignatureHistory(capacity=100)
    >>> signature = build_data_signature([reading])
    >>> if signature in history:
    ...     print("already processed")
    >>> history.record(signature)
"""

from collections import deque
from typing import Deque, Iterable, List, Optional, Sequence, Set

import structlog

from pureflow.models.readings import SensorReading

logger = structlog.get_logger(__name__)


EMPTY_BATCH_SIGNATURE = "empty"

DEFAULT_HISTORY_CAPACITY = 100


def latest_reading(readings: Sequence[SensorReading]) -> Optional[SensorReading]:
    """
    Pick the most recent reading of a batch.

    Readings without a timestamp sort before timestamped ones; among equal
    timestamps the last one supplied wins.

    Args:
        readings: The batch, in any order.

    Returns:
        Optional[SensorReading]: The latest reading, or None for an empty batch.
    """
    latest: Optional[SensorReading] = None
    for reading in readings:
        if latest is None:
            latest = reading
            continue
        if reading.timestamp is None:
            if latest.timestamp is None:
                latest = reading
            continue
        if latest.timestamp is None or reading.timestamp >= latest.timestamp:
            latest = reading
    return latest


def reading_signature(reading: SensorReading) -> str:
    """
    Build the canonical signature of one reading.

    Format: ``ts=<iso|none>|<name>=<value|null>...|rain=<true|false|null>``
    with parameter names sorted.

    Example:
        >>> reading_signature(SensorReading(values={"temperature": 27.0, "pH": 9.4}))
        'ts=none|pH=9.4|temperature=27.0|rain=null'
    """
    parts: List[str] = [
        f"ts={reading.timestamp.isoformat() if reading.timestamp else 'none'}"
    ]
    for name in sorted(reading.values):
        value = reading.value(name)
        parts.append(f"{name}={repr(value) if value is not None else 'null'}")

    if reading.is_raining is None:
        parts.append("rain=null")
    else:
        parts.append(f"rain={'true' if reading.is_raining else 'false'}")

    return "|".join(parts)


def build_data_signature(readings: Sequence[SensorReading]) -> str:
    """
    Build the data signature of a batch from its most recent reading.

    Args:
        readings: The batch.

    Returns:
        str: Signature of the latest reading, or ``empty`` for an empty batch.
    """
    latest = latest_reading(readings)
    if latest is None:
        return EMPTY_BATCH_SIGNATURE
    return reading_signature(latest)


class SignatureHistory:
    """
    Bounded ring of recently processed batch signatures.

    A deque keeps insertion order for eviction and a set gives constant-time
    membership. Memory never exceeds ``capacity`` entries.

    Attributes:
        capacity: Maximum number of remembered signatures.

    Example:
        >>> history = SignatureHistory(capacity=2)
        >>> for s in ("a", "b", "c"):
        ...     history.record(s)
        >>> "a" in history, "c" in history
        (False, True)
    """

    def __init__(
        self,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
        signatures: Iterable[str] = (),
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._order: Deque[str] = deque()
        self._members: Set[str] = set()
        for signature in signatures:
            self.record(signature)

    def record(self, signature: str) -> None:
        """
        Remember a signature, evicting the oldest one at capacity.

        Recording a signature that is already present is a no-op.
        """
        if signature in self._members:
            return
        if len(self._order) >= self.capacity:
            evicted = self._order.popleft()
            self._members.discard(evicted)
            logger.debug("signature_evicted", signature=evicted)
        self._order.append(signature)
        self._members.add(signature)

    def clear(self) -> None:
        """Forget all signatures."""
        self._order.clear()
        self._members.clear()

    def __contains__(self, signature: object) -> bool:
        return signature in self._members

    def __len__(self) -> int:
        return len(self._order)
