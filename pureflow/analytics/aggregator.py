"""
Time-window aggregation of sensor readings.

Readings are bucketed by their own timestamps, never by the wall clock at
aggregation time. Each bucket carries per-parameter sum, count, min, max
and average over the valid samples in it.

Functions:
    bucket_start: Start of the window a timestamp falls into
    aggregate_by_interval: Bucket readings into fixed windows
    summarize_parameters: Overall average per parameter

Example:
    >>> buckets = aggregate_by_interval(readings, "daily")
    >>> buckets[0].parameters["pH"].average
    7.45
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pureflow.models.analysis import AggregationBucket, IntervalType, ParameterAggregate
from pureflow.models.readings import DEFAULT_PARAMETERS, SensorReading


def bucket_start(timestamp: datetime, interval: Union[IntervalType, str]) -> datetime:
    """
    Compute the start of the window containing a timestamp.

    The result keeps the timestamp's own timezone.

    Args:
        timestamp: Reading timestamp.
        interval: Window size.

    Returns:
        datetime: Window start.

    Raises:
        ValueError: If the interval is unknown.

    Example:
        >>> bucket_start(datetime(2025, 3, 5, 15, 40), "2hour")
        datetime.datetime(2025, 3, 5, 14, 0)
        >>> bucket_start(datetime(2025, 3, 5, 15, 40), "weekly")
        datetime.datetime(2025, 3, 3, 0, 0)
    """
    interval = IntervalType(interval)
    midnight = timestamp.replace(hour=0, minute=0, second=0, microsecond=0)

    if interval == IntervalType.TWO_HOUR:
        return midnight.replace(hour=timestamp.hour - timestamp.hour % 2)
    if interval == IntervalType.DAILY:
        return midnight
    if interval == IntervalType.WEEKLY:
        # weekday() is 0 for Monday
        return midnight - timedelta(days=timestamp.weekday())
    return midnight.replace(day=1)


class _Accumulator:
    """Running sum/count/min/max for one parameter in one bucket."""

    __slots__ = ("total", "count", "low", "high")

    def __init__(self) -> None:
        self.total = 0.0
        self.count = 0
        self.low = float("inf")
        self.high = float("-inf")

    def add(self, value: float) -> None:
        self.total += value
        self.count += 1
        self.low = min(self.low, value)
        self.high = max(self.high, value)

    def result(self) -> Optional[ParameterAggregate]:
        if self.count == 0:
            return None
        return ParameterAggregate(
            sum=self.total,
            count=self.count,
            min=self.low,
            max=self.high,
            average=self.total / self.count,
        )


def aggregate_by_interval(
    readings: Iterable[SensorReading],
    interval: Union[IntervalType, str],
    parameters: Sequence[str] = DEFAULT_PARAMETERS,
) -> List[AggregationBucket]:
    """
    Bucket readings into fixed time windows.

    Windows are 2-hour (starting on even hours), calendar day, ISO week
    (Monday 00:00) or calendar month. Readings without a timestamp are
    excluded. A parameter with no valid samples in a bucket is reported as
    None rather than zero.

    Args:
        readings: Readings in any order.
        interval: Window size.
        parameters: Parameters to aggregate.

    Returns:
        List[AggregationBucket]: Buckets sorted by start, ascending. The sum
            of bucket counts equals the number of timestamped readings.

    Raises:
        ValueError: If the interval is unknown.
    """
    interval = IntervalType(interval)
    counts: Dict[datetime, int] = {}
    accumulators: Dict[datetime, Dict[str, _Accumulator]] = {}

    for reading in readings:
        if reading.timestamp is None:
            continue
        start = bucket_start(reading.timestamp, interval)
        if start not in accumulators:
            accumulators[start] = {parameter: _Accumulator() for parameter in parameters}
            counts[start] = 0
        counts[start] += 1

        for parameter in parameters:
            value = reading.value(parameter)
            if value is not None:
                accumulators[start][parameter].add(value)

    return [
        AggregationBucket(
            start=start,
            count=counts[start],
            parameters={
                parameter: accumulator.result()
                for parameter, accumulator in accumulators[start].items()
            },
        )
        for start in sorted(accumulators)
    ]


def summarize_parameters(
    readings: Iterable[SensorReading],
    parameters: Sequence[str] = DEFAULT_PARAMETERS,
) -> Dict[str, Optional[float]]:
    """
    Average each parameter over all readings.

    Returns:
        Dict[str, Optional[float]]: Average per parameter, rounded to 2
            places; None where no reading has a valid value.
    """
    accumulators = {parameter: _Accumulator() for parameter in parameters}
    for reading in readings:
        for parameter in parameters:
            value = reading.value(parameter)
            if value is not None:
                accumulators[parameter].add(value)

    return {
        parameter: round(accumulator.total / accumulator.count, 2) if accumulator.count else None
        for parameter, accumulator in accumulators.items()
    }
