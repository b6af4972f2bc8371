"""
Reading sources backed by the storage clients.
"""

from typing import List, Sequence

import structlog

from pureflow.interfaces.collaborators import ReadingSource
from pureflow.models.readings import DEFAULT_PARAMETERS, SensorReading
from pureflow.storage.postgres_client import PostgresClient

logger = structlog.get_logger(__name__)


class PostgresReadingSource(ReadingSource):
    """
    ReadingSource over the sensor_readings table.

    Example:
        >>> source = PostgresReadingSource(postgres_client, parameters=thresholds.parameters)
        >>> readings = await source.fetch_recent(50)
    """

    def __init__(
        self,
        postgres_client: PostgresClient,
        parameters: Sequence[str] = DEFAULT_PARAMETERS,
    ) -> None:
        self.postgres_client = postgres_client
        self.parameters = tuple(parameters)

    async def fetch_recent(self, limit: int) -> List[SensorReading]:
        """
        Fetch the most recent readings, oldest first.

        Raises:
            PostgresClientError: If the query fails.
        """
        readings = await self.postgres_client.query_recent_readings(
            limit=limit,
            parameters=self.parameters,
        )
        logger.debug("readings_fetched", count=len(readings), limit=limit)
        return readings
