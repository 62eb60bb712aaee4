import logging
from typing import Optional, List
from datetime import datetime
from peewee import AutoField, CharField, FloatField, DateTimeField, TextField
from src.shared.infrastructure.database import BaseModel, database
from src.devicemonitoring.domain.model.aggregates import Reading

logger = logging.getLogger(__name__)


class ReadingModel(BaseModel):
    """
    Peewee ORM model for readings table

    Stores every normalized sample together with its raw payload.
    device_id is the external deviceId; rows outlive device deletion
    until retention cleanup removes them.
    """

    id = AutoField(primary_key=True)
    device_id = CharField(max_length=100, index=True)
    timestamp = DateTimeField(index=True)
    value = FloatField()
    raw_payload = TextField()

    class Meta:
        table_name = 'readings'
        indexes = (
            (('device_id', 'timestamp'), False),  # History queries
        )


class ReadingRepository:
    """
    Repository for Reading aggregate

    Handles persistence operations for readings in SQLite
    """

    def __init__(self):
        self._ensure_table_exists()

    def _ensure_table_exists(self):
        """Create table if it doesn't exist"""
        with database:
            database.create_tables([ReadingModel], safe=True)
        logger.info("ReadingModel table verified/created")

    def save(self, reading: Reading) -> Reading:
        """
        Save a new reading

        Args:
            reading: Reading aggregate to persist

        Returns:
            Reading with ID populated
        """
        try:
            model = ReadingModel.create(
                device_id=reading.device_id,
                timestamp=reading.timestamp,
                value=reading.value,
                raw_payload=reading.raw_payload
            )

            logger.debug(
                f"Reading saved: ID={model.id}, device={reading.device_id}, "
                f"value={reading.value}"
            )
            return self._to_aggregate(model)

        except Exception as e:
            logger.error(f"Error saving reading for {reading.device_id}: {e}", exc_info=True)
            raise

    def find_by_device(self, device_id: str, limit: int = 100) -> List[Reading]:
        """
        Most recent readings of a device, newest first

        Args:
            device_id: External deviceId
            limit: Maximum number of readings

        Returns:
            List of Reading aggregates
        """
        try:
            models = (ReadingModel
                      .select()
                      .where(ReadingModel.device_id == device_id)
                      .order_by(ReadingModel.timestamp.desc(), ReadingModel.id.desc())
                      .limit(limit))
            return [self._to_aggregate(model) for model in models]

        except Exception as e:
            logger.error(f"Error finding readings for {device_id}: {e}", exc_info=True)
            raise

    def find_latest(self, device_id: str) -> Optional[Reading]:
        """
        Latest reading of a device

        Returns:
            Reading aggregate or None if the device has none
        """
        readings = self.find_by_device(device_id, limit=1)
        return readings[0] if readings else None

    def find_filtered(self, device_id: str, start: Optional[datetime] = None,
                      end: Optional[datetime] = None, offset: int = 0,
                      limit: int = 50) -> List[Reading]:
        """
        Page through the history of a device, newest first

        Args:
            device_id: External deviceId
            start: Inclusive lower bound on timestamp
            end: Inclusive upper bound on timestamp
            offset: Rows to skip
            limit: Page size

        Returns:
            List of Reading aggregates
        """
        try:
            query = (self._filtered_query(device_id, start, end)
                     .order_by(ReadingModel.timestamp.desc(), ReadingModel.id.desc())
                     .offset(offset)
                     .limit(limit))
            return [self._to_aggregate(model) for model in query]

        except Exception as e:
            logger.error(f"Error querying history for {device_id}: {e}", exc_info=True)
            raise

    def count_filtered(self, device_id: str, start: Optional[datetime] = None,
                       end: Optional[datetime] = None) -> int:
        try:
            return self._filtered_query(device_id, start, end).count()
        except Exception as e:
            logger.error(f"Error counting history for {device_id}: {e}", exc_info=True)
            raise

    def delete_older_than(self, cutoff: datetime) -> int:
        """
        Delete readings recorded before cutoff

        Args:
            cutoff: Readings with timestamp < cutoff are removed

        Returns:
            Number of deleted readings
        """
        try:
            deleted = ReadingModel.delete().where(ReadingModel.timestamp < cutoff).execute()

            if deleted > 0:
                logger.info(f"Deleted {deleted} readings older than {cutoff.isoformat()}")

            return deleted

        except Exception as e:
            logger.error(f"Error deleting readings older than {cutoff}: {e}", exc_info=True)
            raise

    def delete_all(self) -> int:
        """
        Delete every stored reading

        Returns:
            Number of deleted readings
        """
        try:
            deleted = ReadingModel.delete().execute()
            logger.warning(f"All readings cleared ({deleted} rows)")
            return deleted

        except Exception as e:
            logger.error(f"Error clearing readings: {e}", exc_info=True)
            raise

    def count(self) -> int:
        """
        Count total readings

        Returns:
            Total number of readings
        """
        try:
            return ReadingModel.select().count()
        except Exception as e:
            logger.error(f"Error counting readings: {e}", exc_info=True)
            raise

    def _filtered_query(self, device_id: str, start: Optional[datetime],
                        end: Optional[datetime]):
        query = ReadingModel.select().where(ReadingModel.device_id == device_id)
        if start is not None:
            query = query.where(ReadingModel.timestamp >= start)
        if end is not None:
            query = query.where(ReadingModel.timestamp <= end)
        return query

    def _to_aggregate(self, model: ReadingModel) -> Reading:
        """
        Convert Peewee model to Domain aggregate

        Args:
            model: ReadingModel instance

        Returns:
            Reading aggregate
        """
        return Reading(
            id=model.id,
            device_id=model.device_id,
            timestamp=model.timestamp,
            value=model.value,
            raw_payload=model.raw_payload
        )
