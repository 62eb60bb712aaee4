from .device_update_notifier import DeviceUpdateNotifier
from .device_lifecycle_service import DeviceLifecycleService
from .reading_pipeline import ReadingPipeline
from .reading_ingestion_service import ReadingIngestionService
from .device_service import DeviceService
from .reading_history_service import ReadingHistoryService
from .reading_retention_service import ReadingRetentionService

__all__ = [
    'DeviceUpdateNotifier',
    'DeviceLifecycleService',
    'ReadingPipeline',
    'ReadingIngestionService',
    'DeviceService',
    'ReadingHistoryService',
    'ReadingRetentionService'
]
