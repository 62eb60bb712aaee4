from .reading_retention_worker import ReadingRetentionWorker

__all__ = ['ReadingRetentionWorker']
