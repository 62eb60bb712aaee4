import os

from dotenv import load_dotenv

load_dotenv()


class RetentionConfig:
    """
    Reading retention policy

    Readings older than OLDER_THAN_DAYS are deleted every INTERVAL_DAYS.
    """

    ENABLED = os.getenv('RETENTION_ENABLED', 'True').lower() == 'true'
    INTERVAL_DAYS = int(os.getenv('RETENTION_INTERVAL_DAYS', 2))
    OLDER_THAN_DAYS = int(os.getenv('RETENTION_OLDER_THAN_DAYS', 2))

    @classmethod
    def interval_seconds(cls) -> int:
        return cls.INTERVAL_DAYS * 24 * 60 * 60
