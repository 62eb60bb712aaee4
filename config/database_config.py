import os
from dotenv import load_dotenv

load_dotenv()


class DatabaseConfig:
    """
    Configuration of local database SQLite
    """

    # Path to SQLite database file
    DATABASE_PATH = os.getenv('DATABASE_PATH', './data/device_monitoring.db')

    # Timeout for database connections in seconds
    TIMEOUT = 10
