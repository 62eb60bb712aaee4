import logging

from config.retention_config import RetentionConfig
from src.devicemonitoring.application.handlers import BrokerMessageHandler
from src.devicemonitoring.application.services import (
    DeviceLifecycleService,
    ReadingPipeline,
    ReadingIngestionService,
    DeviceService,
    ReadingHistoryService,
    ReadingRetentionService
)
from src.devicemonitoring.application.workers import ReadingRetentionWorker
from src.devicemonitoring.domain.services import PayloadNormalizer
from src.devicemonitoring.infrastructure.messaging import (
    BrokerConnectionManager,
    DashboardBroadcaster
)
from src.devicemonitoring.infrastructure.persistence import (
    DeviceRepository,
    ReadingRepository
)
from src.devicemonitoring.interfaces.rest import (
    DeviceController,
    ReadingController,
    CleanupController
)
from src.shared.infrastructure.database import database
from src.shared.infrastructure.mqtt import create_mqtt_client
from src.shared.infrastructure.workers import TaskScheduler
from src.shared.interfaces.health_controller import HealthController

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency Injection Container

    Manages all application dependencies and their lifecycle.
    """

    def __init__(self, client_factory=None, scheduler=None):
        """
        Wire the application

        Args:
            client_factory: paho client factory (defaults to create_mqtt_client)
            scheduler: delayed-task scheduler (defaults to TaskScheduler)
        """
        logger.info("Initializing application container...")

        # Infrastructure - Database
        self._database = database
        self._ensure_database_connected()

        # Infrastructure - Scheduling
        self.scheduler = scheduler or TaskScheduler(name="device-monitor")

        # Repositories
        self.device_repository = DeviceRepository()
        self.reading_repository = ReadingRepository()

        # Dashboard fan-out
        self.broadcaster = DashboardBroadcaster(self.device_repository, self.scheduler)

        # Domain / Application Services
        self.payload_normalizer = PayloadNormalizer()
        self.lifecycle_service = DeviceLifecycleService(
            self.device_repository,
            self.broadcaster
        )
        self.reading_pipeline = ReadingPipeline(
            self.reading_repository,
            self.lifecycle_service,
            self.broadcaster
        )
        self.ingestion_service = ReadingIngestionService(
            self.device_repository,
            self.reading_pipeline
        )
        self.history_service = ReadingHistoryService(
            self.device_repository,
            self.reading_repository
        )
        self.retention_service = ReadingRetentionService(
            self.reading_repository,
            RetentionConfig.OLDER_THAN_DAYS
        )

        # Broker connections
        self.broker_message_handler = BrokerMessageHandler(
            self.payload_normalizer,
            self.reading_pipeline
        )
        self.connection_manager = BrokerConnectionManager(
            self.device_repository,
            self.lifecycle_service,
            self.broker_message_handler,
            self.scheduler,
            client_factory=client_factory or create_mqtt_client
        )

        self.device_service = DeviceService(
            self.device_repository,
            self.connection_manager,
            self.broadcaster,
            self.scheduler
        )

        # Background Workers
        self.retention_worker = ReadingRetentionWorker(
            self.retention_service,
            interval_seconds=RetentionConfig.interval_seconds()
        )

        # REST Controllers
        self.device_controller = DeviceController(self.device_service)
        self.reading_controller = ReadingController(
            self.ingestion_service,
            self.history_service
        )
        self.cleanup_controller = CleanupController(
            self.retention_service,
            self.retention_worker
        )
        self.health_controller = HealthController(self)

        logger.info("Application container initialized")

    def _ensure_database_connected(self):
        """Ensure database is connected and tables exist"""
        try:
            if self._database.is_closed():
                self._database.connect()
            logger.info("Database connected")
        except Exception as e:
            logger.error(f"Database connection failed: {e}", exc_info=True)
            raise

    def blueprints(self):
        """Blueprints of every REST controller"""
        return [
            self.device_controller.get_blueprint(),
            self.reading_controller.get_blueprint(),
            self.cleanup_controller.get_blueprint(),
            self.health_controller.get_blueprint()
        ]

    def start_broker_connections(self):
        """Open a broker connection for every active device"""
        logger.info("Starting broker connections...")
        self.connection_manager.start()

    def start_retention_worker(self):
        """Start reading retention worker"""
        if not RetentionConfig.ENABLED:
            logger.info("Reading retention disabled")
            return

        logger.info("Starting reading retention worker...")
        self.retention_worker.start()

    def shutdown(self):
        """Gracefully shutdown all components"""
        logger.info("Shutting down application...")

        # Stop retention worker
        if self.retention_worker.is_running():
            logger.info("Stopping reading retention worker...")
            self.retention_worker.stop()

        # Close broker connections
        logger.info("Closing broker connections...")
        self.connection_manager.stop()

        # Close database
        logger.info("Closing database...")
        if not self._database.is_closed():
            self._database.close()

        logger.info("Application shutdown complete")
