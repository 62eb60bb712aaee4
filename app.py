import logging
import signal
import sys

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

# Import configuration and setup
from src.shared.infrastructure.logging import setup_logging
from config.app_config import AppConfig
from config.dashboard_config import DashboardConfig
from config.mqtt_config import MqttConfig
from config.retention_config import RetentionConfig
from src.container import Container
from src.devicemonitoring.interfaces.websocket import (
    DashboardSocketController,
    DashboardWebSocketMiddleware
)

logger = logging.getLogger(__name__)


def create_app(container: Container):
    """
    Create and configure Flask application and its Socket.IO server

    Args:
        container: Dependency injection container

    Returns:
        (app, socketio) tuple
    """
    app = Flask(__name__)

    # Enable CORS
    CORS(app)

    # Register blueprints
    for blueprint in container.blueprints():
        app.register_blueprint(blueprint)

    # Dashboard channels
    socketio = SocketIO(
        app,
        async_mode="threading",
        cors_allowed_origins=DashboardConfig.CORS_ORIGINS,
        path=DashboardConfig.SOCKETIO_PATH.strip('/')
    )
    DashboardSocketController(socketio, container.broadcaster)

    # Plain WebSocket in front of everything else, Socket.IO included
    app.wsgi_app = DashboardWebSocketMiddleware(
        app.wsgi_app,
        container.broadcaster,
        DashboardConfig.WS_PATH
    )

    logger.info("Flask app created")
    return app, socketio


def main():
    """Main application entry point"""
    setup_logging()

    logger.info("=" * 80)
    logger.info("DEVICE MONITORING SERVICE")
    logger.info("=" * 80)

    # Create container
    container = Container()

    # Create Flask app
    app, socketio = create_app(container)

    # Set up graceful shutdown
    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}, initiating shutdown...")
        container.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    # Start broker connections (failures end up as device status)
    container.start_broker_connections()

    # Start retention worker
    try:
        container.start_retention_worker()
    except Exception as e:
        logger.error(f"Failed to start retention worker: {e}")
        logger.warning("Continuing without reading retention")

    logger.info("=" * 80)
    logger.info(f"Starting server on {AppConfig.FLASK_HOST}:{AppConfig.FLASK_PORT}")
    logger.info(f"Debug mode: {AppConfig.FLASK_DEBUG}")
    logger.info("=" * 80)
    logger.info("")
    logger.info("Available endpoints:")
    logger.info("  - GET    /api/devices")
    logger.info("  - POST   /api/devices")
    logger.info("  - PUT    /api/devices/<id>")
    logger.info("  - DELETE /api/devices/<id>")
    logger.info("  - POST   /api/devices/<deviceId>/data")
    logger.info("  - GET    /api/devices/<deviceId>/data[/latest]")
    logger.info("  - GET    /api/history/devices/<deviceId>")
    logger.info("  - GET    /api/dashboard/stats")
    logger.info("  - GET    /api/cleanup/status")
    logger.info("  - POST   /api/cleanup/run | /api/cleanup/clear-all")
    logger.info("  - GET    /health")
    logger.info("  - GET    /info")
    logger.info(f"  - WS     {DashboardConfig.WS_PATH} (JSON text frames)")
    logger.info(f"  - WS     {DashboardConfig.SOCKETIO_PATH} (Socket.IO)")
    logger.info("")
    logger.info("MQTT Configuration:")
    logger.info(f"  - Connect Timeout: {MqttConfig.CONNECT_TIMEOUT}s")
    logger.info(f"  - Reconnect Delay: {MqttConfig.RECONNECT_DELAY}s")
    logger.info(f"  - Fallback Delay: {MqttConfig.FALLBACK_DELAY}s")
    logger.info(f"  - Max Protocol Version: {MqttConfig.MAX_PROTOCOL_VERSION}")
    logger.info("")
    logger.info("Retention:")
    logger.info(f"  - Enabled: {RetentionConfig.ENABLED}")
    logger.info(f"  - Every {RetentionConfig.INTERVAL_DAYS} day(s), "
                f"older than {RetentionConfig.OLDER_THAN_DAYS} day(s)")
    logger.info("")
    logger.info("=" * 80)

    try:
        socketio.run(
            app,
            host=AppConfig.FLASK_HOST,
            port=AppConfig.FLASK_PORT,
            debug=AppConfig.FLASK_DEBUG,
            use_reloader=False,  # Disable reloader to avoid duplicate broker connections
            allow_unsafe_werkzeug=True
        )
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
    finally:
        container.shutdown()


if __name__ == '__main__':
    main()
