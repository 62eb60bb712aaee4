import logging
from flask import Blueprint, jsonify

logger = logging.getLogger(__name__)

SERVICE_NAME = 'Device Monitoring Service'
SERVICE_VERSION = '1.0.0'


class HealthController:
    """
    Controller for health and info endpoints
    """

    def __init__(self, container):
        """
        Initialize controller with container

        Args:
            container: DI container with all dependencies
        """
        self.container = container
        self.blueprint = Blueprint('health', __name__)
        self._register_routes()

    def _register_routes(self):
        """Register all routes"""
        self.blueprint.add_url_rule(
            '/health',
            'health_check',
            self.health_check,
            methods=['GET']
        )

        self.blueprint.add_url_rule(
            '/info',
            'info',
            self.info,
            methods=['GET']
        )

    def health_check(self):
        """
        GET /health

        Degraded (503) when active devices exist but no broker
        connection is up.
        """
        try:
            manager = self.container.connection_manager
            active_devices = len(self.container.device_repository.find_active())
            connected = manager.connected_count()

            healthy = active_devices == 0 or connected > 0

            status = {
                'status': 'healthy' if healthy else 'degraded',
                'active_devices': active_devices,
                'broker_connections': manager.connection_count(),
                'broker_connected': connected,
                'dashboard_sessions': self.container.broadcaster.session_count()
            }

            status_code = 200 if healthy else 503
            return jsonify(status), status_code

        except Exception as e:
            logger.error(f"Error in health check: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def info(self):
        """
        GET /info

        Application info endpoint
        """
        try:
            manager = self.container.connection_manager
            retention_worker = self.container.retention_worker

            return jsonify({
                'name': SERVICE_NAME,
                'version': SERVICE_VERSION,
                'mqtt': {
                    'connections': manager.connection_count(),
                    'connected': manager.connected_count()
                },
                'dashboard': {
                    'sessions': self.container.broadcaster.session_count()
                },
                'workers': {
                    'retention_worker': {
                        'running': retention_worker.is_running(),
                        'interval_seconds': retention_worker.interval_seconds
                    }
                },
                'database': {
                    'devices_count': self.container.device_repository.count(),
                    'readings_count': self.container.reading_repository.count()
                }
            }), 200

        except Exception as e:
            logger.error(f"Error in info endpoint: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def get_blueprint(self):
        """Get Flask Blueprint"""
        return self.blueprint
