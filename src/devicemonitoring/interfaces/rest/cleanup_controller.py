import logging

from flask import Blueprint, request, jsonify

from src.devicemonitoring.application.services import ReadingRetentionService
from src.devicemonitoring.application.workers import ReadingRetentionWorker

logger = logging.getLogger(__name__)


class CleanupController:
    """
    REST API Controller for reading retention

    Endpoints:
    - GET  /api/cleanup/status     - Retention schedule and last run
    - POST /api/cleanup/run        - Run a cleanup now
    - POST /api/cleanup/clear-all  - Delete every stored reading
    """

    def __init__(
            self,
            retention_service: ReadingRetentionService,
            retention_worker: ReadingRetentionWorker
    ):
        self.retention_service = retention_service
        self.retention_worker = retention_worker
        self.blueprint = Blueprint('cleanup', __name__)
        self._register_routes()

    def _register_routes(self):
        """Register all routes for this controller"""
        self.blueprint.add_url_rule(
            '/api/cleanup/status',
            'get_cleanup_status',
            self.get_status,
            methods=['GET']
        )

        self.blueprint.add_url_rule(
            '/api/cleanup/run',
            'run_cleanup',
            self.run_cleanup,
            methods=['POST']
        )

        self.blueprint.add_url_rule(
            '/api/cleanup/clear-all',
            'clear_all_readings',
            self.clear_all,
            methods=['POST']
        )

    def get_status(self):
        """GET /api/cleanup/status"""
        try:
            return jsonify(self.retention_worker.status()), 200

        except Exception as e:
            logger.error(f"Error getting cleanup status: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def run_cleanup(self):
        """
        POST /api/cleanup/run

        Request Body (JSON, optional):
        {
            "olderThanDays": 7
        }
        """
        try:
            data = request.get_json(silent=True) or {}
            older_than_days = data.get('olderThanDays')

            if older_than_days is not None:
                if isinstance(older_than_days, bool) or not isinstance(older_than_days, int):
                    return jsonify({'error': 'olderThanDays must be an integer'}), 400

            deleted = self.retention_service.cleanup(older_than_days)

            return jsonify({
                'message': 'Cleanup completed',
                'deletedCount': deleted
            }), 200

        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        except Exception as e:
            logger.error(f"Error running cleanup: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def clear_all(self):
        """POST /api/cleanup/clear-all"""
        try:
            deleted = self.retention_service.clear_all()

            return jsonify({
                'message': 'All readings deleted',
                'deletedCount': deleted
            }), 200

        except Exception as e:
            logger.error(f"Error clearing readings: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def get_blueprint(self):
        """Get Flask Blueprint"""
        return self.blueprint
