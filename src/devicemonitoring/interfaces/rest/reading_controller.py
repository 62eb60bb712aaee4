import logging

from flask import Blueprint, request, jsonify

from src.devicemonitoring.application.services import (
    ReadingIngestionService,
    ReadingHistoryService
)
from src.devicemonitoring.domain.exceptions import DeviceNotFoundError, ReadingNotStoredError
from src.devicemonitoring.domain.services import PRIMARY_VALUE_FIELD
from src.shared.interfaces.rest import parse_iso_datetime, parse_int_arg

logger = logging.getLogger(__name__)


class ReadingController:
    """
    REST API Controller for readings

    Endpoints:
    - POST /api/devices/<deviceId>/data          - Push a reading (non-MQTT ingestion)
    - GET  /api/devices/<deviceId>/data          - Recent readings
    - GET  /api/devices/<deviceId>/data/latest   - Latest reading
    - GET  /api/history/devices/<deviceId>       - Paginated, date-filtered history
    - GET  /api/dashboard/stats                  - Status counts and total readings
    """

    def __init__(
            self,
            ingestion_service: ReadingIngestionService,
            history_service: ReadingHistoryService
    ):
        """
        Initialize controller with dependencies

        Args:
            ingestion_service: Service for pushed readings
            history_service: Service for reading queries
        """
        self.ingestion_service = ingestion_service
        self.history_service = history_service
        self.blueprint = Blueprint('readings', __name__)
        self._register_routes()

    def _register_routes(self):
        """Register all routes for this controller"""
        self.blueprint.add_url_rule(
            '/api/devices/<device_id>/data',
            'ingest_reading',
            self.ingest_reading,
            methods=['POST']
        )

        self.blueprint.add_url_rule(
            '/api/devices/<device_id>/data',
            'get_recent_readings',
            self.get_recent_readings,
            methods=['GET']
        )

        self.blueprint.add_url_rule(
            '/api/devices/<device_id>/data/latest',
            'get_latest_reading',
            self.get_latest_reading,
            methods=['GET']
        )

        self.blueprint.add_url_rule(
            '/api/history/devices/<device_id>',
            'get_history',
            self.get_history,
            methods=['GET']
        )

        self.blueprint.add_url_rule(
            '/api/dashboard/stats',
            'get_dashboard_stats',
            self.get_dashboard_stats,
            methods=['GET']
        )

    def ingest_reading(self, device_id: str):
        """
        POST /api/devices/<deviceId>/data

        Request Body (JSON):
        {
            "value": 0.42,
            "timestamp": "2025-01-15T10:30:00"   (optional)
        }
        "alcohol_level" is accepted in place of "value".

        Response:
        - 201 Created: {"message": ..., "data": reading}
        - 400 Bad Request: missing/invalid value or timestamp
        - 404 Not Found: unknown device
        """
        try:
            data = request.get_json(silent=True)

            if not isinstance(data, dict):
                return jsonify({
                    'error': 'Request body must be a JSON object'
                }), 400

            value = data.get('value')
            if value is None:
                value = data.get(PRIMARY_VALUE_FIELD)

            recorded_at = parse_iso_datetime(data.get('timestamp'))

            reading = self.ingestion_service.ingest(device_id, value, recorded_at)

            return jsonify({
                'message': 'Data received successfully',
                'data': reading.to_dict()
            }), 201

        except DeviceNotFoundError as e:
            return jsonify({'error': str(e)}), 404

        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        except ReadingNotStoredError as e:
            logger.error(f"Reading for {device_id} not stored: {e}")
            return jsonify({'error': 'Reading could not be stored'}), 500

        except Exception as e:
            logger.error(f"Unexpected error in ingest_reading: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def get_recent_readings(self, device_id: str):
        """
        GET /api/devices/<deviceId>/data

        Query Parameters:
            limit: int (optional) - Maximum number of readings (default: 100)
        """
        try:
            limit = parse_int_arg(request.args, 'limit', 100)
            readings = self.history_service.recent_readings(device_id, limit)

            return jsonify([reading.to_dict() for reading in readings]), 200

        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        except Exception as e:
            logger.error(f"Error getting readings for {device_id}: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def get_latest_reading(self, device_id: str):
        """GET /api/devices/<deviceId>/data/latest"""
        try:
            reading = self.history_service.latest_reading(device_id)

            if reading is None:
                return jsonify({'error': 'No data found'}), 404

            return jsonify(reading.to_dict()), 200

        except Exception as e:
            logger.error(f"Error getting latest reading for {device_id}: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def get_history(self, device_id: str):
        """
        GET /api/history/devices/<deviceId>

        Query Parameters:
            page: int (default: 1)
            limit: int (default: 50)
            startDate: ISO-8601 (optional)
            endDate: ISO-8601 (optional)

        Response:
        {
            "data": [...],
            "device": {...},
            "pagination": {"page": 1, "limit": 50, "total": 120, "pages": 3}
        }
        """
        try:
            page = parse_int_arg(request.args, 'page', 1)
            limit = parse_int_arg(request.args, 'limit', 50)
            start = parse_iso_datetime(request.args.get('startDate'), 'startDate')
            end = parse_iso_datetime(request.args.get('endDate'), 'endDate')

            result = self.history_service.history(device_id, page, limit, start, end)
            return jsonify(result), 200

        except DeviceNotFoundError as e:
            return jsonify({'error': str(e)}), 404

        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        except Exception as e:
            logger.error(f"Error getting history for {device_id}: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def get_dashboard_stats(self):
        """GET /api/dashboard/stats"""
        try:
            return jsonify(self.history_service.dashboard_stats()), 200

        except Exception as e:
            logger.error(f"Error getting dashboard stats: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def get_blueprint(self):
        """Get Flask Blueprint"""
        return self.blueprint
