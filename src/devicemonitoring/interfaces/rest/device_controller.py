import logging

from flask import Blueprint, request, jsonify

from src.devicemonitoring.application.services import DeviceService
from src.devicemonitoring.domain.exceptions import DeviceNotFoundError

logger = logging.getLogger(__name__)


class DeviceController:
    """
    REST API Controller for device administration

    Endpoints:
    - GET    /api/devices        - List registered devices
    - GET    /api/devices/<id>   - Get one device
    - POST   /api/devices        - Register a device
    - PUT    /api/devices/<id>   - Edit a device (restarts its broker connection)
    - DELETE /api/devices/<id>   - Deregister a device
    """

    def __init__(self, device_service: DeviceService):
        """
        Initialize controller with dependencies

        Args:
            device_service: Service for device administration
        """
        self.device_service = device_service
        self.blueprint = Blueprint('devices', __name__)
        self._register_routes()

    def _register_routes(self):
        """Register all routes for this controller"""
        self.blueprint.add_url_rule(
            '/api/devices',
            'list_devices',
            self.list_devices,
            methods=['GET']
        )

        self.blueprint.add_url_rule(
            '/api/devices/<int:id>',
            'get_device',
            self.get_device,
            methods=['GET']
        )

        self.blueprint.add_url_rule(
            '/api/devices',
            'create_device',
            self.create_device,
            methods=['POST']
        )

        self.blueprint.add_url_rule(
            '/api/devices/<int:id>',
            'update_device',
            self.update_device,
            methods=['PUT']
        )

        self.blueprint.add_url_rule(
            '/api/devices/<int:id>',
            'delete_device',
            self.delete_device,
            methods=['DELETE']
        )

    def list_devices(self):
        """
        GET /api/devices

        Response: array of device records (password never included)
        """
        try:
            devices = self.device_service.list_devices()
            return jsonify([device.to_dict() for device in devices]), 200

        except Exception as e:
            logger.error(f"Error listing devices: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def get_device(self, id: int):
        """GET /api/devices/<id>"""
        try:
            device = self.device_service.get_device(id)
            return jsonify(device.to_dict()), 200

        except DeviceNotFoundError as e:
            return jsonify({'error': str(e)}), 404

        except Exception as e:
            logger.error(f"Error getting device {id}: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def create_device(self):
        """
        POST /api/devices

        Request Body (JSON):
        {
            "deviceId": "D1",
            "name": "Breathalyzer 1",
            "mqttBroker": "broker.local:1883",
            "mqttTopic": "sensors/D1",
            "protocol": "MQTT",
            "username": "optional",
            "password": "optional"
        }

        Response:
        - 201 Created: device record
        - 400 Bad Request: invalid payload or duplicate deviceId
        """
        try:
            if not request.is_json:
                return jsonify({
                    'error': 'Content-Type must be application/json'
                }), 400

            device = self.device_service.create_device(request.get_json(silent=True))
            return jsonify(device.to_dict()), 201

        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        except Exception as e:
            logger.error(f"Unexpected error in create_device: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def update_device(self, id: int):
        """
        PUT /api/devices/<id>

        Any subset of the creation fields. The device is forced online and
        its broker connection restarted.

        Response:
        - 200 OK: updated device record
        - 400 Bad Request: invalid payload
        - 404 Not Found: unknown device
        """
        try:
            if not request.is_json:
                return jsonify({
                    'error': 'Content-Type must be application/json'
                }), 400

            device = self.device_service.update_device(id, request.get_json(silent=True))
            return jsonify(device.to_dict()), 200

        except DeviceNotFoundError as e:
            return jsonify({'error': str(e)}), 404

        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        except Exception as e:
            logger.error(f"Unexpected error in update_device: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def delete_device(self, id: int):
        """
        DELETE /api/devices/<id>

        Responds as soon as dashboards are notified and the broker
        connection is closed; the storage delete completes in background.
        """
        try:
            device = self.device_service.delete_device(id)
            return jsonify({
                'message': 'Device deleted',
                'id': device.id,
                'deviceId': device.device_id
            }), 200

        except DeviceNotFoundError as e:
            return jsonify({'error': str(e)}), 404

        except Exception as e:
            logger.error(f"Unexpected error in delete_device: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500

    def get_blueprint(self):
        """Get Flask Blueprint"""
        return self.blueprint
