import json
import logging
import math
from typing import Optional, Union

from src.devicemonitoring.domain.model.valueobjects import NormalizedPayload

logger = logging.getLogger(__name__)

# First present field wins; the last three are names used by older firmware
VALUE_FIELDS = ('alcohol_level', 'Index', 'level', 'value')
PRIMARY_VALUE_FIELD = VALUE_FIELDS[0]


class PayloadNormalizer:
    """
    Domain Service: turns an inbound payload into a canonical reading value

    Accepted shapes:
    - JSON object carrying one of VALUE_FIELDS
      e.g. {"alcohol_level": 0.42} or {"Index": 9}
    - Bare number, as JSON or plain text
      e.g. "42" or " 3.5 "

    A JSON object whose value field is missing or not numeric yields 0,
    and so does any other JSON value that is not a number (string, array,
    boolean). JSON null, text that is neither JSON nor a number, and bytes
    that are not UTF-8 are discarded (normalize() returns None).
    """

    def normalize(self, payload: Union[bytes, str]) -> Optional[NormalizedPayload]:
        """
        Normalize a raw broker payload

        Args:
            payload: Raw payload bytes or text

        Returns:
            NormalizedPayload, or None when the message must be discarded
        """
        if isinstance(payload, (bytes, bytearray)):
            try:
                text = bytes(payload).decode('utf-8')
            except UnicodeDecodeError:
                logger.warning("Discarding payload: not valid UTF-8")
                return None
        else:
            text = str(payload)

        try:
            decoded = json.loads(text)
        except ValueError:
            pass
        else:
            if isinstance(decoded, dict):
                return NormalizedPayload(value=self._extract_value(decoded), raw=text)
            if isinstance(decoded, (str, list, bool)):
                logger.debug(f"JSON {type(decoded).__name__} payload carries no value field, using 0")
                return NormalizedPayload(value=0.0, raw=text)

        value = self._parse_number(text)
        if value is None:
            logger.warning(f"Discarding payload: neither JSON nor numeric: {text[:100]!r}")
            return None

        return NormalizedPayload(value=value, raw=text)

    def _extract_value(self, data: dict) -> float:
        for field in VALUE_FIELDS:
            if field in data:
                return self._coerce(data[field])

        logger.debug(f"No value field in payload keys {list(data.keys())}, using 0")
        return 0.0

    @staticmethod
    def _coerce(raw) -> float:
        """Float coercion that defaults to 0 instead of failing"""
        if isinstance(raw, bool) or raw is None:
            return 0.0

        try:
            value = float(raw.strip() if isinstance(raw, str) else raw)
        except (TypeError, ValueError):
            return 0.0

        return value if math.isfinite(value) else 0.0

    @staticmethod
    def _parse_number(text: str) -> Optional[float]:
        try:
            value = float(text.strip())
        except ValueError:
            return None

        return value if math.isfinite(value) else None
