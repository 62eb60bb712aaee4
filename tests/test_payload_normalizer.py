import pytest

from src.devicemonitoring.domain.services import PayloadNormalizer


@pytest.fixture
def normalizer():
    return PayloadNormalizer()


class TestFieldPriority:

    def test_first_listed_field_wins(self, normalizer):
        result = normalizer.normalize(b'{"alcohol_level": 5, "Index": 9}')
        assert result.value == 5

    def test_alternate_field_alone(self, normalizer):
        assert normalizer.normalize(b'{"Index": 9}').value == 9

    def test_level_before_value(self, normalizer):
        assert normalizer.normalize('{"value": 1, "level": 2}').value == 2

    def test_value_field(self, normalizer):
        assert normalizer.normalize('{"value": "3.25"}').value == 3.25

    def test_raw_text_is_preserved(self, normalizer):
        payload = '{"alcohol_level": 0.4, "unit": "mg/L"}'
        assert normalizer.normalize(payload.encode()).raw == payload


class TestJsonDefaults:

    def test_non_numeric_field_defaults_to_zero(self, normalizer):
        assert normalizer.normalize('{"alcohol_level": "high"}').value == 0

    def test_null_field_defaults_to_zero(self, normalizer):
        assert normalizer.normalize('{"alcohol_level": null, "Index": 7}').value == 0

    def test_object_without_known_fields_defaults_to_zero(self, normalizer):
        result = normalizer.normalize('{"temperature": 21}')
        assert result is not None
        assert result.value == 0

    def test_boolean_field_defaults_to_zero(self, normalizer):
        assert normalizer.normalize('{"level": true}').value == 0


class TestBareNumbers:

    def test_bare_integer(self, normalizer):
        assert normalizer.normalize("42").value == 42

    def test_bare_float_with_whitespace(self, normalizer):
        assert normalizer.normalize(b" 3.5 \n").value == 3.5

    def test_negative_number(self, normalizer):
        assert normalizer.normalize("-1.5").value == -1.5


class TestOtherJsonValues:

    @pytest.mark.parametrize("payload", [
        '"42"',
        "[1, 2]",
        "true",
        b"false",
    ])
    def test_kept_with_zero_value(self, normalizer, payload):
        result = normalizer.normalize(payload)

        assert result is not None
        assert result.value == 0
        expected_raw = payload.decode() if isinstance(payload, bytes) else payload
        assert result.raw == expected_raw

    def test_json_number_keeps_its_value(self, normalizer):
        assert normalizer.normalize("1e3").value == 1000


class TestDiscard:

    @pytest.mark.parametrize("payload", [
        "not a number",
        "",
        "null",
        "NaN",
        "inf",
        b"\xff\xfe",
    ])
    def test_discarded(self, normalizer, payload):
        assert normalizer.normalize(payload) is None
