from .payload_normalizer import PayloadNormalizer, VALUE_FIELDS, PRIMARY_VALUE_FIELD

__all__ = ['PayloadNormalizer', 'VALUE_FIELDS', 'PRIMARY_VALUE_FIELD']
