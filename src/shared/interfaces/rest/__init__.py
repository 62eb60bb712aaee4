from .request_parsing import parse_iso_datetime, parse_int_arg

__all__ = ['parse_iso_datetime', 'parse_int_arg']
