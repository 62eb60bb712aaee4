from .normalized_payload import NormalizedPayload

__all__ = ['NormalizedPayload']
