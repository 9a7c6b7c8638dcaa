"""HTTP client infrastructure."""
from infrastructure.http.client import make_http_session, validate_source

__all__ = [
    'make_http_session',
    'validate_source',
]
