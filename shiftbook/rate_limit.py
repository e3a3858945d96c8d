"""Rate limiting singleton using slowapi."""

from fastapi import Request
from slowapi import Limiter

from .audit.service import client_ip


def _client_key(request: Request) -> str:
    """Limit per client IP; X-Forwarded-For wins behind a reverse proxy."""
    return client_ip(request) or "unknown"


limiter = Limiter(key_func=_client_key)
