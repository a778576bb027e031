"""
Online Clipboard — Rate limiter (shared instance)
Imported by main.py and all routers that apply @limiter.limit().
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from config import CLIENT_IP_HEADERS, RATE_LIMIT_ENABLED


def get_client_ip(request: Request) -> str:
    """
    First address found in CLIENT_IP_HEADERS (e.g. CF-Connecting-IP behind
    Cloudflare, X-Forwarded-For behind nginx), else the socket peer.
    Proxy lists are "client, proxy1, proxy2"; the client is the first entry.
    """
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            return value.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=get_client_ip, enabled=RATE_LIMIT_ENABLED)
