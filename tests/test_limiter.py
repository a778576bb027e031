from starlette.requests import Request

import limiter


def _request(headers=None, client=("203.0.113.7", 4000)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_falls_back_to_peer_address():
    assert limiter.get_client_ip(_request()) == "203.0.113.7"


def test_uses_configured_proxy_header(monkeypatch):
    monkeypatch.setattr(limiter, "CLIENT_IP_HEADERS", ["CF-Connecting-IP"])
    request = _request({"CF-Connecting-IP": "198.51.100.1"})
    assert limiter.get_client_ip(request) == "198.51.100.1"


def test_takes_client_from_forwarded_list(monkeypatch):
    monkeypatch.setattr(limiter, "CLIENT_IP_HEADERS", ["X-Forwarded-For"])
    request = _request({"X-Forwarded-For": "198.51.100.2, 10.0.0.1, 10.0.0.2"})
    assert limiter.get_client_ip(request) == "198.51.100.2"


def test_ignores_headers_not_configured(monkeypatch):
    monkeypatch.setattr(limiter, "CLIENT_IP_HEADERS", ["CF-Connecting-IP"])
    request = _request({"X-Forwarded-For": "198.51.100.3"})
    assert limiter.get_client_ip(request) == "203.0.113.7"
