from types import SimpleNamespace

import pytest
import requests

from grubby import net
from grubby.errors import ConfigError, FunctionError, require


def response(status, payload=None, text=""):
    return SimpleNamespace(ok=200 <= status < 300, status_code=status, text=text, json=lambda: payload)


def test_get_json_returns_decoded_body(monkeypatch):
    monkeypatch.setattr(net.requests, "get", lambda *a, **kw: response(200, {"ok": True}))
    assert net.get_json("https://example.test") == {"ok": True}


def test_rate_limit_is_preserved(monkeypatch):
    monkeypatch.setattr(net.requests, "get", lambda *a, **kw: response(429, text="slow down"))
    with pytest.raises(FunctionError) as e:
        net.get_json("https://example.test", label="Yelp API", status=500)
    assert e.value.status == 429
    assert e.value.details == "slow down"


def test_other_errors_use_given_status(monkeypatch):
    monkeypatch.setattr(net.requests, "get", lambda *a, **kw: response(503, text="down"))
    with pytest.raises(FunctionError) as e:
        net.get_json("https://example.test", status=500)
    assert e.value.status == 500


def test_status_none_forwards_upstream_code(monkeypatch):
    monkeypatch.setattr(net.requests, "post", lambda *a, **kw: response(404, text="nothing"))
    with pytest.raises(FunctionError) as e:
        net.post_json("https://example.test", data={"a": 1}, status=None)
    assert e.value.status == 404


def test_timeout_maps_to_408(monkeypatch):
    def boom(*a, **kw):
        raise requests.Timeout()
    monkeypatch.setattr(net.requests, "get", boom)
    with pytest.raises(FunctionError) as e:
        net.get_json("https://example.test")
    assert e.value.status == 408


def test_safe_get_swallows_failures(monkeypatch):
    def boom(*a, **kw):
        raise requests.ConnectionError("refused")
    monkeypatch.setattr(net.requests, "get", boom)
    assert net.safe_get("https://example.test") is None
    assert net.safe_json("https://example.test") is None


def test_require_raises_config_error():
    with pytest.raises(ConfigError) as e:
        require("", "Yelp API key")
    assert e.value.status == 500
    assert e.value.to_dict() == {"error": "Yelp API key not configured"}
    assert require("k", "Yelp API key") == "k"
