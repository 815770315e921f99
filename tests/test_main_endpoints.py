"""Tests for the probe endpoints exposed by app/main.py."""

import pathlib
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from app.__version__ import __build_date__, __commit_sha__, __version__
from app.core.rate_limit import get_client_ip
from app.main import app


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


class TestHealthEndpoint:
    def test_health_returns_ok_status(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestVersionEndpoint:
    def test_version_matches_package_version(self, client):
        resp = client.get("/api/version")
        assert resp.status_code == 200
        assert resp.json() == {
            "version": __version__,
            "build_date": __build_date__,
            "commit_sha": __commit_sha__,
        }


class TestMetricsEndpoint:
    def test_metrics_are_exposed(self, client):
        client.get("/api/health")
        resp = client.get("/api/metrics")
        assert resp.status_code == 200
        assert "http_request" in resp.text


class _Req:
    def __init__(self, headers, host):
        self.headers = headers
        self.client = type("C", (), {"host": host})() if host else None


class TestGetClientIp:
    def test_prefers_forwarded_for(self):
        req = _Req({"X-Forwarded-For": "10.0.0.1, 10.0.0.2"}, "127.0.0.1")
        assert get_client_ip(req) == "10.0.0.1"

    def test_falls_back_to_peer(self):
        assert get_client_ip(_Req({}, "127.0.0.1")) == "127.0.0.1"

    def test_unknown_without_peer(self):
        assert get_client_ip(_Req({}, None)) == "unknown"
