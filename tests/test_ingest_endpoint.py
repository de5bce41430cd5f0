"""Tests del endpoint HTTP de ingesta collectd.

Ejecutar:
    pytest tests/test_ingest_endpoint.py -v
"""

import json
import math
import time
from dataclasses import replace
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from common.config import Settings
from graphite_bridge.graphite import FixedBackoff, GraphiteChannel
from graphite_bridge.main import create_app
from graphite_bridge.schemas import GraphiteSample


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        graphite_host="localhost",
        graphite_port=2003,
        http_host="127.0.0.1",
        http_port=9292,
        connect_timeout=2.0,
        reconnect_backoff=10.0,
        write_timeout=None,
        queue_max_size=100,
        queue_drop_oldest=True,
        direct_write_timeout=None,
        wait_on_startup=False,
        expected_interval=10.0,
        forward_mode="direct",
        legacy_status_codes=False,
        log_level="INFO",
    )


@pytest.fixture
def mock_channel():
    """Canal falso: todas las escrituras tienen éxito."""
    channel = MagicMock()
    channel.write_direct = MagicMock(return_value=True)
    channel.enqueue = MagicMock(return_value=True)
    channel.stats = {"state": "connected", "written": 0}
    channel.health_check = MagicMock(return_value={"healthy": True, "state": "connected"})
    return channel


@pytest.fixture
def client(settings, mock_channel) -> TestClient:
    return TestClient(create_app(settings, channel=mock_channel))


# =============================================================================
# TEST 1: LOTE VÁLIDO
# =============================================================================

class TestIngestBatch:

    def test_single_record(self, client, mock_channel, collectd_record):
        response = client.post("/", json=[collectd_record])

        assert response.status_code == 200
        assert response.text == "Ok: 1\nErrors: 0\n"
        mock_channel.write_direct.assert_called_once_with(
            GraphiteSample("collectd.web_01.cpu.0.idle.value", 3.2, 1000),
            timeout=None,
        )

    @pytest.mark.parametrize("method", ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"])
    def test_method_agnostic(self, client, mock_channel, collectd_record, method):
        response = client.request(method, "/", content=json.dumps([collectd_record]))

        assert response.status_code == 200
        mock_channel.write_direct.assert_called_once()
        if method != "HEAD":
            assert response.text == "Ok: 1\nErrors: 0\n"

    def test_null_value_forwarded_with_rest_of_batch(self, client, mock_channel, collectd_record):
        with_null = dict(collectd_record, dsnames=["rx", "tx"], values=[None, 1.0])

        response = client.post("/", json=[with_null, collectd_record])

        assert response.status_code == 200
        assert response.text == "Ok: 3\nErrors: 0\n"
        written = [c.args[0] for c in mock_channel.write_direct.call_args_list]
        assert math.isnan(written[0].value)
        assert [s.value for s in written[1:]] == [1.0, 3.2]

    def test_samples_written_in_order(self, client, mock_channel, collectd_record):
        collectd_record.update(dsnames=["rx", "tx"], values=[1.0, 2.0])

        client.post("/", json=[collectd_record, collectd_record])

        metrics = [c.args[0].metric for c in mock_channel.write_direct.call_args_list]
        assert [m.rsplit(".", 1)[1] for m in metrics] == ["rx", "tx", "rx", "tx"]

    def test_write_failures_counted(self, client, mock_channel, collectd_record):
        mock_channel.write_direct.side_effect = [True, False, False]
        collectd_record.update(dsnames=["a", "b", "c"], values=[1, 2, 3])

        response = client.post("/", json=[collectd_record])

        assert response.text == "Ok: 3\nErrors: 2\n"

    def test_malformed_record_counted(self, client, mock_channel, collectd_record):
        bad = dict(collectd_record, dsnames=["a", "b"])

        response = client.post("/", json=[collectd_record, bad])

        assert response.status_code == 200
        assert response.text == "Ok: 1\nErrors: 1\n"
        assert mock_channel.write_direct.call_count == 1

    def test_empty_batch(self, client, mock_channel):
        response = client.post("/", json=[])

        assert response.text == "Ok: 0\nErrors: 0\n"
        mock_channel.write_direct.assert_not_called()

    def test_queued_mode_uses_enqueue(self, settings, mock_channel, collectd_record):
        mock_channel.enqueue.return_value = False
        client = TestClient(create_app(replace(settings, forward_mode="queued"), channel=mock_channel))

        response = client.post("/", json=[collectd_record])

        assert response.text == "Ok: 1\nErrors: 1\n"
        mock_channel.enqueue.assert_called_once()
        mock_channel.write_direct.assert_not_called()

    def test_direct_write_timeout_forwarded(self, settings, mock_channel, collectd_record):
        client = TestClient(create_app(replace(settings, direct_write_timeout=1.5), channel=mock_channel))

        client.post("/", json=[collectd_record])

        assert mock_channel.write_direct.call_args.kwargs["timeout"] == 1.5


# =============================================================================
# TEST 2: PAYLOAD MALFORMADO
# =============================================================================

class TestMalformedPayload:

    def test_invalid_json_returns_error_text(self, client, mock_channel):
        response = client.post("/", content=b"{not json")

        assert response.status_code == 400
        assert "json" in response.text.lower()
        mock_channel.write_direct.assert_not_called()

    def test_object_instead_of_array(self, client, collectd_record):
        response = client.post("/", json=collectd_record)

        assert response.status_code == 400

    def test_missing_required_field(self, client, collectd_record):
        del collectd_record["host"]

        response = client.post("/", json=[collectd_record])

        assert response.status_code == 400
        assert "host" in response.text

    def test_next_request_still_succeeds(self, client, collectd_record):
        assert client.post("/", content=b"garbage").status_code == 400

        response = client.post("/", json=[collectd_record])

        assert response.status_code == 200
        assert response.text == "Ok: 1\nErrors: 0\n"

    def test_legacy_status_codes(self, settings, mock_channel):
        client = TestClient(create_app(replace(settings, legacy_status_codes=True), channel=mock_channel))

        response = client.post("/", content=b"{not json")

        assert response.status_code == 200
        assert "Ok:" not in response.text


# =============================================================================
# TEST 3: HEALTH
# =============================================================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["graphite"]["state"] == "connected"

    def test_ready(self, client):
        assert client.get("/ready").status_code == 200

    def test_not_ready_when_disconnected(self, client, mock_channel):
        mock_channel.health_check.return_value = {"healthy": False, "state": "disconnected"}

        assert client.get("/ready").status_code == 503

    def test_metrics_exposition(self, client, collectd_record):
        client.post("/", json=[collectd_record])

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "graphite_bridge_ingest_requests_total" in response.text


# =============================================================================
# TEST 4: END TO END
# =============================================================================

class TestEndToEnd:

    def test_request_reaches_graphite(self, settings, graphite_server, collectd_record):
        settings = replace(
            settings,
            graphite_host=graphite_server.host,
            graphite_port=graphite_server.port,
            wait_on_startup=True,
        )
        channel = GraphiteChannel(graphite_server.host, graphite_server.port, backoff=FixedBackoff(0))

        with TestClient(create_app(settings, channel=channel)) as client:
            assert channel.is_connected
            response = client.post("/", json=[collectd_record])
            assert response.text == "Ok: 1\nErrors: 0\n"

        deadline = time.monotonic() + 5.0
        while time.monotonic() < deadline and not graphite_server.lines():
            time.sleep(0.01)
        assert graphite_server.lines() == ["collectd.web_01.cpu.0.idle.value 3.2 1000\n"]
