"""Tests for the HTTP backends: single endpoint, pool, and endpoint ring."""

import json
import os
import sys

import httpx
import pytest

from wav_denoise.dispatch.interface import DenoiseOutcome, DenoiseRequest
from wav_denoise.dispatch.remote import (
    DenoiseRequestBody,
    EndpointRing,
    PoolDispatcher,
    RemoteDispatcher,
)
from wav_denoise.utils.errors import ConfigError, DispatchError

API_URL = "http://denoise.example.com/denoise"
POOL_A = "http://a.example.com/denoise"
POOL_B = "http://b.example.com/denoise"


def _request(name: str = "a.wav") -> DenoiseRequest:
    return DenoiseRequest(input_path=f"/in/{name}", output_path=f"/out/{name}")


class TestDenoiseRequestBody:
    """Tests for the JSON request payload."""

    def test_model_omitted_when_unset(self) -> None:
        body = DenoiseRequestBody(filename="/in/a.wav", filename_denoised="/out/a.wav")

        assert body.to_json() == {
            "filename": "/in/a.wav",
            "filename_denoised": "/out/a.wav",
        }

    def test_undecodable_path_bytes_are_replaced(self) -> None:
        """Surrogate-escaped filename bytes are sent as U+FFFD."""
        body = DenoiseRequestBody(
            filename="/in/caf\udce9.wav", filename_denoised="/out/caf\udce9.wav"
        )

        payload = body.to_json()

        assert payload["filename"] == "/in/caf\ufffd.wav"
        assert payload["filename_denoised"] == "/out/caf\ufffd.wav"
        json.dumps(payload).encode("utf-8")

    def test_model_included_when_set(self) -> None:
        body = DenoiseRequestBody(
            filename="/in/a.wav", filename_denoised="/out/a.wav", model="rnnoise-v2"
        )

        assert body.to_json()["model"] == "rnnoise-v2"


class TestEndpointRing:
    """Tests for round-robin endpoint selection."""

    def test_cycles_in_strict_order(self) -> None:
        ring = EndpointRing(["A", "B", "C"])

        picked = [ring.next() for _ in range(7)]

        assert picked == ["A", "B", "C", "A", "B", "C", "A"]

    def test_single_endpoint_repeats(self) -> None:
        ring = EndpointRing(["only"])

        assert [ring.next() for _ in range(3)] == ["only", "only", "only"]

    def test_empty_list_raises_config_error(self) -> None:
        with pytest.raises(ConfigError, match="At least one API address"):
            EndpointRing([])

    def test_endpoints_are_copied(self) -> None:
        source = ["A", "B"]
        ring = EndpointRing(source)
        source.append("C")

        assert len(ring) == 2
        assert ring.endpoints == ("A", "B")


class TestRemoteDispatcher:
    """Tests for RemoteDispatcher against a mocked API."""

    @pytest.fixture
    def dispatcher(self):
        dispatcher = RemoteDispatcher(url=API_URL)
        yield dispatcher
        dispatcher.close()

    def test_sends_expected_payload(self, dispatcher, httpx_mock) -> None:
        httpx_mock.add_response(
            url=API_URL, method="POST", json={"filename_denoised": "/out/a.wav"}
        )

        dispatcher.dispatch(_request())

        request = httpx_mock.get_request()
        assert request is not None
        assert json.loads(request.content) == {
            "filename": "/in/a.wav",
            "filename_denoised": "/out/a.wav",
        }
        assert request.headers["Content-Type"] == "application/json"

    def test_forwards_model_identifier(self, httpx_mock) -> None:
        httpx_mock.add_response(url=API_URL, json={"filename_denoised": "/out/a.wav"})

        with RemoteDispatcher(url=API_URL, model="studio") as dispatcher:
            dispatcher.dispatch(_request())

        body = json.loads(httpx_mock.get_request().content)
        assert body["model"] == "studio"

    def test_non_empty_response_is_success(self, dispatcher, httpx_mock) -> None:
        httpx_mock.add_response(url=API_URL, json={"filename_denoised": "/out/a.wav"})

        outcome = dispatcher.dispatch(_request())

        assert outcome == DenoiseOutcome.ok()

    def test_empty_response_is_failure(self, dispatcher, httpx_mock) -> None:
        httpx_mock.add_response(url=API_URL, json={"filename_denoised": ""})

        outcome = dispatcher.dispatch(_request())

        assert outcome.success is False
        assert API_URL in outcome.reason

    def test_http_error_status_raises(self, dispatcher, httpx_mock) -> None:
        httpx_mock.add_response(url=API_URL, status_code=500)

        with pytest.raises(DispatchError, match="HTTP 500") as exc_info:
            dispatcher.dispatch(_request())

        assert exc_info.value.endpoint == API_URL
        assert exc_info.value.backend == "api"
        assert exc_info.value.path == "/in/a.wav"

    def test_connection_error_raises(self, dispatcher, httpx_mock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with pytest.raises(DispatchError, match="request failed"):
            dispatcher.dispatch(_request())

    def test_non_json_response_raises(self, dispatcher, httpx_mock) -> None:
        httpx_mock.add_response(url=API_URL, text="<html>oops</html>")

        with pytest.raises(DispatchError, match="non-JSON"):
            dispatcher.dispatch(_request())

    def test_missing_field_raises(self, dispatcher, httpx_mock) -> None:
        httpx_mock.add_response(url=API_URL, json={"status": "ok"})

        with pytest.raises(DispatchError, match="filename_denoised"):
            dispatcher.dispatch(_request())

    def test_non_object_response_raises(self, dispatcher, httpx_mock) -> None:
        httpx_mock.add_response(url=API_URL, json=["/out/a.wav"])

        with pytest.raises(DispatchError, match="filename_denoised"):
            dispatcher.dispatch(_request())

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX byte filenames")
    def test_non_utf8_filename_is_sent_lossy(self, dispatcher, httpx_mock) -> None:
        httpx_mock.add_response(url=API_URL, json={"filename_denoised": "/out/x.wav"})
        request = DenoiseRequest(
            input_path=os.fsdecode(b"/in/caf\xe9.wav"),
            output_path=os.fsdecode(b"/out/caf\xe9.wav"),
        )

        outcome = dispatcher.dispatch(request)

        assert outcome.success is True
        body = json.loads(httpx_mock.get_request().content)
        assert body["filename"] == "/in/caf\ufffd.wav"
        assert body["filename_denoised"] == "/out/caf\ufffd.wav"

    def test_empty_url_raises_config_error(self) -> None:
        with pytest.raises(ConfigError, match="API address is required"):
            RemoteDispatcher(url="")


class TestPoolDispatcher:
    """Tests for PoolDispatcher round-robin dispatch."""

    def test_endpoints_used_round_robin(self, httpx_mock) -> None:
        for url in (POOL_A, POOL_B, POOL_A):
            httpx_mock.add_response(url=url, json={"filename_denoised": "/out/x.wav"})

        with PoolDispatcher(urls=[POOL_A, POOL_B]) as dispatcher:
            outcomes = [
                dispatcher.dispatch(_request(name)) for name in ("1.wav", "2.wav", "3.wav")
            ]

        assert all(outcome.success for outcome in outcomes)
        requests = httpx_mock.get_requests()
        assert [str(r.url) for r in requests] == [POOL_A, POOL_B, POOL_A]
        assert [json.loads(r.content)["filename"] for r in requests] == [
            "/in/1.wav",
            "/in/2.wav",
            "/in/3.wav",
        ]

    def test_bad_endpoint_fails_run_without_failover(self, httpx_mock) -> None:
        httpx_mock.add_response(url=POOL_A, json={"filename_denoised": "/out/1.wav"})
        httpx_mock.add_exception(httpx.ConnectError("down"), url=POOL_B)

        with PoolDispatcher(urls=[POOL_A, POOL_B]) as dispatcher:
            dispatcher.dispatch(_request("1.wav"))
            with pytest.raises(DispatchError) as exc_info:
                dispatcher.dispatch(_request("2.wav"))

        assert exc_info.value.endpoint == POOL_B
        assert exc_info.value.backend == "pool"

    def test_empty_pool_raises_config_error(self) -> None:
        with pytest.raises(ConfigError):
            PoolDispatcher(urls=[])

    def test_forwards_model_to_every_endpoint(self, httpx_mock) -> None:
        for url in (POOL_A, POOL_B):
            httpx_mock.add_response(url=url, json={"filename_denoised": "/out/x.wav"})

        with PoolDispatcher(urls=[POOL_A, POOL_B], model="m1") as dispatcher:
            dispatcher.dispatch(_request("1.wav"))
            dispatcher.dispatch(_request("2.wav"))

        assert all(
            json.loads(r.content)["model"] == "m1" for r in httpx_mock.get_requests()
        )
