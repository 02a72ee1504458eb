"""HTTP denoising backends: a single endpoint or a round-robin pool.

Each request POSTs {"filename", "filename_denoised"[, "model"]} and
expects {"filename_denoised"} back. An empty "filename_denoised" in the
response is the server's way of reporting a per-file failure; anything
that prevents getting such an answer is fatal.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from wav_denoise.dispatch.interface import DenoiseOutcome, DenoiseRequest, Dispatcher
from wav_denoise.utils.errors import ConfigError, DispatchError

logger = logging.getLogger(__name__)


def _lossy(path: str) -> str:
    """Replace undecodable filename bytes so the path can be sent as UTF-8 JSON."""
    return path.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


@dataclass
class DenoiseRequestBody:
    """JSON payload sent to the denoising API."""

    filename: str
    filename_denoised: str
    model: str | None = None

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "filename": _lossy(self.filename),
            "filename_denoised": _lossy(self.filename_denoised),
        }
        if self.model is not None:
            payload["model"] = self.model
        return payload


class EndpointRing:
    """Cyclic selector over a fixed, non-empty list of endpoint URLs."""

    def __init__(self, endpoints: Sequence[str]) -> None:
        if not endpoints:
            raise ConfigError(
                "At least one API address is required", operation="endpoint_ring"
            )
        self.endpoints: tuple[str, ...] = tuple(endpoints)
        self._index = 0

    def __len__(self) -> int:
        return len(self.endpoints)

    def next(self) -> str:
        """Return the current endpoint and advance one step."""
        endpoint = self.endpoints[self._index]
        self._index = (self._index + 1) % len(self.endpoints)
        return endpoint


class _HttpDispatcher(Dispatcher):
    """Shared request/response handling for the HTTP backends."""

    def __init__(
        self,
        model: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.model = model or None
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the shared HTTP client and release the connection pool."""
        self._client.close()

    def _select_endpoint(self) -> str:
        raise NotImplementedError

    def dispatch(self, request: DenoiseRequest) -> DenoiseOutcome:
        """POST the request to the next endpoint and interpret the reply.

        Raises:
            DispatchError: On connection errors, HTTP error statuses, or a
                response body that is not the expected JSON object.
        """
        endpoint = self._select_endpoint()
        body = DenoiseRequestBody(
            filename=request.input_path,
            filename_denoised=request.output_path,
            model=self.model,
        )

        logger.debug(
            "Sending %s to %s",
            request.input_path,
            endpoint,
            extra={"path": request.input_path, "endpoint": endpoint},
        )

        try:
            response = self._client.post(endpoint, json=body.to_json())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DispatchError(
                f"Denoise API returned HTTP {exc.response.status_code}",
                path=request.input_path,
                backend=self.name,
                endpoint=endpoint,
            ) from exc
        except httpx.RequestError as exc:
            raise DispatchError(
                f"Denoise API request failed: {exc}",
                path=request.input_path,
                backend=self.name,
                endpoint=endpoint,
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise DispatchError(
                "Denoise API returned a non-JSON response",
                path=request.input_path,
                backend=self.name,
                endpoint=endpoint,
            ) from exc

        denoised = data.get("filename_denoised") if isinstance(data, dict) else None
        if not isinstance(denoised, str):
            raise DispatchError(
                "Denoise API response lacks a 'filename_denoised' string",
                path=request.input_path,
                backend=self.name,
                endpoint=endpoint,
            )

        if not denoised:
            return DenoiseOutcome.failed(f"API at {endpoint} returned no output file")
        return DenoiseOutcome.ok()


class RemoteDispatcher(_HttpDispatcher):
    """Sends every request to one fixed API URL."""

    name = "api"

    def __init__(
        self,
        url: str,
        model: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        if not url:
            raise ConfigError("API address is required", operation="api")
        self.url = url
        super().__init__(model=model, timeout=timeout, client=client)

    def _select_endpoint(self) -> str:
        return self.url


class PoolDispatcher(_HttpDispatcher):
    """Spreads requests over several API URLs in strict round-robin order.

    There is no health tracking: an unreachable endpoint fails the run
    when its turn comes.
    """

    name = "pool"

    def __init__(
        self,
        urls: Sequence[str],
        model: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.ring = EndpointRing(urls)
        super().__init__(model=model, timeout=timeout, client=client)

    def _select_endpoint(self) -> str:
        return self.ring.next()
