"""
Engine client facade over the remote chess-engine HTTP API.

- POST /move {fen, ai_thinking_ms} -> {move, score, depth, nodes, nps, time_ms, pv} or {detail} on error.
- GET /health -> {status: "ok"}.

Every failure (timeout, network, non-2xx, malformed body) is folded into an EngineResult
with success=False and a readable error; nothing raised by httpx escapes request_move().
No retries: one attempt per call, the caller decides what to do with a failure.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from . import notation
from .config import SETTINGS

log = logging.getLogger("engine_client")

MIN_THINKING_MS = 100
MAX_THINKING_MS = 60000

TIMEOUT_ERROR = "Request timeout - engine took too long to respond"
UNREACHABLE_ERROR = "Engine unreachable or blocked; check api_base and network configuration"


@dataclass
class EngineResult:
    success: bool
    move: Optional[str] = None
    score: Optional[float] = None  # centipawns, + = white ahead
    depth: Optional[int] = None
    nodes: Optional[int] = None
    nps: Optional[int] = None
    time_ms: Optional[int] = None  # engine-reported search time
    pv: Any = None
    error: Optional[str] = None
    latency_ms: Optional[int] = None  # measured round trip, not part of the wire format

    @classmethod
    def failure(cls, error: str, latency_ms: Optional[int] = None) -> "EngineResult":
        return cls(success=False, error=error, latency_ms=latency_ms)

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.error}
        return {
            "success": True,
            "move": self.move,
            "score": self.score,
            "depth": self.depth,
            "nodes": self.nodes,
            "nps": self.nps,
            "time": self.time_ms,
            "pv": self.pv,
        }


def clamp_thinking_ms(thinking_ms: float) -> int:
    return int(max(MIN_THINKING_MS, min(MAX_THINKING_MS, thinking_ms)))


def _error_detail(response: httpx.Response) -> str:
    """Server-provided detail for a non-2xx response, falling back to the body text or status."""
    text = response.text
    try:
        body = json.loads(text)
    except (ValueError, RecursionError):
        body = {"detail": text}
    detail = body.get("detail") if isinstance(body, dict) else None
    if detail and not isinstance(detail, str):
        try:
            detail = json.dumps(detail)
        except (ValueError, RecursionError):
            detail = text
    return detail or f"API error: {response.status_code}"


def _result_from_response(response: httpx.Response, latency_ms: int) -> EngineResult:
    if not response.is_success:
        detail = _error_detail(response)
        log.error("Engine returned status=%d: %s", response.status_code, detail)
        return EngineResult.failure(detail, latency_ms)
    try:
        data = response.json()
    except (ValueError, RecursionError) as e:
        log.error("Engine response is not JSON: %s", e)
        return EngineResult.failure(f"Malformed engine response: {e}", latency_ms)
    if not isinstance(data, dict):
        return EngineResult.failure("Malformed engine response: expected a JSON object", latency_ms)
    if not isinstance(data.get("move"), str) or not data["move"]:
        return EngineResult.failure("Malformed engine response: missing move", latency_ms)
    log.debug("Engine response: %s", data)
    return EngineResult(
        success=True,
        move=data["move"],
        score=data.get("score"),
        depth=data.get("depth"),
        nodes=data.get("nodes"),
        nps=data.get("nps"),
        time_ms=data.get("time_ms"),
        pv=data.get("pv"),
        latency_ms=latency_ms,
    )


def _result_from_exception(exc: Exception, timeout_s: float, latency_ms: int) -> EngineResult:
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        log.error("Engine request timed out after %.1fs", timeout_s)
        return EngineResult.failure(TIMEOUT_ERROR, latency_ms)
    if isinstance(exc, httpx.TransportError):
        log.error("Engine unreachable: %s", exc)
        return EngineResult.failure(UNREACHABLE_ERROR, latency_ms)
    log.error("Engine request failed: %s", exc)
    return EngineResult.failure(str(exc) or type(exc).__name__, latency_ms)


def _health_from_response(response: httpx.Response) -> bool:
    if not response.is_success:
        log.error("Health check failed with status %d: %s", response.status_code, response.text)
        return False
    try:
        data = response.json()
    except (ValueError, RecursionError):
        log.error("Health check returned a non-JSON body")
        return False
    return isinstance(data, dict) and data.get("status") == "ok"


class _EngineClientBase:
    """Shared configuration, payload building and notation helpers."""

    parse_move = staticmethod(notation.parse_move)
    format_move = staticmethod(notation.format_move)
    square_to_algebraic = staticmethod(notation.square_to_algebraic)
    algebraic_to_square = staticmethod(notation.algebraic_to_square)

    def __init__(
        self,
        api_base: Optional[str] = None,
        default_thinking_ms: Optional[int] = None,
        timeout_buffer_ms: Optional[int] = None,
        health_timeout_s: Optional[float] = None,
    ):
        self.api_base = (api_base or SETTINGS.api_base).rstrip("/")
        self.default_thinking_ms = default_thinking_ms if default_thinking_ms is not None else SETTINGS.thinking_ms
        self.timeout_buffer_ms = timeout_buffer_ms if timeout_buffer_ms is not None else SETTINGS.timeout_buffer_ms
        self.health_timeout_s = health_timeout_s if health_timeout_s is not None else SETTINGS.health_timeout_s

    def thinking_budget_ms(self, thinking_ms: Optional[int] = None) -> int:
        return clamp_thinking_ms(self.default_thinking_ms if thinking_ms is None else thinking_ms)

    def move_timeout_s(self, thinking_ms: Optional[int] = None) -> float:
        """Overall deadline for one /move exchange: budget plus a buffer for cold starts on the hosting side."""
        return (self.thinking_budget_ms(thinking_ms) + self.timeout_buffer_ms) / 1000.0

    def _prepare_move(self, fen: str, thinking_ms: Optional[int]) -> tuple[dict, float]:
        """Return the /move body and the client-side deadline in seconds."""
        budget = self.thinking_budget_ms(thinking_ms)
        timeout_s = self.move_timeout_s(thinking_ms)
        log.info("Requesting move: thinking=%dms timeout=%.1fs", budget, timeout_s)
        log.debug("FEN: %s", fen)
        return {"fen": fen, "ai_thinking_ms": budget}, timeout_s


class EngineClient(_EngineClientBase):
    """Blocking client. Use as a context manager or call close() when done."""

    def __init__(self, api_base: Optional[str] = None, *, transport: Optional[httpx.BaseTransport] = None, **kwargs):
        super().__init__(api_base, **kwargs)
        self._http = httpx.Client(base_url=self.api_base, transport=transport)

    def _send_within(self, method: str, url: str, timeout_s: float, **kwargs) -> httpx.Response:
        """Send and read the whole response before one deadline; raises httpx.ReadTimeout past it.

        httpx timeouts are per phase and the read timeout restarts on every chunk, so the
        body is streamed and the deadline checked as it arrives.
        """
        deadline = time.monotonic() + timeout_s
        with self._http.stream(method, url, timeout=timeout_s, **kwargs) as response:
            body = bytearray()
            for chunk in response.iter_bytes():
                body.extend(chunk)
                if time.monotonic() > deadline:
                    break
            if time.monotonic() > deadline:
                raise httpx.ReadTimeout(f"no complete response within {timeout_s:.1f}s", request=response.request)
            content_type = response.headers.get("content-type")
        headers = {"content-type": content_type} if content_type else {}
        return httpx.Response(response.status_code, headers=headers, content=bytes(body), request=response.request)

    def request_move(self, fen: str, thinking_ms: Optional[int] = None) -> EngineResult:
        payload, timeout_s = self._prepare_move(fen, thinking_ms)
        t0 = time.perf_counter()
        try:
            response = self._send_within("POST", "/move", timeout_s, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return _result_from_exception(e, timeout_s, int((time.perf_counter() - t0) * 1000))
        latency_ms = int((time.perf_counter() - t0) * 1000)
        log.info("Response received: status=%d latency=%dms", response.status_code, latency_ms)
        return _result_from_response(response, latency_ms)

    def check_health(self) -> bool:
        try:
            response = self._send_within("GET", "/health", self.health_timeout_s)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.error("Health check failed: %s", e)
            return False
        return _health_from_response(response)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "EngineClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class AsyncEngineClient(_EngineClientBase):
    """asyncio client with the same contract as EngineClient."""

    def __init__(self, api_base: Optional[str] = None, *, transport: Optional[httpx.AsyncBaseTransport] = None, **kwargs):
        super().__init__(api_base, **kwargs)
        self._http = httpx.AsyncClient(base_url=self.api_base, transport=transport)

    async def request_move(self, fen: str, thinking_ms: Optional[int] = None) -> EngineResult:
        payload, timeout_s = self._prepare_move(fen, thinking_ms)
        t0 = time.perf_counter()
        try:
            # wait_for bounds the whole exchange, body included
            response = await asyncio.wait_for(self._http.post("/move", json=payload, timeout=timeout_s), timeout_s)
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as e:
            return _result_from_exception(e, timeout_s, int((time.perf_counter() - t0) * 1000))
        latency_ms = int((time.perf_counter() - t0) * 1000)
        log.info("Response received: status=%d latency=%dms", response.status_code, latency_ms)
        return _result_from_response(response, latency_ms)

    async def check_health(self) -> bool:
        try:
            response = await asyncio.wait_for(
                self._http.get("/health", timeout=self.health_timeout_s), self.health_timeout_s
            )
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as e:
            log.error("Health check failed: %r", e)
            return False
        return _health_from_response(response)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "AsyncEngineClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
