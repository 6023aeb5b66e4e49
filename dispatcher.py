import asyncio
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import httpx

from endpoints import SUPPORTED_METHODS, Endpoint, resolve_headers
from errors import PokeError
from logging_config import get_logger

logger = get_logger(__name__)

# one connection per endpoint if need be, the pool must not throttle the fan-out
UNBOUNDED = httpx.Limits(max_connections=None, max_keepalive_connections=None)


@dataclass(frozen=True)
class PokeResult:
    endpoint: Endpoint
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    latency: float = 0.0


@dataclass(frozen=True)
class DispatchReport:
    results: Tuple[PokeResult, ...]
    elapsed: float

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def failures(self) -> List[PokeResult]:
        return [r for r in self.results if not r.ok]


def client_options(timeout: Optional[float]) -> dict:
    # None keeps the httpx default, 0 turns timeouts off
    if timeout is None:
        return {}
    if timeout <= 0:
        return {"timeout": None}
    return {"timeout": timeout}


def build_request(client: httpx.AsyncClient, endpoint: Endpoint) -> httpx.Request:
    if endpoint.method not in SUPPORTED_METHODS:
        raise PokeError(endpoint, f"unsupported HTTP method {endpoint.method!r}")

    headers = resolve_headers(endpoint)
    kwargs = {"headers": headers}
    if endpoint.params:
        kwargs["params"] = endpoint.params

    if endpoint.method == "POST":
        if endpoint.body is None:
            # empty JSON post
            if "content-type" not in {h.lower() for h in headers}:
                headers["Content-Type"] = "application/json"
            kwargs["content"] = b""
        else:
            kwargs["json"] = endpoint.body

    try:
        return client.build_request(endpoint.method, endpoint.target, **kwargs)
    except (httpx.InvalidURL, ValueError, TypeError) as e:
        raise PokeError(endpoint, f"cannot build {endpoint.method} request: {e}") from e


async def send(client: httpx.AsyncClient, endpoint: Endpoint) -> int:
    request = build_request(client, endpoint)
    try:
        # stream=True so the body is never read, only released
        response = await client.send(request, stream=True)
    except httpx.HTTPError as e:
        raise PokeError(endpoint, f"{endpoint.method} request error: {str(e) or type(e).__name__}") from e

    try:
        status = response.status_code
    finally:
        await response.aclose()

    if status != httpx.codes.OK:
        raise PokeError(endpoint, f"bad status {status}", status_code=status)
    return status


async def poke(client: httpx.AsyncClient, endpoint: Endpoint) -> PokeResult:
    """Hit one endpoint and classify the outcome.

    Never raises: every failure ends up in the returned PokeResult so a
    bad endpoint cannot take its siblings down with it.
    """
    start = time.perf_counter()
    try:
        status = await send(client, endpoint)
    except PokeError as e:
        latency = time.perf_counter() - start
        logger.error("poke failed endpoint=%s error=%s", endpoint.label, e)
        return PokeResult(endpoint, ok=False, status_code=e.status_code, error=str(e), latency=latency)
    except Exception as e:
        latency = time.perf_counter() - start
        logger.exception("poke crashed endpoint=%s", endpoint.label)
        return PokeResult(endpoint, ok=False, error=f"{type(e).__name__}: {e}", latency=latency)

    latency = time.perf_counter() - start
    logger.info("poke succeeded endpoint=%s status=%d latency=%.3fs", endpoint.label, status, latency)
    return PokeResult(endpoint, ok=True, status_code=status, latency=latency)


async def fan_out(client: httpx.AsyncClient, endpoints: Tuple[Endpoint, ...]) -> List[PokeResult]:
    # One task per endpoint, no cap. gather keeps input order, not arrival order.
    tasks = [poke(client, ep) for ep in endpoints]
    return await asyncio.gather(*tasks)


async def dispatch(
    endpoints: Iterable[Endpoint],
    *,
    timeout: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> DispatchReport:
    """Poke every endpoint once, concurrently, and wait for all of them.

    A caller-supplied client stays open afterwards; otherwise one is
    created for the run and closed before returning.
    """
    endpoints = tuple(endpoints)
    logger.info("poking endpoints count=%d", len(endpoints))

    start = time.perf_counter()
    if client is None:
        async with httpx.AsyncClient(limits=UNBOUNDED, **client_options(timeout)) as own_client:
            results = await fan_out(own_client, endpoints)
    else:
        results = await fan_out(client, endpoints)
    elapsed = time.perf_counter() - start

    report = DispatchReport(results=tuple(results), elapsed=elapsed)
    logger.info("time elapsed time=%.3fs", report.elapsed)
    logger.info(
        "poked endpoints count=%d succeeded=%d failed=%d",
        report.total,
        report.succeeded,
        report.failed,
    )
    return report


def run_dispatch(endpoints: Iterable[Endpoint], timeout: Optional[float] = None) -> DispatchReport:
    return asyncio.run(dispatch(endpoints, timeout=timeout))
