"""
Thin HTTP surface over `LaunchpadService`.

Handlers only parse input, call the service and serialize the result. Core
failures become JSON `{"error", "kind", "details"}`: 400 for invalid client
input, 500 for everything else.
"""

from __future__ import annotations

import argparse
import contextlib
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
from typing import Any

import uvicorn
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from idol_launchpad.config import load_config
from idol_launchpad.constants import DEFAULT_EVENT_LIMIT
from idol_launchpad.errors import InvalidRequestError, LaunchError, LaunchpadError
from idol_launchpad.events import calculate_holders, calculate_volume
from idol_launchpad.publish import PublishedToken
from idol_launchpad.service import LaunchpadService, LaunchResult
from idol_launchpad.template import LaunchParameters

logger = logging.getLogger(__name__)

# Prometheus metrics
HTTP_REQUESTS = Counter(
    "idol_launchpad_http_requests_total",
    "HTTP requests by endpoint and status",
    ["method", "endpoint", "status_code"],
)
HTTP_REQUEST_DURATION = Histogram(
    "idol_launchpad_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0, 300.0),
)
LAUNCHES = Counter(
    "idol_launchpad_launches_total",
    "Idol launches by outcome",
    ["result"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request count, duration and status code per endpoint."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        endpoint = request.url.path
        method = request.method
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception:
            HTTP_REQUESTS.labels(method=method, endpoint=endpoint, status_code=500).inc()
            raise
        else:
            HTTP_REQUESTS.labels(method=method, endpoint=endpoint, status_code=response.status_code).inc()
            return response
        finally:
            HTTP_REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(time.time() - start_time)


def error_response(err: LaunchpadError) -> JSONResponse:
    status_code = 400 if isinstance(err, InvalidRequestError) else 500
    return JSONResponse({"error": err.message, "kind": err.kind, "details": err.data}, status_code=status_code)


# ---------------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------------


def _int_field(raw: dict[str, Any], key: str, default: int | None = None) -> int:
    val = raw.get(key, default)
    if val is None:
        raise InvalidRequestError(f"createParams.{key}", "missing")
    if isinstance(val, bool):
        raise InvalidRequestError(f"createParams.{key}", f"must be an integer, got {val!r}")
    try:
        return int(val)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"createParams.{key}", f"must be an integer, got {val!r}")


def _str_field(raw: dict[str, Any], key: str, *, required: bool = True) -> str:
    val = raw.get(key)
    if val is None or val == "":
        if required:
            raise InvalidRequestError(f"createParams.{key}", "missing")
        return ""
    if not isinstance(val, str):
        raise InvalidRequestError(f"createParams.{key}", "must be a string")
    return val


def parse_launch_parameters(raw: Any) -> LaunchParameters:
    if not isinstance(raw, dict):
        raise InvalidRequestError("createParams", "must be a JSON object")
    return LaunchParameters(
        ticker=_str_field(raw, "ticker"),
        name=_str_field(raw, "name"),
        description=_str_field(raw, "description", required=False),
        decimals=_int_field(raw, "decimals"),
        image_url=_str_field(raw, "imageUrl", required=False),
        total_supply=_int_field(raw, "totalSupply", 0),
        fee_rate_bps=_int_field(raw, "feeRateBps", 0),
    )


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise InvalidRequestError("body", "invalid JSON")
    if not isinstance(body, dict):
        raise InvalidRequestError("body", "must be a JSON object")
    return body


def _query_coin_type(request: Request) -> str:
    coin_type = request.query_params.get("coinType")
    if not coin_type:
        raise InvalidRequestError("coinType", "missing query parameter")
    return coin_type


def _query_limit(request: Request) -> int:
    raw = request.query_params.get("limit")
    if raw is None:
        return DEFAULT_EVENT_LIMIT
    try:
        limit = int(raw)
    except ValueError:
        raise InvalidRequestError("limit", f"must be an integer, got {raw!r}")
    if limit < 1:
        raise InvalidRequestError("limit", "must be positive")
    return limit


def _body_str(body: dict[str, Any], key: str) -> str:
    val = body.get(key)
    if not isinstance(val, str) or not val:
        raise InvalidRequestError(key, "missing")
    return val


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

Handler = Callable[[Request], Awaitable[Response]]


def build_app(service: LaunchpadService) -> Starlette:
    def endpoint(fn: Callable[[Request], Awaitable[Any]]) -> Handler:
        async def handle(request: Request) -> Response:
            try:
                result = await fn(request)
            except LaunchpadError as e:
                if e.kind != "invalid_request":
                    logger.error(f"{request.method} {request.url.path} failed: {e.kind}: {e.message}")
                return error_response(e)
            return result if isinstance(result, Response) else JSONResponse(result)

        return handle

    async def health(request: Request) -> dict[str, Any]:
        return await service.health()

    async def launch_idol(request: Request) -> dict[str, Any]:
        body = await _json_body(request)
        idol_id = body.get("idolId")
        if idol_id is None or idol_id == "" or "createParams" not in body:
            raise InvalidRequestError("body", "Missing idolId or createParams in request body.")
        params = parse_launch_parameters(body["createParams"])
        try:
            result = await service.launch(params, idol_id=idol_id)
        except LaunchError:
            LAUNCHES.labels(result="registration_failed").inc()
            raise
        except LaunchpadError:
            LAUNCHES.labels(result="publish_failed").inc()
            raise
        LAUNCHES.labels(result="ok").inc()
        return result.to_dict()

    async def register_asset(request: Request) -> dict[str, Any]:
        body = await _json_body(request)
        token = PublishedToken.from_dict(body.get("token"))
        params = parse_launch_parameters(body.get("createParams"))
        asset = await service.register(token, params)
        return LaunchResult(token=token, asset=asset).to_dict()

    async def marginal_price(request: Request) -> dict[str, Any]:
        coin_type = _query_coin_type(request)
        return {"coinType": coin_type, "rawReturn": str(await service.marginal_price(coin_type))}

    async def current_supply(request: Request) -> dict[str, Any]:
        coin_type = _query_coin_type(request)
        return {"coinType": coin_type, "rawReturn": str(await service.current_supply(coin_type))}

    async def liquidity_reserve(request: Request) -> dict[str, Any]:
        coin_type = _query_coin_type(request)
        return {"coinType": coin_type, "rawReturn": str(await service.liquidity_reserve(coin_type))}

    async def curve_state(request: Request) -> dict[str, Any]:
        coin_type = _query_coin_type(request)
        return {"coinType": coin_type, "state": await service.curve_state(coin_type)}

    async def market_caps(request: Request) -> dict[str, Any]:
        body = await _json_body(request)
        coin_types = body.get("coinTypes")
        if not isinstance(coin_types, list) or not all(isinstance(c, str) for c in coin_types):
            raise InvalidRequestError("coinTypes", "must be a list of strings")
        return {"results": await service.market_caps(coin_types)}

    async def volume(request: Request) -> dict[str, Any]:
        curve_id = request.query_params.get("curveId") or None
        limit = _query_limit(request)
        result = await service.trade_events(curve_id, limit)
        aggregate = calculate_volume(result.events)
        return {"curveId": curve_id, "ok": result.ok, "error": result.error, **aggregate.to_dict()}

    async def holders(request: Request) -> dict[str, Any]:
        curve_id = request.query_params.get("curveId") or None
        limit = _query_limit(request)
        result = await service.trade_events(curve_id, limit)
        balances = calculate_holders(result.events)
        return {
            "curveId": curve_id,
            "ok": result.ok,
            "error": result.error,
            "holders": {trader: str(balance) for trader, balance in balances.items()},
            "holderCount": len(balances),
        }

    async def graduate(request: Request) -> dict[str, Any]:
        body = await _json_body(request)
        quote = body.get("quoteCoinType")
        result = await service.graduate(
            _body_str(body, "coinType"),
            _body_str(body, "bondingCurveId"),
            _body_str(body, "poolId"),
            quote if isinstance(quote, str) and quote else None,
        )
        return result.to_dict()

    async def check_update_level(request: Request) -> dict[str, Any]:
        body = await _json_body(request)
        return (await service.check_and_update_level(_body_str(body, "coinType"))).to_dict()

    async def metrics(request: Request) -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        await service.aclose()

    routes = [
        Route("/health", endpoint(health), methods=["GET"]),
        Route("/launch-idol", endpoint(launch_idol), methods=["POST"]),
        Route("/register-asset", endpoint(register_asset), methods=["POST"]),
        Route("/marginal-price", endpoint(marginal_price), methods=["GET"]),
        Route("/current-supply", endpoint(current_supply), methods=["GET"]),
        Route("/liquidity-reserve", endpoint(liquidity_reserve), methods=["GET"]),
        Route("/curve-state", endpoint(curve_state), methods=["GET"]),
        Route("/market-caps", endpoint(market_caps), methods=["POST"]),
        Route("/volume", endpoint(volume), methods=["GET"]),
        Route("/holders", endpoint(holders), methods=["GET"]),
        Route("/graduate", endpoint(graduate), methods=["POST"]),
        Route("/check-update-level", endpoint(check_update_level), methods=["POST"]),
        Route("/metrics", metrics, methods=["GET"]),
    ]
    return Starlette(routes=routes, middleware=[Middleware(MetricsMiddleware)], lifespan=lifespan)


def serve(service: LaunchpadService, *, host: str, port: int) -> None:
    app = build_app(service)
    logger.info(f"Idol launchpad listening on {host}:{port} (network={service.config.network})")
    uvicorn.run(app, host=host, port=port)


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    p = argparse.ArgumentParser(description="Idol launchpad HTTP service")
    p.add_argument("--host", type=str, default="0.0.0.0")
    p.add_argument("--port", type=int, default=None, help="Defaults to PORT from the environment, then 3000")
    p.add_argument("--env-file", type=Path, default=Path(".env"))
    args = p.parse_args(argv)

    config = load_config(args.env_file)
    serve(LaunchpadService.from_config(config), host=args.host, port=args.port or config.port)


if __name__ == "__main__":
    main()
