import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from idol_launchpad import doctor
from idol_launchpad.config import load_config
from idol_launchpad.constants import DEFAULT_EVENT_LIMIT
from idol_launchpad.errors import LaunchpadError
from idol_launchpad.publish import PublishedToken
from idol_launchpad.service import LaunchpadService, LaunchResult
from idol_launchpad.template import LaunchParameters

logger = logging.getLogger(__name__)


def _print(obj: Any) -> None:
    sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")


def _params(args) -> LaunchParameters:
    return LaunchParameters(
        ticker=args.ticker,
        name=args.name,
        description=args.description,
        decimals=args.decimals,
        image_url=args.image_url or "",
        total_supply=args.total_supply,
        fee_rate_bps=args.fee_rate_bps,
    )


async def _launch(service: LaunchpadService, args) -> Any:
    return (await service.launch(_params(args), idol_id=args.idol_id)).to_dict()


async def _register(service: LaunchpadService, args) -> Any:
    raw = json.loads(args.token_file.read_text(encoding="utf-8"))
    # Accept either a bare token or the error details of a failed launch.
    if isinstance(raw, dict) and "publishedToken" in raw:
        raw = raw["publishedToken"]
    token = PublishedToken.from_dict(raw)
    asset = await service.register(token, _params(args))
    return LaunchResult(token=token, asset=asset).to_dict()


async def _price(service: LaunchpadService, args) -> Any:
    return {"coinType": args.coin_type, "rawReturn": str(await service.marginal_price(args.coin_type))}


async def _supply(service: LaunchpadService, args) -> Any:
    return {"coinType": args.coin_type, "rawReturn": str(await service.current_supply(args.coin_type))}


async def _reserve(service: LaunchpadService, args) -> Any:
    return {"coinType": args.coin_type, "rawReturn": str(await service.liquidity_reserve(args.coin_type))}


async def _state(service: LaunchpadService, args) -> Any:
    return {"coinType": args.coin_type, "state": await service.curve_state(args.coin_type)}


async def _market_caps(service: LaunchpadService, args) -> Any:
    return await service.market_caps(args.coin_types)


async def _volume(service: LaunchpadService, args) -> Any:
    return (await service.volume(args.curve_id, args.limit)).to_dict()


async def _holders(service: LaunchpadService, args) -> Any:
    return {k: str(v) for k, v in (await service.holders(args.curve_id, args.limit)).items()}


async def _graduate(service: LaunchpadService, args) -> Any:
    result = await service.graduate(args.coin_type, args.curve_id, args.pool_id, args.quote_coin_type)
    return result.to_dict()


async def _run(handler: Callable[[LaunchpadService, Any], Awaitable[Any]], args) -> Any:
    service = LaunchpadService.from_config(load_config(args.env_file))
    try:
        return await handler(service, args)
    finally:
        await service.aclose()


def _add_launch_params(p: argparse.ArgumentParser) -> None:
    p.add_argument("--ticker", required=True)
    p.add_argument("--name", required=True)
    p.add_argument("--description", default="")
    p.add_argument("--decimals", type=int, default=9)
    p.add_argument("--image-url", default=None, help="Defaults to DEFAULT_IMAGE_URL")
    p.add_argument("--total-supply", type=int, default=0)
    p.add_argument("--fee-rate-bps", type=int, default=0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Idol launchpad: launch and inspect idol coins on Sui")
    parser.add_argument("--env-file", type=Path, default=Path(".env"))
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_serve = subparsers.add_parser("serve", help="Run the HTTP service")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=None)

    p_launch = subparsers.add_parser("launch", help="Publish a coin package and register it with the factory")
    p_launch.add_argument("--idol-id", default=None)
    _add_launch_params(p_launch)
    p_launch.set_defaults(handler=_launch)

    p_register = subparsers.add_parser("register", help="Register an already-published coin")
    p_register.add_argument("--token-file", type=Path, required=True, help="JSON of the published token")
    _add_launch_params(p_register)
    p_register.set_defaults(handler=_register)

    for name, handler, help_text in (
        ("price", _price, "Marginal price of a coin's curve (raw u64)"),
        ("supply", _supply, "Current supply on a coin's curve (raw u64)"),
        ("reserve", _reserve, "Quote-coin liquidity reserve of a coin's curve (raw u64)"),
        ("state", _state, "Lifecycle state of a coin's curve"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("coin_type")
        p.set_defaults(handler=handler)

    p_caps = subparsers.add_parser("market-caps", help="Market cap for several coins")
    p_caps.add_argument("coin_types", nargs="+")
    p_caps.set_defaults(handler=_market_caps)

    for name, handler in (("volume", _volume), ("holders", _holders)):
        p = subparsers.add_parser(name, help=f"Trade {name} over recent events")
        p.add_argument("--curve-id", default=None)
        p.add_argument("--limit", type=int, default=DEFAULT_EVENT_LIMIT)
        p.set_defaults(handler=handler)

    p_grad = subparsers.add_parser("graduate", help="Graduate a curve to its DEX pool (admin)")
    p_grad.add_argument("coin_type")
    p_grad.add_argument("--curve-id", required=True)
    p_grad.add_argument("--pool-id", required=True)
    p_grad.add_argument("--quote-coin-type", default=None)
    p_grad.set_defaults(handler=_graduate)

    p_doctor = subparsers.add_parser("doctor", help="Validate the local environment")
    p_doctor.add_argument("--skip-rpc", action="store_true")

    return parser


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    args = build_parser().parse_args(argv)

    if args.command == "doctor":
        sys.exit(doctor.run(args.env_file, skip_rpc=args.skip_rpc))

    if args.command == "serve":
        from idol_launchpad.server import serve

        config = load_config(args.env_file)
        serve(LaunchpadService.from_config(config), host=args.host, port=args.port or config.port)
        return

    try:
        result = asyncio.run(_run(args.handler, args))
    except LaunchpadError as e:
        logger.error(e.message)
        _print({"error": e.message, "kind": e.kind, "details": e.data})
        sys.exit(1)
    _print(result)


if __name__ == "__main__":
    main()
