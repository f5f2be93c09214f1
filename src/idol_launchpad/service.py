"""
Launchpad service: one object wiring the pipelines, read adapters, event
aggregator and admin calls to a single ledger client and configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from idol_launchpad import __version__
from idol_launchpad.admin import AdminCallResult, AdminOperations
from idol_launchpad.compiler import MoveCompiler
from idol_launchpad.config import LaunchpadConfig
from idol_launchpad.constants import DEFAULT_EVENT_LIMIT
from idol_launchpad.errors import LaunchError, LaunchpadError
from idol_launchpad.events import EventAggregator, EventQueryResult, VolumeAggregate
from idol_launchpad.journal import LaunchJournal
from idol_launchpad.ledger import LedgerClient, SuiLedgerClient, SuiRpcClient
from idol_launchpad.publish import PublishedToken, PublishPipeline
from idol_launchpad.queries import CurveQueries, MarketCap
from idol_launchpad.register import RegisteredAsset, RegistrationPipeline
from idol_launchpad.template import LaunchParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaunchResult:
    token: PublishedToken
    asset: RegisteredAsset

    def to_dict(self) -> dict[str, Any]:
        out = self.token.to_dict()
        out["publishDigest"] = out.pop("digest")
        out.update(self.asset.to_dict())
        return out


class LaunchpadService:
    def __init__(
        self,
        config: LaunchpadConfig,
        ledger: LedgerClient,
        compiler: MoveCompiler,
        *,
        journal: LaunchJournal | None = None,
        rpc: SuiRpcClient | None = None,
    ) -> None:
        self.config = config
        self.ledger = ledger
        self.journal = journal
        self.rpc = rpc
        self.publisher = PublishPipeline(ledger, compiler, gas_budget=config.gas_budget)
        self.registrar = RegistrationPipeline(ledger, config)
        self.queries = CurveQueries(ledger, config)
        self.events = EventAggregator(ledger, config)
        self.admin = AdminOperations(ledger, config)

    @classmethod
    def from_config(cls, config: LaunchpadConfig) -> LaunchpadService:
        ledger = SuiLedgerClient.from_config(config)
        compiler = MoveCompiler(ledger.cli, timeout_s=config.compile_timeout_s)
        journal = None
        if config.journal_dir is not None:
            journal = LaunchJournal(base_dir=config.journal_dir)
            journal.write_run_metadata(
                {
                    "version": __version__,
                    "network": config.network,
                    "rpc_url": config.rpc_url,
                    "factory_package_id": config.factory_package_id,
                    "pools_package_id": config.pools_package_id,
                }
            )
        return cls(config, ledger, compiler, journal=journal, rpc=ledger.rpc)

    async def aclose(self) -> None:
        close = getattr(self.ledger, "aclose", None)
        if close is not None:
            await close()

    def _record(self, name: str, **fields: object) -> None:
        if self.journal is not None:
            self.journal.event(name, **fields)

    def with_default_image(self, params: LaunchParameters) -> LaunchParameters:
        if params.image_url:
            return params
        return replace(params, image_url=self.config.default_image_url)

    async def publish(self, params: LaunchParameters) -> PublishedToken:
        return await self.publisher.publish(self.with_default_image(params))

    async def register(self, token: PublishedToken, params: LaunchParameters) -> RegisteredAsset:
        return await self.registrar.register(token, self.with_default_image(params))

    async def launch(self, params: LaunchParameters, *, idol_id: Any = None) -> LaunchResult:
        """
        Publish a coin package, then register it with the factory.

        A registration failure raises LaunchError carrying the published token,
        which can be passed back to `register` without publishing again.
        """
        params = self.with_default_image(params)
        logger.info(f"Launching idol {idol_id}: ticker={params.ticker}, name={params.name}")
        self._record("publish_started", idol_id=idol_id, ticker=params.ticker)

        logger.info(f"STEP 1: Publishing token package for idol {idol_id}...")
        try:
            token = await self.publisher.publish(params)
        except LaunchpadError as e:
            self._record("launch_failed", idol_id=idol_id, stage="publish", error=e.to_dict())
            raise
        self._record("package_published", idol_id=idol_id, token=token.to_dict())
        logger.info(f"Token package published for idol {idol_id}. Package ID: {token.package_id}")

        logger.info(f"STEP 2: Registering asset with IAO protocol for idol {idol_id}...")
        try:
            asset = await self.registrar.register(token, params)
        except Exception as e:
            cause = e if isinstance(e, LaunchpadError) else LaunchpadError(f"{type(e).__name__}: {e}")
            logger.error(f"Registration failed for idol {idol_id}; package {token.package_id} is orphaned: {cause}")
            err = LaunchError(cause, token.to_dict())
            self._record("launch_failed", idol_id=idol_id, stage="register", error=err.to_dict())
            if self.journal is not None:
                self.journal.launch_row({"idol_id": idol_id, "ok": False, "token": token.to_dict()})
            raise err from e

        result = LaunchResult(token=token, asset=asset)
        self._record("asset_registered", idol_id=idol_id, asset=asset.to_dict())
        if self.journal is not None:
            self.journal.launch_row({"idol_id": idol_id, "ok": True, **result.to_dict()})
        logger.info(f"Asset registered for idol {idol_id}. Pool ID: {asset.pool_id}")
        return result

    async def marginal_price(self, coin_type: str) -> int:
        return await self.queries.marginal_price(coin_type)

    async def current_supply(self, coin_type: str) -> int:
        return await self.queries.current_supply(coin_type)

    async def liquidity_reserve(self, coin_type: str) -> int:
        return await self.queries.liquidity_reserve(coin_type)

    async def curve_state(self, coin_type: str) -> str:
        return await self.queries.curve_state(coin_type)

    async def market_cap(self, coin_type: str) -> MarketCap:
        return await self.queries.market_cap(coin_type)

    async def market_caps(self, coin_types: list[str]) -> list[dict[str, Any]]:
        return await self.queries.market_caps(coin_types)

    async def trade_events(self, curve_id: str | None = None, limit: int = DEFAULT_EVENT_LIMIT) -> EventQueryResult:
        return await self.events.fetch_events(curve_id, limit)

    async def volume(self, curve_id: str | None = None, limit: int = DEFAULT_EVENT_LIMIT) -> VolumeAggregate:
        return await self.events.volume(curve_id, limit)

    async def holders(self, curve_id: str | None = None, limit: int = DEFAULT_EVENT_LIMIT) -> dict[str, int]:
        return await self.events.holders(curve_id, limit)

    async def graduate(
        self, coin_type: str, bonding_curve_id: str, pool_id: str, quote_coin_type: str | None = None
    ) -> AdminCallResult:
        return await self.admin.graduate(coin_type, bonding_curve_id, pool_id, quote_coin_type)

    async def check_and_update_level(self, coin_type: str) -> AdminCallResult:
        return await self.admin.check_and_update_level(coin_type)

    async def health(self) -> dict[str, Any]:
        status: dict[str, Any] = {
            "status": "ok",
            "message": "Idol launchpad service is running",
            "network": self.config.network,
        }
        if self.rpc is not None:
            rpc_status: dict[str, Any] = {"url": self.rpc.rpc_url, "reachable": False, "error": None}
            try:
                rpc_status["checkpoint"] = await self.rpc.latest_checkpoint()
                rpc_status["reachable"] = True
            except LaunchpadError as e:
                rpc_status["error"] = e.message
            status["rpc"] = rpc_status
        return status
