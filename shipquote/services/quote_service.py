from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Set

from ..config import Settings, get_settings
from ..models import ParsedRequest, ProviderResult, ProviderStatus, QuoteRequest, QuoteResponse
from ..parsing.request_parser import parse_request
from ..providers.base import RateProvider
from ..providers.freightos import FreightosProvider
from ..providers.shippo import ShippoProvider
from ..routing.shipment_router import INCOMPLETE, RoutingDecision, ShipmentRouter
from ..utils.logging_security import SecureLogger
from .quote_store import QuoteStore

logger = logging.getLogger(__name__)


class QuoteService:
    """Parses a request, routes it and collects quotes from the providers.

    Provider failures never escape: each provider path is bounded by
    ``provider_timeout`` and degrades to a failed ProviderResult.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        shippo: Optional[RateProvider] = None,
        freightos: Optional[RateProvider] = None,
        store: Optional[QuoteStore] = None,
        router: Optional[ShipmentRouter] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.shippo = shippo or ShippoProvider()
        self.freightos = freightos or FreightosProvider()
        self.store = store if store is not None else QuoteStore(self.settings.quote_db_path)
        self.router = router or ShipmentRouter()
        self._background: Set[asyncio.Task] = set()

    @staticmethod
    def parse(text: str) -> ParsedRequest:
        return parse_request(text)

    @staticmethod
    def missing_info(parsed: ParsedRequest) -> List[str]:
        missing = []
        if not parsed.parcels:
            missing.append("dimensions")
        if not parsed.origin:
            missing.append("origin")
        if not parsed.destination:
            missing.append("destination")
        return missing

    async def _run_provider(self, provider: RateProvider, parsed: ParsedRequest) -> ProviderResult:
        try:
            return await asyncio.wait_for(provider.get_quotes(parsed), timeout=self.settings.provider_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{provider.provider_name} timed out after {self.settings.provider_timeout}s")
            return ProviderResult.failed(provider.provider_name, "timed out")
        except Exception as e:
            logger.exception(f"{provider.provider_name} failed unexpectedly")
            return ProviderResult.failed(provider.provider_name, f"unexpected error: {type(e).__name__}")

    async def _dispatch(
        self, decision: RoutingDecision, parsed: ParsedRequest
    ) -> Dict[str, Optional[ProviderResult]]:
        if decision.use_small_parcel and decision.use_freight:
            shippo_result, freightos_result = await asyncio.gather(
                self._run_provider(self.shippo, parsed),
                self._run_provider(self.freightos, parsed),
            )
            return {"shippo": shippo_result, "freightos": freightos_result}
        if decision.use_small_parcel:
            return {"shippo": await self._run_provider(self.shippo, parsed), "freightos": None}
        return {"shippo": None, "freightos": await self._run_provider(self.freightos, parsed)}

    async def process_request(self, request: QuoteRequest) -> QuoteResponse:
        parsed = self.parse(request.request)

        missing = self.missing_info(parsed)
        if missing:
            logger.info(f"Incomplete request, missing {missing}: '{SecureLogger.redact_pii(request.request)[:200]}'")
            return QuoteResponse(
                success=False,
                error=(
                    f"Missing information: {', '.join(missing)}. Please include package "
                    "dimensions (LxWxH), weight, origin, and destination."
                ),
                quotes=[],
                routing=INCOMPLETE,
                parsed=parsed,
                missingInfo=missing,
            )

        decision = self.router.route(parsed)
        logger.info(f"Routing: {decision.label} ({decision.reasoning})")

        results = await self._dispatch(decision, parsed)
        shippo_quotes = results["shippo"].quotes if results["shippo"] else []
        freightos_quotes = results["freightos"].quotes if results["freightos"] else []
        status: Dict[str, ProviderStatus] = {
            key: result.status for key, result in results.items() if result is not None
        }

        response = QuoteResponse(
            success=True,
            quotes=[*shippo_quotes, *freightos_quotes],
            shippo=shippo_quotes,
            freightos=freightos_quotes,
            routing=decision.label,
            parsed=parsed,
            providerStatus=status,
        )

        self._schedule_save(request, parsed, {"shippo": shippo_quotes, "freightos": freightos_quotes})
        return response

    def _schedule_save(self, request: QuoteRequest, parsed: ParsedRequest, quotes) -> None:
        if not self.store.enabled:
            return
        task = asyncio.create_task(
            self.store.save_async(request.request, parsed, request.email, request.phone, quotes)
        )
        # Keep a reference until done so the task is not garbage-collected
        self._background.add(task)
        task.add_done_callback(self._on_save_done)

    def _on_save_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Saving quote request failed: {task.exception()}")

    async def drain(self) -> None:
        """Wait for pending saves (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
