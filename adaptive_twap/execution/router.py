"""
Order Router

Submits venue-formatted limit orders through the Hyperliquid Exchange
client and normalizes the response. The router never resubmits: a failed
submission is reported back to the executor as a failed OrderResult.
"""

import hashlib
import logging
from typing import Any, Optional

from eth_account import Account
from hyperliquid.exchange import Exchange
from hyperliquid.utils import signing
from hyperliquid.utils.types import Cloid

from adaptive_twap.core.config import Config
from adaptive_twap.core.exceptions import CredentialError
from adaptive_twap.execution.orders import OrderRequest, OrderResult

logger = logging.getLogger(__name__)


def make_cloid(run_id: str, slice_index: int) -> str:
    """Deterministic client order id for one slice of one run."""
    base = f"{run_id}|{slice_index}"
    return "0x" + hashlib.sha256(base.encode()).hexdigest()[:32]


def parse_order_response(resp: Any) -> OrderResult:
    """
    Normalize an Exchange.order response.

    {"status": "ok", "response": {"type": "order", "data": {"statuses": [
        {"resting": {"oid": 1}} | {"filled": {"totalSz", "avgPx", "oid"}} | {"error": "..."}
    ]}}}
    """
    if not isinstance(resp, dict):
        return OrderResult(success=False, error=f"Unexpected response: {resp!r}")
    if resp.get("status") != "ok":
        return OrderResult(success=False, error=str(resp.get("response") or resp))

    data = (resp.get("response") or {}).get("data") or {}
    statuses = data.get("statuses") or []
    if not statuses:
        return OrderResult(success=True, order_id="unknown")

    st = statuses[0]
    if not isinstance(st, dict):
        return OrderResult(success=True, order_id="unknown")
    if "error" in st:
        return OrderResult(success=False, error=str(st["error"]))
    if "filled" in st:
        filled = st["filled"] or {}
        try:
            filled_sz = float(filled.get("totalSz")) if filled.get("totalSz") is not None else None
            avg_px = float(filled.get("avgPx")) if filled.get("avgPx") is not None else None
        except (TypeError, ValueError):
            filled_sz, avg_px = None, None
        oid = filled.get("oid")
        return OrderResult(
            success=True,
            order_id=str(oid) if oid is not None else "unknown",
            filled_size=filled_sz,
            avg_price=avg_px,
        )
    if "resting" in st:
        oid = (st["resting"] or {}).get("oid")
        return OrderResult(success=True, order_id=str(oid) if oid is not None else "unknown")
    return OrderResult(success=True, order_id="unknown")


class OrderRouter:
    """
    Order submission through the Hyperliquid Exchange client.

    In dry-run mode orders are validated and logged but not sent; every
    submission is accepted and reported as fully filled at the limit price.
    """

    def __init__(self, config: Config, exchange: Optional[Exchange] = None, dry_run: bool = False):
        """
        Initialize order router.

        Args:
            config: Engine configuration
            exchange: Hyperliquid Exchange instance (None only for dry runs)
            dry_run: Log orders instead of sending them
        """
        self.config = config
        self.exchange = exchange
        self.dry_run = dry_run
        self.api_error_count = 0
        self._dry_run_seq = 0

    @classmethod
    def from_config(cls, config: Config, dry_run: bool = False) -> "OrderRouter":
        """
        Build the wallet and Exchange client from configured credentials.

        Raises:
            CredentialError: missing or malformed private key
        """
        if dry_run and not config.hyperliquid.secret_key:
            return cls(config, None, dry_run=True)
        if not config.hyperliquid.secret_key:
            raise CredentialError("HL_SECRET_KEY is not set")
        try:
            wallet = Account.from_key(config.hyperliquid.secret_key)
        except Exception as e:
            raise CredentialError(f"Invalid private key: {e}") from e

        account_address = config.hyperliquid.address or None
        exchange = Exchange(wallet, config.hyperliquid.api_url, account_address=account_address)
        logger.info("[Router] Exchange ready for %s on %s", account_address or wallet.address, config.hyperliquid.network)
        return cls(config, exchange, dry_run=dry_run)

    def ensure_ready(self):
        """
        Raises:
            CredentialError: no signing exchange client outside dry-run
        """
        if not self.dry_run and self.exchange is None:
            raise CredentialError("No Exchange client configured (missing credentials)")

    def submit_order(self, request: OrderRequest) -> OrderResult:
        """
        Submit one limit order.

        Args:
            request: Venue-formatted order

        Returns:
            OrderResult (failures are returned, not raised)
        """
        if self.dry_run:
            self._dry_run_seq += 1
            logger.info(
                "[Router] DRY RUN %s %s %s @ %s (%s)",
                "BUY" if request.is_buy else "SELL", request.size, request.coin,
                request.limit_px, request.time_in_force,
            )
            return OrderResult(
                success=True,
                order_id=f"dry-{self._dry_run_seq}",
                filled_size=float(request.size),
                avg_price=float(request.limit_px),
            )

        if self.exchange is None:
            return OrderResult(success=False, error="No Exchange client configured")

        order_type: signing.OrderType = {"limit": {"tif": request.time_in_force}}  # type: ignore[assignment]
        cloid = Cloid.from_str(request.cloid) if request.cloid else None
        try:
            resp = self.exchange.order(
                request.coin,
                request.is_buy,
                float(request.size),
                float(request.limit_px),
                order_type,
                reduce_only=request.reduce_only,
                cloid=cloid,
            )
        except Exception as e:
            self.api_error_count += 1
            logger.warning("[Router] Order placement failed: %s", e)
            return OrderResult(success=False, error=f"Order placement failed: {e}")

        result = parse_order_response(resp)
        if not result.success:
            self.api_error_count += 1
        return result
