"""
Opportunity delivery.

OpportunitySink is what the orchestrator hands reported opportunities to.
NotificationService logs every alert and forwards it to Telegram when a
bot is configured. Delivery is best effort: failures are logged, never
raised back into a scanning cycle.
"""

from abc import ABC, abstractmethod
from html import escape
from typing import Optional

from arbscout.core.logging import LoggerMixin
from arbscout.core.timeutil import format_epoch
from arbscout.domain.models import ArbitrageOpportunity, OpportunityKind, VolumeSample
from arbscout.services.telegram import TelegramService

URGENCY_EMOJI = {
    "high": "\U0001F6A8",
    "medium": "⚠️",
    "low": "\U0001F4E2",
}


def urgency(net_profit_pct: float) -> str:
    if net_profit_pct >= 5:
        return "high"
    if net_profit_pct >= 3:
        return "medium"
    return "low"


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _price(value: float) -> str:
    return f"{value:.8g}"


def format_opportunity(opp: ArbitrageOpportunity, tz_name: str = "UTC") -> str:
    """HTML message for one opportunity, fee breakdown included."""
    level = urgency(opp.net_profit_pct)
    symbol = escape(opp.symbol)

    if opp.kind == OpportunityKind.CYCLIC:
        venue = escape(opp.legs[0].venue) if opp.legs else "?"
        header = f"{URGENCY_EMOJI[level]} <b>Triangular arbitrage: {symbol}</b> on {venue}"
        lines = [header, "", f"Path: {escape(' → '.join(opp.path or []))}"]
        for leg in opp.legs:
            lines.append(f"  {escape(leg.pair)} @ {_price(leg.price)}")
    else:
        header = f"{URGENCY_EMOJI[level]} <b>Arbitrage: {symbol}</b>"
        lines = [
            header,
            "",
            f"Buy:  {escape(opp.buy_venue)} @ {_price(opp.buy_price)}",
            f"Sell: {escape(opp.sell_venue)} @ {_price(opp.sell_price)}",
            f"Spread: {opp.gross_difference_pct:.2f}%",
        ]

    fees = opp.fees
    lines.extend([
        "",
        f"Trade amount: {_money(opp.trade_amount)}",
        f"Gross profit: {_money(opp.gross_profit_amount)}",
        f"Fees: {_money(fees.total)} "
        f"(trading {_money(fees.trading_fees)}, transfer {_money(fees.transfer_fee)}, "
        f"network {_money(fees.network_fee)})",
        f"<b>Net profit: {_money(opp.net_profit_amount)} ({opp.net_profit_pct:.2f}%)</b>",
        "",
        f"Urgency: {level.upper()}",
        f"Time: {format_epoch(opp.observed_at, 'display', tz_name)}",
    ])
    return "\n".join(lines)


def format_volume_alert(sample: VolumeSample, tz_name: str = "UTC") -> str:
    venues = ", ".join(
        f"{escape(v)} {_money(vol)}"
        for v, vol in sorted(sample.venue_volumes.items(), key=lambda item: -item[1])
    )
    return "\n".join([
        f"\U0001F4C8 <b>Volume spike: {escape(sample.symbol)}</b>",
        "",
        f"Current volume: {_money(sample.current_volume)}",
        f"Rolling average: {_money(sample.rolling_average_volume)}",
        f"Spike: {sample.spike_ratio:.2f}x",
        f"Venues: {venues or 'n/a'}",
        f"Time: {format_epoch(sample.observed_at, 'display', tz_name)}",
    ])


class OpportunitySink(ABC):
    """Receiver for reported opportunities and volume alerts."""

    @abstractmethod
    async def deliver(self, opportunity: ArbitrageOpportunity) -> None:
        ...

    @abstractmethod
    async def deliver_volume_alert(self, sample: VolumeSample) -> None:
        ...


class NotificationService(OpportunitySink, LoggerMixin):
    """Logs every alert and forwards it to Telegram when configured."""

    def __init__(self, telegram: Optional[TelegramService] = None, tz_name: str = "UTC"):
        self.telegram = telegram
        self.tz_name = tz_name
        self.delivered = 0
        self.failed = 0

    @property
    def telegram_active(self) -> bool:
        return self.telegram is not None and self.telegram.enabled

    async def _send(self, text: str) -> None:
        if not self.telegram_active:
            return
        try:
            sent = await self.telegram.send_message_async(text)
        except Exception as e:
            self.logger.warning(f"Telegram delivery raised: {e}")
            sent = False
        if sent:
            self.delivered += 1
        else:
            self.failed += 1

    async def deliver(self, opportunity: ArbitrageOpportunity) -> None:
        self.logger.info(
            f"Opportunity [{urgency(opportunity.net_profit_pct)}] {opportunity.kind.value} "
            f"{opportunity.symbol}: net {opportunity.net_profit_amount:.2f} "
            f"({opportunity.net_profit_pct:.2f}%)"
        )
        await self._send(format_opportunity(opportunity, self.tz_name))

    async def deliver_volume_alert(self, sample: VolumeSample) -> None:
        self.logger.info(f"Volume alert {sample.symbol}: {sample.spike_ratio:.2f}x")
        await self._send(format_volume_alert(sample, self.tz_name))
