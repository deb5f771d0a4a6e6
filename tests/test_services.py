"""Tests for notification and scheduling services."""

from unittest.mock import AsyncMock, Mock

import pytest
from telegram.error import TelegramError

from arbscout.arb.pairwise import evaluate_pair
from arbscout.core.config import load_settings
from arbscout.domain.models import (
    ArbitrageOpportunity,
    FeeBreakdown,
    OpportunityKind,
    OpportunityLeg,
    Quote,
    VolumeSample,
)
from arbscout.services.notifier import (
    NotificationService,
    format_opportunity,
    format_volume_alert,
    urgency,
)
from arbscout.services.scheduler import SchedulerService
from arbscout.services.telegram import TelegramService


def pairwise_opportunity():
    buy = Quote(venue="binance", symbol="ABC/USDT", price=100.0, volume=1, observed_at=0.0)
    sell = Quote(venue="okx", symbol="ABC/USDT", price=105.0, volume=1, observed_at=0.0)
    return evaluate_pair("ABC", buy, sell, 100.0, 0.001, 0.001, observed_at=0.0)


def cyclic_opportunity():
    return ArbitrageOpportunity(
        symbol="SYM",
        kind=OpportunityKind.CYCLIC,
        legs=[
            OpportunityLeg("binance", 10.0, "SYM/USDT"),
            OpportunityLeg("binance", 0.011, "SYM/BTC"),
            OpportunityLeg("binance", 1000.0, "BTC/USDT"),
        ],
        gross_difference_pct=10.0,
        gross_profit_amount=10.0,
        fees=FeeBreakdown(entry_fee=0.1, exit_fee=0.22),
        net_profit_amount=9.67,
        net_profit_pct=9.67,
        trade_amount=100.0,
        observed_at=0.0,
        path=["USDT", "SYM", "BTC", "USDT"],
    )


class TestFormatting:
    """Tests for alert formatting."""

    def test_urgency_levels(self):
        assert urgency(5.0) == "high"
        assert urgency(4.99) == "medium"
        assert urgency(3.0) == "medium"
        assert urgency(2.0) == "low"

    def test_pairwise_message(self):
        text = format_opportunity(pairwise_opportunity())
        assert "Buy:  binance @ 100" in text
        assert "Sell: okx @ 105" in text
        assert "Fees: $0.20" in text
        assert "Net profit: $4.80 (4.80%)" in text
        assert "Urgency: MEDIUM" in text

    def test_cyclic_message(self):
        text = format_opportunity(cyclic_opportunity())
        assert "Triangular arbitrage: SYM" in text
        assert "USDT → SYM → BTC → USDT" in text
        assert "SYM/BTC @ 0.011" in text
        assert "Urgency: HIGH" in text

    def test_volume_alert(self):
        sample = VolumeSample("PEPE", 350_000, 100_000, 3.5, 0.0, {"binance": 300_000, "okx": 50_000})
        text = format_volume_alert(sample)
        assert "Volume spike: PEPE" in text
        assert "3.50x" in text
        assert text.index("binance") < text.index("okx")


class TestNotificationService:
    """Tests for NotificationService."""

    @pytest.mark.asyncio
    async def test_log_only_without_telegram(self):
        service = NotificationService()
        await service.deliver(pairwise_opportunity())
        assert service.delivered == 0
        assert service.failed == 0

    @pytest.mark.asyncio
    async def test_forwards_to_telegram(self):
        telegram = Mock(enabled=True)
        telegram.send_message_async = AsyncMock(return_value=True)
        service = NotificationService(telegram)

        await service.deliver(pairwise_opportunity())
        await service.deliver_volume_alert(VolumeSample("X", 1, 1, 1.0, 0.0))

        assert telegram.send_message_async.await_count == 2
        assert service.delivered == 2

    @pytest.mark.asyncio
    async def test_telegram_failure_is_counted_not_raised(self):
        telegram = Mock(enabled=True)
        telegram.send_message_async = AsyncMock(side_effect=RuntimeError("boom"))
        service = NotificationService(telegram)

        await service.deliver(pairwise_opportunity())

        assert service.failed == 1


class TestTelegramService:
    """Tests for TelegramService."""

    def test_disabled_without_credentials(self):
        settings = load_settings(telegram_enabled=True)
        assert TelegramService(settings=settings).enabled is False

    @pytest.mark.asyncio
    async def test_send_message(self):
        settings = load_settings(telegram_enabled=True, telegram_bot_token="token", telegram_chat_id="42")
        bot = Mock()
        bot.send_message = AsyncMock()
        service = TelegramService(settings=settings, bot=bot)

        assert await service.send_message_async("<b>hi</b>") is True
        kwargs = bot.send_message.await_args.kwargs
        assert kwargs["chat_id"] == "42"
        assert kwargs["parse_mode"] == "HTML"

    @pytest.mark.asyncio
    async def test_send_failure(self):
        settings = load_settings(telegram_enabled=True, telegram_bot_token="token", telegram_chat_id="42")
        bot = Mock()
        bot.send_message = AsyncMock(side_effect=TelegramError("bad request"))
        service = TelegramService(settings=settings, bot=bot)

        assert await service.send_message_async("hi") is False


class TestSchedulerService:
    """Tests for SchedulerService."""

    @pytest.fixture
    def scheduler(self):
        return SchedulerService(load_settings())

    def test_add_interval_job(self, scheduler):
        async def job():
            pass

        scheduler.add_interval_job("evaluation", job, 30)

        job_obj = scheduler.scheduler.get_job("evaluation")
        assert job_obj.max_instances == 1
        assert job_obj.coalesce is True
        assert job_obj.trigger.interval.total_seconds() == 30
        assert [j["name"] for j in scheduler.get_jobs()] == ["evaluation"]

    def test_rejects_non_positive_interval(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.add_interval_job("bad", lambda: None, 0)

    def test_remove_job(self, scheduler):
        scheduler.add_interval_job("sweep", lambda: None, 60)
        assert scheduler.remove_job("sweep") is True
        assert scheduler.remove_job("sweep") is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, scheduler):
        scheduler.add_interval_job("sweep", lambda: None, 60)
        scheduler.start()
        assert scheduler.running
        scheduler.stop()
        assert not scheduler.running
