"""
Services module - Cross-cutting capabilities

Contains:
- Opportunity delivery (log + Telegram)
- Telegram notifications
- Scheduling
"""

from arbscout.services.notifier import NotificationService, OpportunitySink
from arbscout.services.scheduler import SchedulerService
from arbscout.services.telegram import TelegramService, create_telegram_service

__all__ = [
    "NotificationService",
    "OpportunitySink",
    "SchedulerService",
    "TelegramService",
    "create_telegram_service",
]
