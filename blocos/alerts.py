"""Operator alerts for blocks about to gather or start, on Brasília time."""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional, Set, Union
from zoneinfo import ZoneInfo

from .models import BlockAlert, EnrichedBlock

LOGGER = logging.getLogger(__name__)

BRASILIA = ZoneInfo("America/Sao_Paulo")

HIGH = "alta"
MEDIUM = "media"
LOW = "baixa"
_PRIORITY_ORDER = {HIGH: 0, MEDIUM: 1, LOW: 2}

DEFAULT_LEAD_MINUTES = 15

START = "inicio"
CONCENTRATION = "concentracao"


@dataclass(frozen=True, slots=True)
class AlertConfig:
    lead_minutes: int = DEFAULT_LEAD_MINUTES
    high_attendance: int = 50000
    medium_attendance: int = 10000


def brasilia_now() -> datetime:
    return datetime.now(BRASILIA)


def priority_for(attendance: int, config: AlertConfig = AlertConfig()) -> str:
    if attendance >= config.high_attendance:
        return HIGH
    if attendance >= config.medium_attendance:
        return MEDIUM
    return LOW


def _minutes_until(moment: time, now: datetime) -> int:
    target = datetime.combine(now.date(), moment.replace(second=0, microsecond=0), tzinfo=now.tzinfo)
    return (target - now) // timedelta(minutes=1)


def upcoming_alerts(
    blocks: Iterable[EnrichedBlock],
    now: datetime,
    config: AlertConfig = AlertConfig(),
    acknowledged: Iterable[str] = (),
) -> List[BlockAlert]:
    """Alerts for today's blocks whose start or gathering is within the lead time.

    Sorted by priority, then by minutes remaining.
    """

    today = now.date()
    skip = set(acknowledged)
    alerts: List[BlockAlert] = []
    for enriched in blocks:
        block = enriched.block
        if block.date != today:
            continue
        for kind, moment in ((START, block.start_time), (CONCENTRATION, block.concentration_time)):
            if moment is None:
                continue
            minutes = _minutes_until(moment, now)
            if not 0 < minutes <= config.lead_minutes:
                continue
            alert_id = f"{block.id}-{today.isoformat()}-{kind}"
            if alert_id in skip:
                continue
            alerts.append(
                BlockAlert(
                    id=alert_id,
                    block=block,
                    kind=kind,
                    minutes_left=minutes,
                    priority=priority_for(block.attendance, config),
                )
            )

    alerts.sort(key=lambda alert: (_PRIORITY_ORDER[alert.priority], alert.minutes_left))
    return alerts


def popup_id(enriched: EnrichedBlock, day: date) -> str:
    return f"popup-{enriched.id}-{day.isoformat()}"


def starting_now(
    blocks: Iterable[EnrichedBlock],
    now: datetime,
    window_minutes: int = 1,
    shown: Iterable[str] = (),
) -> Optional[EnrichedBlock]:
    """First block whose start time falls in ``[now - window, now]`` not yet shown."""

    seen = set(shown)
    window = timedelta(minutes=window_minutes)
    for enriched in blocks:
        block = enriched.block
        if block.date is None or block.start_time is None:
            continue
        start = datetime.combine(block.date, block.start_time, tzinfo=now.tzinfo)
        if not timedelta(0) <= now - start <= window:
            continue
        if popup_id(enriched, now.date()) in seen:
            continue
        return enriched
    return None


class AlertBook:
    """Acknowledged alerts and shown popups; both reset when the day changes."""

    def __init__(self) -> None:
        self.day: Optional[date] = None
        self.acknowledged: Set[str] = set()
        self.shown: Set[str] = set()

    def roll(self, day: date) -> None:
        if day != self.day:
            self.day = day
            self.acknowledged = set()
            self.shown = set()

    def acknowledge(self, alert_id: str, day: date) -> None:
        self.roll(day)
        self.acknowledged.add(alert_id)

    def acknowledge_all(self, alerts: Iterable[BlockAlert], day: date) -> None:
        self.roll(day)
        self.acknowledged.update(alert.id for alert in alerts)

    def mark_shown(self, enriched: EnrichedBlock, day: date) -> None:
        self.roll(day)
        self.shown.add(popup_id(enriched, day))

    def pending(
        self,
        blocks: Iterable[EnrichedBlock],
        now: datetime,
        config: AlertConfig = AlertConfig(),
    ) -> List[BlockAlert]:
        self.roll(now.date())
        return upcoming_alerts(blocks, now, config, self.acknowledged)


Callback = Callable[[], Union[None, Awaitable[None]]]


class PeriodicTask:
    """Run ``callback`` every ``interval`` seconds until cancelled.

    Must be started from inside a running event loop.
    """

    def __init__(self, interval: float, callback: Callback, *, name: str = "periodic") -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            raise RuntimeError(f"{self.name} already running")
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self._task

    async def _run(self) -> None:
        while True:
            try:
                result = self.callback()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                LOGGER.exception("%s tick failed", self.name)
            await asyncio.sleep(self.interval)

    async def cancel(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
