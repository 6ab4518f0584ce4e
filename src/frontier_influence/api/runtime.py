"""Runtime primitives backing the influence HTTP API."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import date, datetime

from croniter import croniter
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from frontier_influence.config import Settings, get_settings
from frontier_influence.database import create_db_engine, create_session_factory, init_db
from frontier_influence.domain.models import ControlTransition, DecayReport
from frontier_influence.domain.rules_config import DEFAULT_RULES, RulesConfig
from frontier_influence.factory import create_all_services
from frontier_influence.models import utc_now
from frontier_influence.services.decay_service import run_daily_decay

logger = logging.getLogger(__name__)


class DecayManager:
    """Background scheduler that runs the daily decay on a cron schedule."""

    MIN_SLEEP_SECONDS = 0.1

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        rules: RulesConfig = DEFAULT_RULES,
        cron: str = "0 3 * * *",
        on_transition: Callable[[ControlTransition], None] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not croniter.is_valid(cron):
            raise ValueError(f"Invalid decay schedule: {cron!r}")
        self._session_factory = session_factory
        self._rules = rules
        self._cron = cron
        self._on_transition = on_transition
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._cancel_run = threading.Event()
        self._run_lock = asyncio.Lock()
        self._last_report: DecayReport | None = None
        self._last_run_at: datetime | None = None

    @property
    def cron(self) -> str:
        return self._cron

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_report(self) -> DecayReport | None:
        return self._last_report

    @property
    def last_run_at(self) -> datetime | None:
        return self._last_run_at

    def next_run_at(self, after: datetime | None = None) -> datetime:
        """Next scheduled fire time (UTC) strictly after ``after``."""
        return croniter(self._cron, after or self._clock()).get_next(datetime)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._stop_event = asyncio.Event()
            self._cancel_run.clear()
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run_loop(), name="influence-decay-loop")

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._stop_event.set()
        # Interrupts an in-flight run between territories.
        self._cancel_run.set()
        await task
        self._task = None

    async def run_now(self, day: date | None = None) -> DecayReport:
        """Run decay for ``day`` (today, UTC, by default) in a worker thread."""
        day = day or self._clock().date()
        async with self._run_lock:
            report = await asyncio.to_thread(
                run_daily_decay,
                self._session_factory,
                day,
                rules=self._rules,
                cancel_event=self._cancel_run,
                on_transition=self._on_transition,
            )
        self._last_report = report
        self._last_run_at = self._clock()
        return report

    async def _run_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                fire_at = self.next_run_at()
                delay = max((fire_at - self._clock()).total_seconds(), self.MIN_SLEEP_SECONDS)
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                    break
                except TimeoutError:
                    pass
                await self._run_cycle(fire_at.date())
        finally:
            self._task = None

    async def _run_cycle(self, day: date) -> None:
        try:
            await self.run_now(day)
        except Exception:
            logger.exception("scheduled decay run for %s failed", day)


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        engine: Engine | None = None,
        create_schema: bool = True,
    ) -> None:
        self.settings = settings or get_settings()
        self.engine = engine or create_db_engine(self.settings)
        if create_schema:
            init_db(self.engine)
        self.session_factory = create_session_factory(self.engine)

        services = create_all_services(self.session_factory, settings=self.settings)
        self.rules: RulesConfig = services["rules"]
        self.influence = services["influence"]
        self.queries = services["queries"]
        # Decay transitions reach the same listeners as producer writes,
        # including the overview cache invalidation wired by the factory.
        self.decay = DecayManager(
            self.session_factory,
            rules=self.rules,
            cron=self.settings.decay_cron,
            on_transition=self.influence.publish,
        )

    def start(self) -> None:
        if self.settings.decay_enabled:
            self.decay.start()
            logger.info(
                "decay scheduled with '%s', next run at %s",
                self.decay.cron,
                self.decay.next_run_at().isoformat(),
            )

    async def shutdown(self) -> None:
        await self.decay.stop()
        self.engine.dispose()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
