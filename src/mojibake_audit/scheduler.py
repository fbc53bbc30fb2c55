from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .log import logger


@dataclass
class AuditWatch:
    """A set of targets re-audited on a cron schedule."""

    name: str
    cron: str
    targets: list[Path] = field(default_factory=list)


class AuditSchedulerService:
    """Cron scheduler for recurring audits.

    Watches can be added before or after `start()`; jobs are rebuilt from the
    registered watches on every (re)start.
    """

    def __init__(self, on_trigger: Callable[[AuditWatch], Awaitable[None]]):
        """Create scheduler service.

        Args:
            on_trigger: Async callback called with the watch when its job fires.
        """
        self._on_trigger_cb = on_trigger
        self._watches: dict[str, AuditWatch] = {}

        self._scheduler = AsyncIOScheduler()
        self._started = False

    @property
    def watches(self) -> list[AuditWatch]:
        return list(self._watches.values())

    def add_watch(self, watch: AuditWatch) -> bool:
        """Register `watch`. Returns False if its cron expression is invalid."""
        if self._build_trigger(watch) is None:
            return False
        self._watches[watch.name] = watch
        self.reload()
        return True

    def start(self) -> None:
        """Start scheduler and register all watches."""
        if self._started:
            return

        if getattr(self._scheduler, "running", False):
            self._scheduler.remove_all_jobs()
            self._register_all()
            self._started = True
            logger.debug("[cron] scheduler already running, jobs reloaded")
            return

        self._register_all()
        self._scheduler.start()
        self._started = True
        logger.debug("[cron] scheduler started")

    def shutdown(self) -> None:
        """Shutdown scheduler safely."""
        if not getattr(self._scheduler, "running", False):
            self._started = False
            logger.debug("[cron] scheduler already stopped")
            return

        try:
            self._scheduler.shutdown(wait=True)
            logger.debug("[cron] scheduler stopped")
        except Exception as exc:
            logger.debug("[cron] scheduler shutdown ignored: %s", exc)
        finally:
            self._started = False

    def reload(self) -> None:
        """Rebuild all jobs from the registered watches."""
        if not self._started:
            return

        self._scheduler.remove_all_jobs()
        self._register_all()
        logger.debug("[cron] scheduler reloaded")

    def _register_all(self) -> None:
        for watch in self._watches.values():
            self._try_register_watch(watch)

    @staticmethod
    def _build_trigger(watch: AuditWatch) -> CronTrigger | None:
        cron_expr = str(watch.cron or "").strip()
        if not cron_expr:
            logger.warning("[cron] empty cron ignored for %s", watch.name)
            return None
        try:
            return CronTrigger.from_crontab(cron_expr)
        except Exception as exc:
            logger.warning(
                "[cron] invalid cron ignored for %s: %s (%s)",
                watch.name,
                cron_expr,
                exc,
            )
            return None

    def _try_register_watch(self, watch: AuditWatch) -> None:
        trigger = self._build_trigger(watch)
        if trigger is None:
            return

        self._scheduler.add_job(
            self._on_trigger,
            trigger=trigger,
            args=[watch.name],
            id=f"audit:{watch.name}",
            replace_existing=True,
        )
        logger.debug("[cron] registered watch: %s (%s)", watch.name, watch.cron)

    async def _on_trigger(self, name: str) -> None:
        watch = self._watches.get(name)
        if watch is None:
            return

        try:
            await self._on_trigger_cb(watch)
        except Exception as exc:
            logger.error("[cron] audit failed for %s: %s", watch.name, exc)
