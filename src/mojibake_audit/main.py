from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import TextIO, cast

from .config import AuditConfig
from .discovery import default_roots, discover_files
from .encoding import (
    Utf8Validator,
    default_validator,
    file_encoding_ok,
    select_validator,
)
from .log import logger, setup_default_logging
from .model import AuditSummary, FileResult
from .reporter import TapReporter, default_test_name
from .scheduler import AuditSchedulerService, AuditWatch

NameFactory = Callable[[Path], str]


class AuditApp:
    """Encoding audit runtime.

    Typical usage:
    1. Create one `AuditApp` per process with an `AuditConfig`.
    2. `await run_once(targets, reporter)` for a single pass, or
    3. `add_watch(...)` then `await run_forever()` to re-audit on a schedule.
    """

    def __init__(
        self,
        cfg: AuditConfig | None = None,
        *,
        validator: Utf8Validator | None = None,
        name_factory: NameFactory | None = None,
    ):
        self.cfg = cfg or AuditConfig()
        if validator is None:
            validator = (
                default_validator()
                if self.cfg.validator == "auto"
                else select_validator(self.cfg.validator)
            )
        self.validator = validator
        self.name_factory = name_factory or default_test_name
        self.scheduler = AuditSchedulerService(self._on_watch_trigger)
        self.last_summary: AuditSummary | None = None
        self._started = False

    def check_file(self, path: Path) -> FileResult:
        verdict = file_encoding_ok(path, self.validator)
        if verdict.passed:
            logger.debug("[audit] ok: %s", path)
        else:
            logger.info("[audit] %s: %s %s", path, verdict.reason, verdict.message)
        return FileResult(path=path, name=self.name_factory(path), verdict=verdict)

    async def check_files(self, paths: Sequence[Path]) -> list[FileResult]:
        """Check `paths` on a bounded worker pool, keeping input order."""
        results: list[FileResult | None] = [None] * len(paths)
        queue: asyncio.Queue[tuple[int, Path]] = asyncio.Queue()
        for index, path in enumerate(paths):
            queue.put_nowait((index, path))

        async def worker() -> None:
            while True:
                try:
                    index, path = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                results[index] = await asyncio.to_thread(self.check_file, path)

        workers = [
            asyncio.create_task(worker())
            for _ in range(min(self.cfg.workers, len(paths)))
        ]
        if workers:
            await asyncio.gather(*workers)
        unchecked = [str(paths[i]) for i, result in enumerate(results) if result is None]
        if unchecked:
            raise RuntimeError(f"files left unchecked: {', '.join(unchecked)}")
        return cast(list[FileResult], results)

    async def run_once(
        self,
        targets: Iterable[Path | str] | None = None,
        reporter: TapReporter | None = None,
    ) -> AuditSummary:
        """Discover, check and report one audit pass."""
        if self.cfg.is_gated():
            summary = AuditSummary(
                results=[], skipped=True, skip_reason=self.cfg.gate_reason
            )
            logger.info("[audit] skipped: %s", summary.skip_reason)
            if reporter:
                reporter.skip_all(summary.skip_reason)
            self.last_summary = summary
            return summary

        roots = [Path(t) for t in targets] if targets else default_roots()
        files = discover_files(roots, self.cfg)
        logger.info(
            "[audit] checking %d file(s) with %s validator",
            len(files),
            self.validator.name,
        )
        if reporter:
            reporter.plan(len(files))

        results = await self.check_files(files)
        summary = AuditSummary(results=results)
        if reporter:
            for result in results:
                reporter.report(result)
            reporter.summary(summary)
        logger.info(
            "[audit] done: total=%d, passed=%d, failed=%d",
            summary.total,
            summary.passed,
            summary.failed,
        )
        self.last_summary = summary
        return summary

    def add_watch(self, name: str, cron: str, targets: Iterable[Path | str]) -> bool:
        """Schedule recurring audits of `targets`."""
        watch = AuditWatch(name=name, cron=cron, targets=[Path(t) for t in targets])
        return self.scheduler.add_watch(watch)

    async def start(self) -> None:
        """Start the scheduler. Safe to call multiple times."""
        if self._started:
            logger.info("[app] start skipped: already running")
            return
        self.scheduler.start()
        self._started = True
        logger.info("[app] watching %d target set(s)", len(self.scheduler.watches))

    async def stop(self) -> None:
        """Stop the scheduler. Safe to call multiple times."""
        if not self._started:
            logger.info("[app] stop skipped: not running")
            return
        self.scheduler.shutdown()
        self._started = False
        logger.info("[app] shutdown complete")

    async def run_forever(self) -> None:
        """Start watching and block until interrupted."""
        await self.start()
        try:
            await asyncio.Event().wait()
        except (KeyboardInterrupt, asyncio.CancelledError):
            logger.info("[app] interrupted")
        finally:
            await self.stop()

    async def _on_watch_trigger(self, watch: AuditWatch) -> None:
        logger.info("[cron] auditing %s", watch.name)
        summary = await self.run_once(watch.targets or None, TapReporter())
        if not summary.ok:
            logger.warning(
                "[cron] %s: %d of %d file(s) failed",
                watch.name,
                summary.failed,
                summary.total,
            )


def all_files_encoding_ok(
    *roots: Path | str,
    config: AuditConfig | None = None,
    stream: TextIO | None = None,
) -> bool:
    """Audit `roots` (default: `blib` or `lib`) and print TAP.

    Returns True when every file passed or the run was skipped by the
    release gate.
    """
    cfg = config or AuditConfig()
    setup_default_logging(cfg.log_level)
    app = AuditApp(cfg)
    summary = asyncio.run(app.run_once(list(roots) or None, TapReporter(stream)))
    return summary.ok
