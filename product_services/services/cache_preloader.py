"""
Startup cache preloading.

Services register preload jobs explicitly in a PreloadRegistry while the app
is being wired; the CachePreloader then runs them once, in the background:

    Idle -> Discovering -> Running -> Done

Jobs run one at a time in priority order (lower first, ties in registration
order). Each job is bounded by max(estimated * multiplier, min timeout); a
failure or timeout is counted and the queue moves on. A short pause between
jobs keeps the warm-up from hammering the database.
"""
import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional

from product_services.utils.logger import get_logger

logger = get_logger(__name__)

PreloadRoutine = Callable[[], Awaitable[None]]


@dataclass
class PreloadJob:
    name: str
    routine: PreloadRoutine
    priority: int = 100               # lower number = runs earlier
    enabled: bool = True
    description: str = ""
    estimated_duration_ms: int = 1000


@dataclass
class PreloadResult:
    name: str
    success: bool
    elapsed_ms: float
    error: Optional[str] = None


@dataclass
class PreloadSummary:
    succeeded: int = 0
    failed: int = 0
    elapsed_ms: float = 0.0
    results: list[PreloadResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class PreloaderState(str, Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    RUNNING = "running"
    DONE = "done"


class PreloadRegistry:
    """Explicit list of preload jobs, in registration order."""

    def __init__(self):
        self._jobs: list[PreloadJob] = []

    def register(self, job: PreloadJob) -> PreloadJob:
        if any(existing.name == job.name for existing in self._jobs):
            raise ValueError(f"Preload job already registered: {job.name}")
        self._jobs.append(job)
        logger.info(
            f"Registered preload job: {job.name} "
            f"(Priority: {job.priority}, Enabled: {job.enabled}, Description: {job.description})"
        )
        return job

    def job(self, name: str, **options) -> Callable[[PreloadRoutine], PreloadRoutine]:
        """
        Decorator form of register().

            @registry.job("reference_data", priority=5)
            async def warm_reference_data():
                ...
        """
        def decorator(routine: PreloadRoutine) -> PreloadRoutine:
            self.register(PreloadJob(name=name, routine=routine, **options))
            return routine

        return decorator

    @property
    def jobs(self) -> list[PreloadJob]:
        return list(self._jobs)

    def __len__(self) -> int:
        return len(self._jobs)


class CachePreloader:
    """Runs registered preload jobs once, sequentially, with per-job timeouts."""

    def __init__(
        self,
        registry: PreloadRegistry,
        enabled: bool = True,
        timeout_multiplier: int = 3,
        min_timeout_ms: int = 30000,
        inter_job_delay_ms: int = 200,
        exclude_jobs: Iterable[str] = (),
        include_only_jobs: Iterable[str] = (),
    ):
        self.registry = registry
        self.enabled = enabled
        self.timeout_multiplier = timeout_multiplier
        self.min_timeout_ms = min_timeout_ms
        self.inter_job_delay_ms = inter_job_delay_ms
        self.exclude_jobs = set(exclude_jobs)
        self.include_only_jobs = set(include_only_jobs)

        self.state = PreloaderState.IDLE
        self.summary: Optional[PreloadSummary] = None

    def timeout_for(self, job: PreloadJob) -> float:
        """Per-job timeout in seconds: max(estimate * multiplier, minimum)"""
        timeout_ms = max(job.estimated_duration_ms * self.timeout_multiplier, self.min_timeout_ms)
        return timeout_ms / 1000

    def discover(self) -> list[PreloadJob]:
        """Enabled, non-excluded jobs sorted by priority (stable)."""
        jobs = []
        for job in self.registry.jobs:
            if not job.enabled:
                logger.debug(f"Skipping disabled preload job: {job.name}")
                continue
            if job.name in self.exclude_jobs:
                logger.info(f"Skipping excluded preload job: {job.name}")
                continue
            if self.include_only_jobs and job.name not in self.include_only_jobs:
                continue
            jobs.append(job)

        return sorted(jobs, key=lambda job: job.priority)

    async def run(self) -> PreloadSummary:
        if self.state is not PreloaderState.IDLE:
            raise RuntimeError(f"Cache preloader already {self.state.value}")

        logger.info("Starting cache preload process...")
        summary = PreloadSummary()

        if not self.enabled:
            logger.info("Cache preload is disabled via configuration")
            return self._finish(summary)

        self.state = PreloaderState.DISCOVERING
        jobs = self.discover()
        if not jobs:
            logger.info("No jobs found for cache preloading")
            return self._finish(summary)

        logger.info(f"Found {len(jobs)} jobs for cache preloading")
        self.state = PreloaderState.RUNNING
        started = time.perf_counter()

        for index, job in enumerate(jobs):
            result = await self._run_job(job)
            summary.results.append(result)
            if result.success:
                summary.succeeded += 1
            else:
                summary.failed += 1

            if index < len(jobs) - 1 and self.inter_job_delay_ms > 0:
                await asyncio.sleep(self.inter_job_delay_ms / 1000)

        summary.elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Cache preload summary - Total time: {summary.elapsed_ms:.0f}ms, "
            f"Success: {summary.succeeded}, Failures: {summary.failed}"
        )
        return self._finish(summary)

    async def _run_job(self, job: PreloadJob) -> PreloadResult:
        timeout = self.timeout_for(job)
        logger.info(f"Starting cache preload for job: {job.name} (timeout {timeout:.1f}s)")
        started = time.perf_counter()

        try:
            await asyncio.wait_for(job.routine(), timeout=timeout)
        except asyncio.TimeoutError:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(f"Failed to preload cache for job: {job.name} - timed out after {timeout:.1f}s")
            return PreloadResult(job.name, False, elapsed, error="timeout")
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(f"Failed to preload cache for job: {job.name} - Error: {e}")
            return PreloadResult(job.name, False, elapsed, error=str(e))

        elapsed = (time.perf_counter() - started) * 1000
        logger.info(f"Completed cache preload for job: {job.name} in {elapsed:.0f}ms")
        return PreloadResult(job.name, True, elapsed)

    def _finish(self, summary: PreloadSummary) -> PreloadSummary:
        self.summary = summary
        self.state = PreloaderState.DONE
        return summary
