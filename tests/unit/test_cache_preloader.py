"""
Unit tests for the startup cache preloader

Jobs run sequentially in priority order; failures and timeouts are counted
without stopping the queue.
"""

import asyncio

import pytest

from product_services.services.cache_preloader import (
    CachePreloader,
    PreloaderState,
    PreloadJob,
    PreloadRegistry,
)


def recording_job(name, calls, priority=100, **options):
    async def routine():
        calls.append(name)

    return PreloadJob(name=name, routine=routine, priority=priority, **options)


def make_preloader(registry, **options):
    options.setdefault("inter_job_delay_ms", 0)
    return CachePreloader(registry, **options)


class TestPreloadRegistry:

    def test_duplicate_name_rejected(self):
        registry = PreloadRegistry()
        registry.register(recording_job("a", []))

        with pytest.raises(ValueError):
            registry.register(recording_job("a", []))

    def test_decorator_registers_job(self):
        registry = PreloadRegistry()

        @registry.job("reference_data", priority=5, estimated_duration_ms=10)
        async def warm():
            pass

        assert len(registry) == 1
        assert registry.jobs[0].name == "reference_data"
        assert registry.jobs[0].priority == 5


class TestCachePreloader:

    @pytest.mark.asyncio
    async def test_runs_in_priority_order(self):
        calls = []
        registry = PreloadRegistry()
        registry.register(recording_job("three", calls, priority=3))
        registry.register(recording_job("one", calls, priority=1))
        registry.register(recording_job("two", calls, priority=2))

        summary = await make_preloader(registry).run()

        assert calls == ["one", "two", "three"]
        assert summary.succeeded == 3
        assert summary.failed == 0

    @pytest.mark.asyncio
    async def test_equal_priority_keeps_registration_order(self):
        calls = []
        registry = PreloadRegistry()
        for name in ("b", "a", "c"):
            registry.register(recording_job(name, calls, priority=1))

        await make_preloader(registry).run()

        assert calls == ["b", "a", "c"]

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_queue(self):
        calls = []

        async def boom():
            raise RuntimeError("db down")

        registry = PreloadRegistry()
        registry.register(PreloadJob(name="broken", routine=boom, priority=1))
        registry.register(recording_job("after", calls, priority=2))

        summary = await make_preloader(registry).run()

        assert calls == ["after"]
        assert summary.succeeded == 1
        assert summary.failed == 1
        assert summary.results[0].error == "db down"

    @pytest.mark.asyncio
    async def test_hung_job_times_out(self):
        calls = []

        async def hang():
            await asyncio.Event().wait()

        registry = PreloadRegistry()
        registry.register(PreloadJob(name="hang", routine=hang, priority=1, estimated_duration_ms=1))
        registry.register(recording_job("after", calls, priority=2))

        preloader = make_preloader(registry, timeout_multiplier=1, min_timeout_ms=50)
        summary = await preloader.run()

        assert calls == ["after"]
        assert summary.failed == 1
        assert summary.results[0].error == "timeout"

    @pytest.mark.asyncio
    async def test_disabled_and_excluded_jobs_skipped(self):
        calls = []
        registry = PreloadRegistry()
        registry.register(recording_job("off", calls, enabled=False))
        registry.register(recording_job("excluded", calls))
        registry.register(recording_job("kept", calls))

        summary = await make_preloader(registry, exclude_jobs=["excluded"]).run()

        assert calls == ["kept"]
        assert summary.total == 1

    @pytest.mark.asyncio
    async def test_include_only(self):
        calls = []
        registry = PreloadRegistry()
        registry.register(recording_job("a", calls))
        registry.register(recording_job("b", calls))

        await make_preloader(registry, include_only_jobs=["b"]).run()

        assert calls == ["b"]

    @pytest.mark.asyncio
    async def test_disabled_preloader_runs_nothing(self):
        calls = []
        registry = PreloadRegistry()
        registry.register(recording_job("a", calls))
        preloader = make_preloader(registry, enabled=False)

        summary = await preloader.run()

        assert calls == []
        assert summary.total == 0
        assert preloader.state is PreloaderState.DONE

    @pytest.mark.asyncio
    async def test_no_jobs(self):
        preloader = make_preloader(PreloadRegistry())

        summary = await preloader.run()

        assert summary.total == 0
        assert preloader.state is PreloaderState.DONE

    @pytest.mark.asyncio
    async def test_runs_only_once(self):
        preloader = make_preloader(PreloadRegistry())
        await preloader.run()

        with pytest.raises(RuntimeError):
            await preloader.run()

    def test_timeout_is_max_of_estimate_and_minimum(self):
        preloader = make_preloader(PreloadRegistry(), timeout_multiplier=3, min_timeout_ms=30000)

        assert preloader.timeout_for(recording_job("fast", [], estimated_duration_ms=1000)) == 30.0
        assert preloader.timeout_for(recording_job("slow", [], estimated_duration_ms=20000)) == 60.0
