"""Tests for the detached background task runner."""

import asyncio

import pytest

from textcoach.services.background import BackgroundTaskRunner


class TestBackgroundTaskRunner:
    """Verify submission, error channel, and draining."""

    @pytest.mark.asyncio
    async def test_submit_runs_after_caller_continues(self) -> None:
        """Submitted work does not run until the caller yields."""
        ran: list[str] = []

        async def work() -> None:
            ran.append("done")

        runner = BackgroundTaskRunner()
        runner.submit(work(), name="work")

        assert ran == []
        assert runner.pending == 1
        await runner.drain()
        assert ran == ["done"]
        assert runner.pending == 0

    @pytest.mark.asyncio
    async def test_failure_goes_to_error_handler(self) -> None:
        """Exceptions reach on_error, never the submitter."""
        errors: list[tuple[str, BaseException]] = []

        async def boom() -> None:
            raise RuntimeError("side task failed")

        runner = BackgroundTaskRunner(on_error=lambda name, exc: errors.append((name, exc)))
        task = runner.submit(boom(), name="user-context:abc")
        await runner.drain()

        assert task.done()
        assert [name for name, _ in errors] == ["user-context:abc"]
        assert isinstance(errors[0][1], RuntimeError)

    @pytest.mark.asyncio
    async def test_failure_without_handler_is_logged(self, caplog) -> None:
        """Without a handler the failure is only logged."""

        async def boom() -> None:
            raise RuntimeError("nobody listening")

        runner = BackgroundTaskRunner()
        runner.submit(boom(), name="orphan")
        await runner.drain()

        assert "orphan" in caplog.text
        assert "nobody listening" in caplog.text

    @pytest.mark.asyncio
    async def test_raising_error_handler_is_contained(self) -> None:
        """A broken error handler does not escape the runner."""

        def bad_handler(name: str, exc: BaseException) -> None:
            raise ValueError("handler broke")

        async def boom() -> None:
            raise RuntimeError("side task failed")

        runner = BackgroundTaskRunner(on_error=bad_handler)
        runner.submit(boom(), name="x")
        await runner.drain()

        assert runner.pending == 0

    @pytest.mark.asyncio
    async def test_cancelled_task_is_not_an_error(self) -> None:
        """Cancellation is not reported through the error channel."""
        errors: list[tuple[str, BaseException]] = []
        runner = BackgroundTaskRunner(on_error=lambda n, e: errors.append((n, e)))

        task = runner.submit(asyncio.sleep(10), name="sleeper")
        await asyncio.sleep(0)
        task.cancel()
        await runner.drain()

        assert task.cancelled()
        assert errors == []

    @pytest.mark.asyncio
    async def test_drain_waits_for_nested_submissions(self) -> None:
        """Tasks submitted by running tasks are drained too."""
        ran: list[str] = []
        runner = BackgroundTaskRunner()

        async def inner() -> None:
            ran.append("inner")

        async def outer() -> None:
            ran.append("outer")
            runner.submit(inner(), name="inner")

        runner.submit(outer(), name="outer")
        await runner.drain()

        assert ran == ["outer", "inner"]
