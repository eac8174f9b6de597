"""Tests for LogTailer following real files."""

import asyncio
from contextlib import aclosing
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import aiofiles
import pytest

from stk_wrapper.errors import LogReadError
from stk_wrapper.log_monitor.tailer import LogTailer


def append(path, text):
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)


async def make_tailer(path, **kwargs):
    handle = await aiofiles.open(path, "rb")
    kwargs.setdefault("poll_interval", 0.05)
    kwargs.setdefault("debounce_ms", 50)
    kwargs.setdefault("force_polling", True)
    return LogTailer(handle, path, **kwargs)


async def wait_attached(tailer, offset, timeout=2.0):
    """Wait until the tailer has positioned itself at ``offset``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while tailer.position != offset:
        assert loop.time() < deadline, "tailer did not attach in time"
        await asyncio.sleep(0.01)
    # Let the watcher start
    await asyncio.sleep(0.1)


class LineCollector:
    """Consumes a tailer in the background."""

    def __init__(self, tailer):
        self.tailer = tailer
        self.lines = []
        self._wanted = 0
        self._enough = asyncio.Event()
        self.task = asyncio.create_task(self._consume())

    async def _consume(self):
        async with aclosing(self.tailer.follow()) as lines:
            async for line in lines:
                self.lines.append(line)
                if self._wanted and len(self.lines) >= self._wanted:
                    self._enough.set()

    async def wait_for(self, count, timeout=5.0):
        self._wanted = count
        if len(self.lines) >= count:
            return self.lines
        await asyncio.wait_for(self._enough.wait(), timeout)
        return self.lines

    async def stop(self):
        self.tailer.stop()
        await asyncio.wait_for(self.task, 5.0)


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "server_config.log"
    path.write_text("old line 1\nold line 2\n")
    return path


class TestFollow:
    @pytest.mark.asyncio
    async def test_yields_appended_lines_in_order(self, log_file):
        """Pre-existing lines are skipped, new ones arrive in order."""
        tailer = await make_tailer(log_file)
        collector = LineCollector(tailer)
        await wait_attached(tailer, log_file.stat().st_size)

        append(log_file, "new line 1\n")
        append(log_file, "new line 2\nnew line 3\n")

        lines = await collector.wait_for(3)
        await collector.stop()

        assert lines == ["new line 1", "new line 2", "new line 3"]

    @pytest.mark.asyncio
    async def test_partial_line_is_held_back(self, log_file):
        tailer = await make_tailer(log_file)
        collector = LineCollector(tailer)
        await wait_attached(tailer, log_file.stat().st_size)

        append(log_file, "Listening has ")
        await asyncio.sleep(0.3)
        assert collector.lines == []

        append(log_file, "been started\n")
        lines = await collector.wait_for(1)
        await collector.stop()

        assert lines == ["Listening has been started"]

    @pytest.mark.asyncio
    async def test_crlf_terminators_are_removed(self, log_file):
        tailer = await make_tailer(log_file)
        collector = LineCollector(tailer)
        await wait_attached(tailer, log_file.stat().st_size)

        append(log_file, "Bob disconnected\r\n")

        lines = await collector.wait_for(1)
        await collector.stop()

        assert lines == ["Bob disconnected"]

    @pytest.mark.asyncio
    async def test_truncation_resets_cursor(self, log_file):
        append(log_file, "x" * 200 + "\n")
        tailer = await make_tailer(log_file)
        collector = LineCollector(tailer)
        await wait_attached(tailer, log_file.stat().st_size)

        append(log_file, "before truncate\n")
        await collector.wait_for(1)

        with open(log_file, "w", encoding="utf-8") as f:
            f.write("after truncate\n")

        lines = await collector.wait_for(2)
        await collector.stop()

        assert lines == ["before truncate", "after truncate"]

    @pytest.mark.asyncio
    async def test_from_start_replays_existing_lines(self, log_file):
        tailer = await make_tailer(log_file, from_start=True)
        collector = LineCollector(tailer)

        lines = await collector.wait_for(2)
        await collector.stop()

        assert lines == ["old line 1", "old line 2"]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_stop_closes_handle(self, log_file):
        tailer = await make_tailer(log_file)
        collector = LineCollector(tailer)
        await wait_attached(tailer, log_file.stat().st_size)

        await collector.stop()

        assert collector.task.done()
        assert tailer.closed

    @pytest.mark.asyncio
    async def test_abandoning_sequence_closes_handle(self, log_file):
        tailer = await make_tailer(log_file)
        collector = LineCollector(tailer)
        await wait_attached(tailer, log_file.stat().st_size)

        collector.task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await collector.task

        assert tailer.closed

    @pytest.mark.asyncio
    async def test_follow_after_close_raises(self, log_file):
        tailer = await make_tailer(log_file)
        await tailer.close()

        with pytest.raises(LogReadError, match="closed"):
            async for _ in tailer.follow():
                pass

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, log_file):
        tailer = await make_tailer(log_file)

        await tailer.close()
        await tailer.close()

        assert tailer.closed


class TestReadErrors:
    @pytest.fixture
    def handle(self):
        handle = AsyncMock()
        handle.fileno = MagicMock(return_value=99)
        return handle

    @pytest.mark.asyncio
    async def test_read_failure_raises_read_error(self, handle, tmp_path):
        handle.read.side_effect = OSError("Input/output error")
        tailer = LogTailer(handle, tmp_path / "server_config.log")

        with patch(
            "stk_wrapper.log_monitor.tailer.aioos.stat",
            new=AsyncMock(return_value=SimpleNamespace(st_size=100)),
        ):
            with pytest.raises(LogReadError, match="Input/output error"):
                await tailer._read_new_lines()

    @pytest.mark.asyncio
    async def test_stat_failure_raises_read_error(self, handle, tmp_path):
        tailer = LogTailer(handle, tmp_path / "server_config.log")

        with patch(
            "stk_wrapper.log_monitor.tailer.aioos.stat",
            new=AsyncMock(side_effect=PermissionError("Permission denied")),
        ):
            with pytest.raises(LogReadError, match="Permission denied"):
                await tailer._read_new_lines()

    @pytest.mark.asyncio
    async def test_no_new_data_is_not_an_error(self, handle, tmp_path):
        tailer = LogTailer(handle, tmp_path / "server_config.log")

        with patch(
            "stk_wrapper.log_monitor.tailer.aioos.stat",
            new=AsyncMock(return_value=SimpleNamespace(st_size=0)),
        ):
            assert await tailer._read_new_lines() == []

        handle.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_read_error_ends_follow_and_closes(self, handle, tmp_path):
        handle.seek.return_value = 0
        handle.read.side_effect = OSError("Input/output error")
        tailer = LogTailer(
            handle,
            tmp_path / "server_config.log",
            poll_interval=0.05,
            force_polling=True,
        )

        with patch(
            "stk_wrapper.log_monitor.tailer.aioos.stat",
            new=AsyncMock(return_value=SimpleNamespace(st_size=10)),
        ):
            with pytest.raises(LogReadError):
                async with aclosing(tailer.follow()) as lines:
                    async for _ in lines:
                        pass

        assert tailer.closed
        handle.close.assert_awaited_once()
