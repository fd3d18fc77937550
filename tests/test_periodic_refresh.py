import asyncio
import logging

import main


class RecordingDirectory:
    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    async def refresh(self, force=False):
        self.calls.append(force)
        if len(self.calls) in self.fail_on:
            raise RuntimeError("live data exploded")
        return True


async def wait_for_calls(directory, count):
    while len(directory.calls) < count:
        await asyncio.sleep(0.005)


async def test_periodic_refresh_forces_refresh_each_interval(monkeypatch):
    monkeypatch.setattr(main.settings, "refresh_interval", 0.01)
    directory = RecordingDirectory()

    task = asyncio.create_task(main.periodic_refresh(directory))
    await asyncio.wait_for(wait_for_calls(directory, 3), timeout=5)
    task.cancel()
    await task

    assert directory.calls[:3] == [True, True, True]
    assert task.done() and not task.cancelled()


async def test_periodic_refresh_logs_errors_and_continues(monkeypatch, caplog):
    monkeypatch.setattr(main.settings, "refresh_interval", 0.01)
    directory = RecordingDirectory(fail_on={1})

    with caplog.at_level(logging.ERROR):
        task = asyncio.create_task(main.periodic_refresh(directory))
        await asyncio.wait_for(wait_for_calls(directory, 3), timeout=5)
        task.cancel()
        await task

    assert len(directory.calls) >= 3
    assert "live data exploded" in caplog.text


async def test_periodic_refresh_waits_one_interval_first(monkeypatch):
    monkeypatch.setattr(main.settings, "refresh_interval", 60)
    directory = RecordingDirectory()

    task = asyncio.create_task(main.periodic_refresh(directory))
    await asyncio.sleep(0.05)
    task.cancel()
    await task

    assert directory.calls == []
