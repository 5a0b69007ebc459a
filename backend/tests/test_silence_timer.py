import asyncio
import pytest

from voice_assessment.orchestration.silence_timer import SilenceTimer


class Recorder:
    def __init__(self):
        self.fired = []

    async def __call__(self, epoch: int):
        self.fired.append(epoch)


@pytest.mark.asyncio
async def test_fires_with_armed_epoch():
    recorder = Recorder()
    timer = SilenceTimer("test", duration_ms=20, on_expire=recorder)

    timer.start(7)
    assert timer.is_running()
    assert timer.armed_epoch == 7

    await asyncio.sleep(0.08)
    assert recorder.fired == [7]
    assert not timer.is_running()
    assert timer.armed_epoch is None


@pytest.mark.asyncio
async def test_cancel_prevents_fire():
    recorder = Recorder()
    timer = SilenceTimer("test", duration_ms=20, on_expire=recorder)

    timer.start(1)
    timer.cancel()
    timer.cancel()

    await asyncio.sleep(0.05)
    assert recorder.fired == []
    assert not timer.is_running()


@pytest.mark.asyncio
async def test_restart_replaces_pending_countdown():
    recorder = Recorder()
    timer = SilenceTimer("test", duration_ms=40, on_expire=recorder)

    timer.start(1)
    await asyncio.sleep(0.02)
    timer.start(2)

    await asyncio.sleep(0.1)
    assert recorder.fired == [2]


@pytest.mark.asyncio
async def test_callback_may_rearm_timer():
    fired = []
    timer = None

    async def on_expire(epoch):
        fired.append(epoch)
        if epoch < 3:
            timer.start(epoch + 1)

    timer = SilenceTimer("test", duration_ms=5, on_expire=on_expire)
    timer.start(1)

    await asyncio.sleep(0.1)
    assert fired == [1, 2, 3]
    assert not timer.is_running()


@pytest.mark.asyncio
async def test_callback_error_is_contained():
    async def on_expire(epoch):
        raise RuntimeError("boom")

    timer = SilenceTimer("test", duration_ms=5, on_expire=on_expire)
    timer.start(1)

    await asyncio.sleep(0.05)
    assert not timer.is_running()
