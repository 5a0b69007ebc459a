from voice_assessment.orchestration.level_monitor import AudioLevelMonitor, VoiceActivity


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


def make_monitor(clock, min_speech_ms=300):
    return AudioLevelMonitor(silence_threshold=0.04, min_speech_duration_ms=min_speech_ms, clock=clock)


def test_silence_before_speech():
    clock = FakeClock()
    monitor = make_monitor(clock)

    assert monitor.process(0.0) is VoiceActivity.SILENT
    assert monitor.process(0.04) is VoiceActivity.SILENT  # threshold itself is silence
    assert not monitor.has_spoken


def test_speech_confirmed_after_min_duration():
    clock = FakeClock()
    monitor = make_monitor(clock)

    assert monitor.process(0.2) is VoiceActivity.ONSET
    clock.advance(300)
    assert monitor.process(0.2) is VoiceActivity.ONSET  # strictly longer than the minimum
    clock.advance(1)
    assert monitor.process(0.2) is VoiceActivity.SPEAKING
    assert monitor.has_spoken


def test_brief_burst_is_rejected():
    clock = FakeClock()
    monitor = make_monitor(clock)

    monitor.process(0.5)
    clock.advance(200)
    assert monitor.process(0.0) is VoiceActivity.SILENT

    # Onset restarts from scratch after the dip
    clock.advance(200)
    assert monitor.process(0.5) is VoiceActivity.ONSET
    assert not monitor.has_spoken


def test_pause_after_speech_and_resume():
    clock = FakeClock()
    monitor = make_monitor(clock, min_speech_ms=100)

    monitor.process(0.3)
    clock.advance(150)
    assert monitor.process(0.3) is VoiceActivity.SPEAKING

    clock.advance(10)
    assert monitor.process(0.01) is VoiceActivity.PAUSE
    assert monitor.has_spoken

    clock.advance(10)
    assert monitor.process(0.3) is VoiceActivity.ONSET
    clock.advance(101)
    assert monitor.process(0.3) is VoiceActivity.SPEAKING


def test_level_is_clamped():
    monitor = make_monitor(FakeClock())

    monitor.process(3.0)
    assert monitor.level == 1.0
    monitor.process(-1.0)
    assert monitor.level == 0.0

