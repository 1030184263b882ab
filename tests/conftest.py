# -*- coding: utf-8 -*-
"""
Fixtures compartilhadas: probe, relógio e saída ao vivo falsos
"""

from pathlib import Path
from unittest.mock import Mock

import pytest

from demo_timeline.infra.media_io import MediaInfo, MediaProbe
from demo_timeline.infra.settings import AppSettings
from demo_timeline.rendering.runner import RenderInvoker, RenderResult


class FakeProbe(MediaProbe):
    """Probe com resultados fixos por nome de arquivo"""

    def __init__(self, media: dict = None):
        super().__init__()
        self.media = media or {}
        self.calls = []

    def _run_probe(self, media_path: Path) -> MediaInfo:
        self.calls.append(Path(media_path).name)
        return self.media.get(Path(media_path).name, MediaInfo())


class FakeClock:
    """Relógio controlado pelo teste (segundos)"""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeSink:
    """Saída ao vivo que só registra as chamadas"""

    def __init__(self, reported_duration=None):
        self.reported_duration = reported_duration
        self.played = []
        self.stops = 0

    async def play(self, file_path):
        self.played.append(file_path)
        if self.reported_duration is None:
            return {}
        return {"duration": self.reported_duration}

    async def stop(self):
        self.stops += 1


@pytest.fixture
def settings():
    return AppSettings(crossfade_min_ms=500, settle_margin_ms=200, default_stop_fade_ms=500)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds):
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def probe():
    return FakeProbe(
        {
            "narration.wav": MediaInfo(duration_ms=2000),
            "music.mp3": MediaInfo(duration_ms=5000),
            "next.mp3": MediaInfo(duration_ms=4000),
            "click.wav": MediaInfo(duration_ms=300),
            "capture.mp4": MediaInfo(duration_ms=12500, width=1920, height=1080),
        }
    )


@pytest.fixture
def invoker():
    mock = Mock(spec=RenderInvoker)
    mock.invoke.return_value = RenderResult(success=True)
    return mock


@pytest.fixture
def make_sink():
    return FakeSink
