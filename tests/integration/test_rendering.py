# -*- coding: utf-8 -*-
"""
Testes de integração para renderização: comandos, execução e viewport
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest

from demo_timeline.application.services.viewport_service import ViewportService
from demo_timeline.domain.models.viewport import (
    CursorSample,
    CursorTrack,
    ViewportConfig,
    ZoomCommand,
)
from demo_timeline.infra.media_io import MediaInfo
from demo_timeline.infra.settings import AppSettings
from demo_timeline.rendering.cli_builder import CliBuilder
from demo_timeline.rendering.graph_builder import AudioMix
from demo_timeline.rendering.runner import RenderError, RenderInvoker, RenderResult, Runner


@pytest.fixture
def cli_builder(settings):
    return CliBuilder(settings)


@pytest.fixture
def capture(tmp_path):
    path = tmp_path / "capture.mp4"
    path.write_bytes(b"fake video payload")
    return path


def test_cli_builder_mix_command(cli_builder):
    mix = AudioMix(
        inputs=[Path("capture.mp4"), Path("music.mp3")],
        filter_graph="[1:a]adelay=0|0[ch2_0];[ch2_0]amix=inputs=1[aout]",
        has_audio=True,
    )

    cmd = cli_builder.make_mix_command(mix, Path("final.mp4"))

    assert cmd[1] == "-y"
    assert cmd[2:6] == ["-i", "capture.mp4", "-i", "music.mp3"]
    assert cmd[cmd.index("-filter_complex") + 1] == mix.filter_graph
    assert cmd[cmd.index("-map") + 1] == "0:v"
    assert "[aout]" in cmd
    assert cmd[-7:] == ["-c:v", "copy", "-c:a", "aac", "-b:a", "192k", "final.mp4"]


def test_cli_builder_viewport_command(cli_builder):
    cmd = cli_builder.make_viewport_command(Path("in.mp4"), "crop=w='1':h='1'", Path("out.mp4"))

    assert cmd[cmd.index("-vf") + 1] == "crop=w='1':h='1'"
    assert "-filter_complex" not in cmd
    assert cmd[-3:] == ["-c:a", "copy", "out.mp4"]


class TestRunner:
    def test_success(self):
        completed = MagicMock(returncode=0, stderr="")
        with patch("demo_timeline.rendering.runner.subprocess.run", return_value=completed) as run:
            assert Runner().run(["ffmpeg", "-version"], timeout=5) is completed
        assert run.call_args.kwargs["timeout"] == 5

    def test_nonzero_exit_raises_with_stderr(self):
        completed = MagicMock(returncode=1, stderr="Invalid argument")
        with patch("demo_timeline.rendering.runner.subprocess.run", return_value=completed):
            with pytest.raises(RenderError) as excinfo:
                Runner().run(["ffmpeg"])
        assert excinfo.value.stderr == "Invalid argument"

    def test_timeout_raises(self):
        error = subprocess.TimeoutExpired(["ffmpeg"], 1)
        with patch("demo_timeline.rendering.runner.subprocess.run", side_effect=error):
            with pytest.raises(RenderError, match="timeout"):
                Runner().run(["ffmpeg"], timeout=1)

    def test_missing_binary_raises(self):
        with patch(
            "demo_timeline.rendering.runner.subprocess.run",
            side_effect=FileNotFoundError("ffmpeg"),
        ):
            with pytest.raises(RenderError):
                Runner().run(["ffmpeg"])


class TestRenderInvoker:
    def test_failure_is_reported(self, tmp_path):
        runner = Mock(spec=Runner)
        runner.run.side_effect = RenderError("falhou", "stderr text")

        result = RenderInvoker(runner).invoke(["ffmpeg"], tmp_path / "out.mp4", "mix")

        assert not result.success
        assert result.stderr == "stderr text"

    def test_missing_output_is_failure(self, tmp_path):
        runner = Mock(spec=Runner)

        result = RenderInvoker(runner).invoke(["ffmpeg"], tmp_path / "out.mp4", "crop")

        assert not result.success

    def test_success(self, tmp_path):
        output = tmp_path / "out.mp4"
        output.write_bytes(b"x")
        runner = Mock(spec=Runner)

        result = RenderInvoker(runner, timeout=30).invoke(["ffmpeg"], output, "crop")

        assert result.success
        assert result.output_path == output
        runner.run.assert_called_once_with(["ffmpeg"], timeout=30)


class TestApplyViewport:
    def test_no_commands_copies_input(self, tmp_path, capture, probe, invoker, settings):
        service = ViewportService(probe, invoker, settings=settings)
        output = tmp_path / "out.mp4"

        assert service.apply_viewport(capture, output, CursorTrack(), ViewportConfig())

        assert output.read_bytes() == capture.read_bytes()
        invoker.invoke.assert_not_called()

    def test_zoom_renders_crop(self, tmp_path, capture, probe, invoker, settings):
        service = ViewportService(probe, invoker, settings=settings)
        output = tmp_path / "out.mp4"
        track = CursorTrack([CursorSample(0, 400, 300), CursorSample(3000, 1500, 800)])
        config = ViewportConfig([ZoomCommand(level=2.0, at=1.0, duration=0.5)])

        assert service.apply_viewport(capture, output, track, config)

        cmd, out_path, stage = invoker.invoke.call_args[0]
        video_filter = cmd[cmd.index("-vf") + 1]
        assert stage == "crop"
        assert out_path == output
        assert video_filter.startswith("crop=w='1920/max(1\\,")
        assert video_filter.endswith(",scale=1920:1080")

    def test_probe_failure_uses_fallbacks(self, tmp_path, probe, invoker, settings):
        unknown = tmp_path / "unknown.mp4"
        unknown.write_bytes(b"?")
        service = ViewportService(probe, invoker, settings=settings)
        config = ViewportConfig([ZoomCommand(level=1.5)])

        service.apply_viewport(
            unknown, tmp_path / "out.mp4", CursorTrack(), config, resolution=(1280, 720)
        )

        cmd = invoker.invoke.call_args[0][0]
        assert cmd[cmd.index("-vf") + 1].endswith(",scale=1280:720")

    def test_render_failure_is_reported(self, tmp_path, capture, probe, invoker, settings):
        invoker.invoke.return_value = RenderResult(success=False, stderr="boom")
        service = ViewportService(probe, invoker, settings=settings)

        assert not service.apply_viewport(
            capture, tmp_path / "out.mp4", CursorTrack(), ViewportConfig([ZoomCommand(level=2.0)])
        )

    def test_input_is_probed_again_on_each_render(self, tmp_path, capture, probe, invoker, settings):
        probe.media["capture.mp4"] = MediaInfo(duration_ms=2000, width=1280, height=720)
        service = ViewportService(probe, invoker, settings=settings)
        config = ViewportConfig([ZoomCommand(level=2.0)])

        service.apply_viewport(capture, tmp_path / "take1.mp4", CursorTrack(), config)
        probe.media["capture.mp4"] = MediaInfo(duration_ms=8000, width=1920, height=1080)
        service.apply_viewport(capture, tmp_path / "take2.mp4", CursorTrack(), config)

        cmd = invoker.invoke.call_args[0][0]
        assert cmd[cmd.index("-vf") + 1].endswith(",scale=1920:1080")
        assert probe.calls == ["capture.mp4", "capture.mp4"]


def test_injected_settings_choose_ffmpeg_binary():
    builder = CliBuilder(AppSettings(ffmpeg_path="/opt/ffmpeg/bin/ffmpeg"))

    cmd = builder.make_viewport_command(Path("in.mp4"), "crop=w='1':h='1'", Path("out.mp4"))

    assert cmd[0] == "/opt/ffmpeg/bin/ffmpeg"
