# -*- coding: utf-8 -*-
"""
Testes da compilação do viewport em crop/scale
"""

import pytest

from demo_timeline.application.services.viewport_service import build_timeline
from demo_timeline.domain.models.viewport import (
    CursorSample,
    CursorTrack,
    FollowCommand,
    ViewportState,
    ZoomCommand,
)
from demo_timeline.rendering.viewport_filter import (
    build_crop_expressions,
    compile_to_filter_expression,
    sample_keyframes,
)

WIDTH, HEIGHT = 1920, 1080
CORNERS = [(0, 0), (WIDTH, 0), (0, HEIGHT), (WIDTH, HEIGHT), (960, 540), (1919, 3)]


def static_timeline(frames, zoom=1.0, cx=960.0, cy=540.0, fps=30):
    return [ViewportState(i / fps, zoom, cx, cy) for i in range(frames)]


class TestSampleKeyframes:
    def test_every_interval_plus_last_frame(self):
        timeline = static_timeline(300)
        keyframes = sample_keyframes(timeline, 15)

        assert len(keyframes) == 21
        assert keyframes[1] is timeline[15]
        assert keyframes[-1] is timeline[-1]

    def test_last_frame_not_duplicated(self):
        timeline = static_timeline(31)
        assert len(sample_keyframes(timeline, 15)) == 3

    def test_empty_timeline(self):
        assert sample_keyframes([], 15) == []


class TestCompile:
    def test_filter_shape(self):
        text = compile_to_filter_expression(static_timeline(60), WIDTH, HEIGHT)

        assert text.startswith("crop=w='1920/max(1\\,")
        assert ":x='max(0\\,min(" in text
        assert text.endswith(",scale=1920:1080")

    def test_identity_crop_without_zoom(self):
        crop = build_crop_expressions(static_timeline(60), WIDTH, HEIGHT)

        assert crop.rect_at(0.7) == (0, 0, WIDTH, HEIGHT)

    def test_is_deterministic(self):
        track = CursorTrack([CursorSample(0, 10, 10), CursorSample(3000, 1500, 900)])
        commands = [FollowCommand(0.0, 3.0, zoom=2.0), ZoomCommand(3.0, at=1.0, duration=0.3)]
        timeline = build_timeline(commands, track, 3.0)

        assert compile_to_filter_expression(timeline, WIDTH, HEIGHT) == (
            compile_to_filter_expression(build_timeline(commands, track, 3.0), WIDTH, HEIGHT)
        )

    def test_keyframe_interval_is_configurable(self):
        timeline = static_timeline(60)
        coarse = compile_to_filter_expression(timeline, WIDTH, HEIGHT, keyframe_interval=30)
        fine = compile_to_filter_expression(timeline, WIDTH, HEIGHT, keyframe_interval=5)

        assert fine.count("if(") > coarse.count("if(")


class TestCropClamping:
    @pytest.mark.parametrize("zoom", [1.0, 1.5, 2.0, 3.0, 4.0])
    @pytest.mark.parametrize("corner", CORNERS)
    def test_crop_stays_inside_frame(self, zoom, corner):
        track = CursorTrack([CursorSample(0, *corner)])
        timeline = build_timeline(
            [FollowCommand(0.0, 2.0, zoom=zoom)], track, 2.0, resolution=(WIDTH, HEIGHT)
        )
        crop = build_crop_expressions(timeline, WIDTH, HEIGHT)

        for state in sample_keyframes(timeline, 15):
            x, y, w, h = crop.rect_at(state.time)
            assert 0 <= x and x + w <= WIDTH + 1e-6
            assert 0 <= y and y + h <= HEIGHT + 1e-6

    @pytest.mark.parametrize("corner", CORNERS)
    def test_crop_stays_inside_frame_while_zooming(self, corner):
        track = CursorTrack([CursorSample(0, *corner), CursorSample(2000, WIDTH - corner[0], corner[1])])
        timeline = build_timeline(
            [ZoomCommand(4.0, at=0.2, duration=1.0)], track, 2.0, resolution=(WIDTH, HEIGHT)
        )
        crop = build_crop_expressions(timeline, WIDTH, HEIGHT)

        for i in range(0, 61):
            x, y, w, h = crop.rect_at(i / 30)
            assert 0 <= x and x + w <= WIDTH + 1e-6
            assert 0 <= y and y + h <= HEIGHT + 1e-6

    def test_zoom_never_below_one(self):
        timeline = static_timeline(30, zoom=0.5)
        crop = build_crop_expressions(timeline, WIDTH, HEIGHT)

        assert crop.zoom.evaluate(0.5) == 1.0
