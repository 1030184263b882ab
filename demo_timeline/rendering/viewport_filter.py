# -*- coding: utf-8 -*-
"""
Compilação da timeline de viewport em filtros crop/scale do FFmpeg
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Sequence

from ..domain.models.viewport import ViewportState
from .expressions import Expr, clamp, div, lift, maximum, piecewise_linear, sub


def sample_keyframes(
    timeline: Sequence[ViewportState], interval: int = 15
) -> List[ViewportState]:
    """Um keyframe a cada `interval` quadros, mais o último quadro"""
    if not timeline:
        return []
    interval = max(1, interval)
    keyframes = list(timeline[::interval])
    if keyframes[-1] is not timeline[-1]:
        keyframes.append(timeline[-1])
    return keyframes


def build_curve(
    keyframes: Sequence[ViewportState], value_of: Callable[[ViewportState], float]
) -> Expr:
    """Curva linear por partes de uma grandeza do viewport"""
    return piecewise_linear([(k.time, value_of(k)) for k in keyframes])


@dataclass(frozen=True)
class CropExpressions:
    """Expressões do retângulo de crop, avaliáveis em qualquer t"""

    width: int
    height: int
    zoom: Expr
    crop_w: Expr
    crop_h: Expr
    crop_x: Expr
    crop_y: Expr

    def to_filter(self) -> str:
        """crop=w=..:h=..:x=..:y=..,scale=W:H"""
        return (
            f"crop=w='{self.crop_w.render()}':h='{self.crop_h.render()}'"
            f":x='{self.crop_x.render()}':y='{self.crop_y.render()}'"
            f",scale={self.width}:{self.height}"
        )

    def rect_at(self, t: float) -> tuple[float, float, float, float]:
        """(x, y, w, h) calculados como o FFmpeg calcularia em t"""
        return (
            self.crop_x.evaluate(t),
            self.crop_y.evaluate(t),
            self.crop_w.evaluate(t),
            self.crop_h.evaluate(t),
        )


def build_crop_expressions(
    timeline: Sequence[ViewportState],
    width: int,
    height: int,
    keyframe_interval: int = 15,
) -> CropExpressions:
    keyframes = sample_keyframes(timeline, keyframe_interval)

    # Zoom abaixo de 1 faria o crop exceder o quadro
    zoom = maximum(lift(1, 0), build_curve(keyframes, lambda s: s.zoom))
    center_x = build_curve(keyframes, lambda s: s.center_x)
    center_y = build_curve(keyframes, lambda s: s.center_y)

    crop_w = div(lift(width, 0), zoom)
    crop_h = div(lift(height, 0), zoom)
    crop_x = clamp(sub(center_x, div(crop_w, lift(2, 0))), lift(0, 0), sub(lift(width, 0), crop_w))
    crop_y = clamp(sub(center_y, div(crop_h, lift(2, 0))), lift(0, 0), sub(lift(height, 0), crop_h))

    return CropExpressions(
        width=width,
        height=height,
        zoom=zoom,
        crop_w=crop_w,
        crop_h=crop_h,
        crop_x=crop_x,
        crop_y=crop_y,
    )


def compile_to_filter_expression(
    timeline: Sequence[ViewportState],
    width: int,
    height: int,
    keyframe_interval: int = 15,
) -> str:
    """Compila a timeline densa na cadeia crop/scale"""
    return build_crop_expressions(timeline, width, height, keyframe_interval).to_filter()
