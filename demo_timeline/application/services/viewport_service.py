# -*- coding: utf-8 -*-
"""
Timeline de viewport: zoom/pan guiados pela trilha do cursor

Os comandos são avaliados como um fold com estado sobre a lista ordenada:
zoom e pan são relativos a "onde o comando anterior parou". Cada quadro parte
do estado confirmado e aplica os comandos cuja janela o contém.
"""

from __future__ import annotations
import math
import shutil
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

from ...domain.models.viewport import (
    CursorTrack,
    FollowCommand,
    HoldCommand,
    PanCommand,
    Point,
    Target,
    ViewportCommand,
    ViewportConfig,
    ViewportState,
    ZoomCommand,
)
from ...infra.logging import get_logger
from ...infra.media_io import MediaProbe
from ...infra.settings import AppSettings, settings as app_settings
from ...rendering.cli_builder import CliBuilder
from ...rendering.runner import RenderInvoker
from ...rendering.viewport_filter import compile_to_filter_expression

FALLBACK_DURATION = 5.0  # segundos, quando o FFprobe não informa

BEFORE, INSIDE, AFTER = "before", "inside", "after"


def cursor_at(track: CursorTrack, time_ms: float) -> Point:
    """
    Posição do cursor em time_ms

    Antes da primeira amostra ou depois da última, retorna a amostra da borda;
    entre duas amostras, interpola x e y linearmente.
    """
    positions = track.positions
    if not positions:
        return Point(0.0, 0.0)

    first, last = positions[0], positions[-1]
    if time_ms <= first.timestamp:
        return Point(first.x, first.y)
    if time_ms >= last.timestamp:
        return Point(last.x, last.y)

    for before, after in zip(positions, positions[1:]):
        if before.timestamp <= time_ms <= after.timestamp:
            if time_ms == before.timestamp:
                return Point(before.x, before.y)
            if time_ms == after.timestamp:
                return Point(after.x, after.y)
            ratio = (time_ms - before.timestamp) / (after.timestamp - before.timestamp)
            return Point(
                before.x + (after.x - before.x) * ratio,
                before.y + (after.y - before.y) * ratio,
            )

    return Point(last.x, last.y)


def ease_in_out(t: float) -> float:
    """Ease-in-out quadrático"""
    if t < 0.5:
        return 2 * t * t
    return 1 - (-2 * t + 2) ** 2 / 2


def window_phase(time: float, start: float, duration: float) -> tuple[str, float]:
    """
    Fase de uma janela [start, start + duration] em `time`

    Retorna (fase, progresso), com progresso em [0, 1]. Durações nulas ou
    negativas viram uma janela instantânea.
    """
    duration = max(0.0, duration)
    end = start + duration
    if time < start:
        return BEFORE, 0.0
    if time <= end:
        progress = (time - start) / duration if duration > 0 else 1.0
        return INSIDE, progress
    return AFTER, 1.0


def interpolate(origin: float, target: float, progress: float) -> float:
    return origin + (target - origin) * ease_in_out(progress)


@dataclass(frozen=True)
class FoldState:
    """Estado confirmado que atravessa os quadros"""

    zoom: float
    center_x: float
    center_y: float
    # Centro no início da janela de cada pan, por índice do comando
    pan_origins: Mapping[int, Point] = field(default_factory=dict)
    # Pans cujo alvo já virou o centro confirmado
    committed_pans: frozenset = frozenset()


def _target_point(target: Target, track: CursorTrack, time_ms: float, fallback: Point) -> Point:
    if target == "mouse":
        if not track.positions:
            return fallback
        return cursor_at(track, time_ms)
    return target


def apply_command(
    index: int,
    command: ViewportCommand,
    frame: ViewportState,
    state: FoldState,
    track: CursorTrack,
) -> tuple[ViewportState, FoldState]:
    """Aplica um comando ao quadro corrente, retornando (quadro, estado) novos"""
    time = frame.time
    time_ms = time * 1000
    here = Point(frame.center_x, frame.center_y)

    if isinstance(command, FollowCommand):
        if command.from_ <= time <= max(command.from_, command.to):
            pos = _target_point("mouse", track, time_ms, here)
            frame = replace(frame, center_x=pos.x, center_y=pos.y)
            if command.zoom:
                frame = replace(frame, zoom=command.zoom)
        return frame, state

    if isinstance(command, ZoomCommand):
        phase, progress = window_phase(time, command.at, command.duration)
        if phase == INSIDE:
            center = _target_point(command.center, track, time_ms, here)
            frame = replace(
                frame,
                zoom=interpolate(state.zoom, command.level, progress),
                center_x=center.x,
                center_y=center.y,
            )
        elif phase == AFTER:
            state = replace(state, zoom=command.level)
            frame = replace(frame, zoom=command.level)
        return frame, state

    if isinstance(command, PanCommand):
        phase, progress = window_phase(time, command.at, command.duration)
        if phase == BEFORE:
            return frame, state

        origin = state.pan_origins.get(index)
        if origin is None:
            origin = here
            state = replace(state, pan_origins={**state.pan_origins, index: origin})

        if phase == INSIDE:
            target = _target_point(command.to, track, time_ms, here)
            frame = replace(
                frame,
                center_x=interpolate(origin.x, target.x, progress),
                center_y=interpolate(origin.y, target.y, progress),
            )
        elif index not in state.committed_pans:
            # Após a janela o alvo vira o centro confirmado, sem tocar no quadro
            end_ms = (command.at + max(0.0, command.duration)) * 1000
            target = _target_point(command.to, track, end_ms, origin)
            state = replace(
                state,
                center_x=target.x,
                center_y=target.y,
                committed_pans=state.committed_pans | {index},
            )
        return frame, state

    if isinstance(command, HoldCommand):
        if command.from_ <= time <= max(command.from_, command.to):
            frame = replace(
                frame, zoom=state.zoom, center_x=state.center_x, center_y=state.center_y
            )
        return frame, state

    return frame, state


def build_timeline(
    commands: Sequence[ViewportCommand],
    cursor_track: CursorTrack,
    video_duration: float,
    fps: int = 30,
    resolution: tuple[int, int] = (1920, 1080),
) -> List[ViewportState]:
    """
    Timeline densa (um estado por quadro) a partir dos comandos

    Os comandos são ordenados pelo início (ordenação estável: empates mantêm
    a ordem de declaração) e, em cada quadro, o último aplicável prevalece.
    """
    ordered = sorted(commands, key=lambda c: c.start)
    frame_count = max(0, math.ceil(video_duration * fps))

    width, height = resolution
    state = FoldState(zoom=1.0, center_x=width / 2, center_y=height / 2)
    states: List[ViewportState] = []

    for frame_index in range(frame_count):
        start = (state.center_x, state.center_y)
        frame = ViewportState(
            time=frame_index / fps,
            zoom=state.zoom,
            center_x=state.center_x,
            center_y=state.center_y,
        )
        for index, command in enumerate(ordered):
            frame, state = apply_command(index, command, frame, state, cursor_track)

        states.append(frame)
        # O centro só é carregado quando algum comando o moveu neste quadro;
        # o zoom só muda ao confirmar
        if (frame.center_x, frame.center_y) != start:
            state = replace(state, center_x=frame.center_x, center_y=frame.center_y)

    return states


def _parse_target(value: Any) -> Target:
    if isinstance(value, Mapping):
        return Point(float(value["x"]), float(value["y"]))
    return "mouse"


def parse_viewport_config(config: Optional[Mapping[str, Any]]) -> ViewportConfig:
    """
    Converte a seção `viewport` de uma cena em ViewportConfig

    Itens aceitos: {follow: mouse, from, to, zoom}, {zoom, at, duration,
    center}, {pan, at, duration} e {hold: true, from, to}.
    """
    if not config or not config.get("viewport"):
        return ViewportConfig()

    commands: List[ViewportCommand] = []
    for item in config["viewport"]:
        if item.get("follow") == "mouse":
            commands.append(
                FollowCommand(
                    from_=float(item.get("from") or 0),
                    to=float(item.get("to") or 999),
                    zoom=item.get("zoom"),
                )
            )
        elif item.get("zoom") is not None:
            commands.append(
                ZoomCommand(
                    level=float(item["zoom"]),
                    at=float(item.get("at") or 0),
                    duration=float(item.get("duration") or 0.5),
                    center=_parse_target(item.get("center")),
                )
            )
        elif item.get("pan"):
            commands.append(
                PanCommand(
                    to=_parse_target(item["pan"]),
                    at=float(item.get("at") or 0),
                    duration=float(item.get("duration") or 0.5),
                )
            )
        elif item.get("hold"):
            commands.append(
                HoldCommand(from_=float(item.get("from") or 0), to=float(item.get("to") or 0))
            )

    return ViewportConfig(commands=commands)


class ViewportService:
    """Aplica os comandos de viewport a um vídeo gravado"""

    def __init__(
        self,
        probe: MediaProbe = None,
        invoker: RenderInvoker = None,
        cli_builder: CliBuilder = None,
        settings: AppSettings = None,
    ):
        self.logger = get_logger("ViewportService")
        self.settings = settings or app_settings
        self.probe = probe or MediaProbe(self.settings)
        self.invoker = invoker or RenderInvoker(timeout=self.settings.render_timeout)
        self.cli_builder = cli_builder or CliBuilder(self.settings)

    def apply_viewport(
        self,
        input_video: Path,
        output_video: Path,
        cursor_track: CursorTrack,
        config: ViewportConfig,
        resolution: Optional[tuple[int, int]] = None,
    ) -> bool:
        """Renderiza o crop/zoom; sem comandos, copia o vídeo sem alterações"""
        if not config.commands:
            return self._copy(input_video, output_video)

        # O arquivo pode ter sido regravado desde a última renderização
        self.probe.forget(Path(input_video))
        default = resolution or (self.settings.default_width, self.settings.default_height)
        width, height = self.probe.get_resolution(Path(input_video), default)
        video_duration = self.probe.get_duration_ms(Path(input_video)) / 1000
        if video_duration <= 0:
            self.logger.warning(
                "Duração de %s indisponível, usando %.1fs", input_video, FALLBACK_DURATION
            )
            video_duration = FALLBACK_DURATION

        timeline = build_timeline(
            config.commands,
            cursor_track,
            video_duration,
            fps=self.settings.viewport_fps,
            resolution=(width, height),
        )
        if len(timeline) < 2:
            return self._copy(input_video, output_video)

        video_filter = compile_to_filter_expression(
            timeline, width, height, self.settings.keyframe_interval
        )
        self.logger.info(
            "Aplicando viewport (%d comandos, %dx%d, %.1fs)",
            len(config.commands),
            width,
            height,
            video_duration,
        )

        cmd = self.cli_builder.make_viewport_command(input_video, video_filter, output_video)
        return self.invoker.invoke(cmd, output_video, "crop").success

    def _copy(self, input_video: Path, output_video: Path) -> bool:
        try:
            shutil.copyfile(input_video, output_video)
        except OSError as e:
            self.logger.error("Falha ao copiar %s: %s", input_video, e)
            return False
        return True
