# -*- coding: utf-8 -*-
"""
Construção de filtergraph FFmpeg para a mixagem dos canais de áudio
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from ..domain.models.audio import AudioEvent, Channel
from ..infra.logging import get_logger
from .expressions import Expr, piecewise_linear

AMIX_DROPOUT_TRANSITION = 2
LOOP_FILTER = "aloop=loop=-1:size=2e+09"


def format_seconds(ms: float) -> str:
    """Converte milissegundos em segundos com no máximo 3 casas decimais"""
    text = f"{ms / 1000:.3f}".rstrip("0").rstrip(".")
    return text or "0"


def format_volume(volume: float) -> str:
    text = f"{volume:.3f}".rstrip("0").rstrip(".")
    return text or "0"


class FilterGraph:
    """Representa um filtergraph FFmpeg"""

    def __init__(self):
        self.filters: List[str] = []
        self.inputs: List[Path] = []

    def add_input(self, input_path: Path) -> int:
        """Adiciona um input ao comando e retorna seu índice"""
        self.inputs.append(Path(input_path))
        return len(self.inputs) - 1

    def add_filter(self, filter_expr: str):
        """Adiciona um filtro ao graph"""
        self.filters.append(filter_expr)

    def to_string(self) -> str:
        """Converte o filtergraph para string FFmpeg"""
        return ";".join(self.filters)


@dataclass(frozen=True)
class AudioMix:
    """Resultado da compilação da timeline de áudio"""

    inputs: List[Path] = field(default_factory=list)
    filter_graph: str = ""
    has_audio: bool = False
    output_label: str = "aout"


class AudioGraphBuilder:
    """Compila eventos de áudio + configuração dos canais em um filtergraph"""

    def __init__(self):
        self.logger = get_logger("AudioGraphBuilder")

    def build(
        self,
        video_path: Path,
        events: Sequence[AudioEvent],
        channels: Mapping[int, Channel],
        video_duration: Optional[float] = None,
        initial_volumes: Optional[Mapping[int, float]] = None,
    ) -> AudioMix:
        """
        Constrói o filtergraph da mixagem final

        O input 0 é sempre o vídeo. Cada evento play de um canal mixado em
        pós-produção vira um input com sua cadeia de filtros; todos são
        combinados em um único amix, cortado em video_duration (segundos)
        quando informado.
        """
        graph = FilterGraph()
        graph.add_input(video_path)
        mix_labels: List[str] = []
        initial_volumes = initial_volumes or {}

        for channel_id, channel_events in self._group_by_channel(events).items():
            channel = channels.get(channel_id) or Channel.default(channel_id)

            # Canais só virtual-mic já estão no áudio capturado
            if not channel.is_post_mixed:
                self.logger.debug("Canal %d é ao vivo, ignorado na mixagem", channel_id)
                continue

            volume_curve = self._volume_curve(
                channel_events, initial_volumes.get(channel_id, channel.volume)
            )

            segment = 0
            for position, event in enumerate(channel_events):
                if event.type != "play" or event.file is None:
                    continue
                if event.audio_duration <= 0:
                    self.logger.warning(
                        "Áudio sem duração ignorado na mixagem: %s", event.file
                    )
                    continue

                stop = self._find_stop(channel_events, position)
                chain = self._segment_chain(event, stop, channel, volume_curve)

                input_index = graph.add_input(event.file)
                label = f"ch{channel_id}_{segment}"
                graph.add_filter(f"[{input_index}:a]{','.join(chain)}[{label}]")
                mix_labels.append(f"[{label}]")
                segment += 1

        if not mix_labels:
            self.logger.info("Nenhum canal produz áudio de pós-produção")
            return AudioMix(inputs=[Path(video_path)], filter_graph="", has_audio=False)

        amix = (
            f"{''.join(mix_labels)}amix=inputs={len(mix_labels)}"
            f":duration=longest:dropout_transition={AMIX_DROPOUT_TRANSITION}"
        )
        if video_duration and video_duration > 0:
            # Áudio nunca ultrapassa o vídeo
            amix += f",atrim=0:{format_seconds(video_duration * 1000)},asetpts=PTS-STARTPTS"
        graph.add_filter(f"{amix}[aout]")

        self.logger.info(
            "Filtergraph de áudio com %d segmentos construído", len(mix_labels)
        )
        self.logger.debug("Filtergraph: %s", graph.to_string())
        return AudioMix(inputs=list(graph.inputs), filter_graph=graph.to_string(), has_audio=True)

    def _group_by_channel(
        self, events: Sequence[AudioEvent]
    ) -> Dict[int, List[AudioEvent]]:
        grouped: Dict[int, List[AudioEvent]] = {}
        for event in events:
            grouped.setdefault(event.channel, []).append(event)
        return grouped

    def _find_stop(
        self, channel_events: Sequence[AudioEvent], position: int
    ) -> Optional[AudioEvent]:
        """Primeiro stop registrado depois do play, no mesmo canal"""
        play = channel_events[position]
        for event in channel_events[position + 1 :]:
            if event.type == "stop" and event.time >= play.time:
                return event
        return None

    def _segment_chain(
        self,
        event: AudioEvent,
        stop: Optional[AudioEvent],
        channel: Channel,
        volume_curve: Optional[Expr],
    ) -> List[str]:
        """
        Cadeia de filtros de um segmento

        Depois do adelay os timestamps do stream estão no tempo absoluto da
        gravação, então os pontos dos fades são absolutos.
        """
        filters: List[str] = []

        if event.start_at > 0:
            filters.append(f"atrim=start={format_seconds(event.start_at)},asetpts=PTS-STARTPTS")

        if event.loop:
            filters.append(LOOP_FILTER)

        delay_ms = max(0, int(round(event.time)))
        filters.append(f"adelay={delay_ms}|{delay_ms}")

        if event.fade_in > 0:
            filters.append(
                f"afade=t=in:st={format_seconds(delay_ms)}:d={format_seconds(event.fade_in)}"
            )

        playable = max(0.0, event.audio_duration - event.start_at)
        natural_end = None if event.loop else event.time + playable
        cut_short = stop is not None and (natural_end is None or stop.time < natural_end)
        end_time = stop.time if stop is not None else natural_end

        # Um stop antes do fim natural usa o próprio fade (crossfade inclusive)
        fade_out = stop.fade_out if cut_short else event.fade_out

        if fade_out > 0 and end_time is not None:
            fade_start = end_time - event.time - fade_out
            # Janelas de fade negativas são omitidas
            if fade_start >= 0:
                filters.append(
                    f"afade=t=out:st={format_seconds(event.time + fade_start)}"
                    f":d={format_seconds(fade_out)}"
                )

        if cut_short:
            filters.append(f"atrim=end={format_seconds(stop.time)}")

        if event.volume is not None:
            if event.volume != 1.0:
                filters.append(f"volume={format_volume(event.volume)}")
        elif volume_curve is not None:
            filters.append(f"volume=volume='{volume_curve.render()}':eval=frame")
        elif channel.volume != 1.0:
            filters.append(f"volume={format_volume(channel.volume)}")

        return filters

    def _volume_curve(
        self, channel_events: Sequence[AudioEvent], initial_volume: float
    ) -> Optional[Expr]:
        """Automação de volume do canal a partir dos eventos volume"""
        volume_events = sorted(
            (e for e in channel_events if e.type == "volume" and e.volume is not None),
            key=lambda e: e.time,
        )
        if not volume_events:
            return None

        points = [(0.0, initial_volume)]
        current = initial_volume
        for event in volume_events:
            start = event.time / 1000
            end = (event.time + max(0.0, event.duration)) / 1000
            points.append((start, current))
            points.append((end, event.volume))
            current = event.volume

        return piecewise_linear(points, value_precision=3, slope_precision=4)
