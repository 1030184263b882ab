# -*- coding: utf-8 -*-
"""
Gerenciador da timeline de áudio multicanal

- Canal 1 (narração): reprodução ao vivo pelo microfone virtual
- Demais canais: registrados na timeline para a mixagem de pós-produção
"""

from __future__ import annotations
import asyncio
import shutil
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from ...domain.models.audio import (
    NARRATION_CHANNEL,
    ActiveTrack,
    AudioEvent,
    Channel,
    LiveSink,
    parse_duration,
)
from ...infra.logging import get_logger
from ...infra.media_io import MediaProbe
from ...infra.paths import resolve_media_path
from ...infra.settings import AppSettings, settings as app_settings
from ...rendering.cli_builder import CliBuilder
from ...rendering.graph_builder import AudioGraphBuilder, AudioMix
from ...rendering.runner import RenderInvoker


class AudioTimelineManager:
    """
    Timeline de áudio de uma sessão de gravação

    Uma instância por sessão; reset() é a única forma de reutilizá-la.
    """

    def __init__(
        self,
        live_sink: Optional[LiveSink] = None,
        probe: MediaProbe = None,
        invoker: RenderInvoker = None,
        cli_builder: CliBuilder = None,
        settings: AppSettings = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.logger = get_logger("AudioTimelineManager")
        self.settings = settings or app_settings
        self.live_sink = live_sink
        self.probe = probe or MediaProbe(self.settings)
        self.invoker = invoker or RenderInvoker(timeout=self.settings.render_timeout)
        self.cli_builder = cli_builder or CliBuilder(self.settings)
        self.graph_builder = AudioGraphBuilder()
        self._clock = clock
        self._sleep = sleep

        self.channels: Dict[int, Channel] = {
            NARRATION_CHANNEL: Channel.default(NARRATION_CHANNEL)
        }
        self._configured_volumes: Dict[int, float] = {}
        self.active_tracks: Dict[int, ActiveTrack] = {}
        self._timeline: List[AudioEvent] = []
        self._recording_start: Optional[float] = None
        self.base_path = Path(".")

        # Registro de evento + faixa ativa é um passo atômico
        self._lock = asyncio.Lock()

    # ─── Configuração ────────────────────────────────────────────────────

    def configure(self, config: Optional[Mapping[str, Any]], base_path: Path) -> None:
        """
        Configura canais e faixas pré-declaradas

        config: {"channels": {id: {role, output, volume, pan}},
                 "tracks": [{file, channel, start_time, fade_in, fade_out, loop, volume}]}
        """
        self.base_path = Path(base_path)
        if not config:
            return

        for raw_id, channel_config in (config.get("channels") or {}).items():
            channel_id = int(raw_id)
            default = Channel.default(channel_id)
            channel = Channel(
                id=channel_id,
                role=channel_config.get("role") or "custom",
                output=channel_config.get("output") or default.output,
                volume=float(channel_config.get("volume", 1.0)),
                pan=float(channel_config.get("pan", 0.0)),
            )
            self.channels[channel_id] = channel
            self._configured_volumes[channel_id] = channel.volume
            self.logger.debug("Canal %d configurado: %s", channel_id, channel)

        for track in config.get("tracks") or []:
            resolved = resolve_media_path(track["file"], self.base_path)
            self._timeline.append(
                AudioEvent(
                    type="play",
                    channel=int(track.get("channel", NARRATION_CHANNEL)),
                    time=parse_duration(track.get("start_time", 0)),
                    file=resolved,
                    fade_in=parse_duration(track.get("fade_in", 0)),
                    fade_out=parse_duration(track.get("fade_out", 0)),
                    loop=bool(track.get("loop", False)),
                    volume=track.get("volume"),
                    audio_duration=self.probe.get_duration_ms(resolved),
                )
            )

        self.logger.info(
            "Áudio configurado: %d canais, %d faixas pré-declaradas",
            len(self.channels),
            len(config.get("tracks") or []),
        )

    def get_channel(self, channel_id: int) -> Channel:
        return self.channels.get(channel_id) or Channel.default(channel_id)

    # ─── Relógio ─────────────────────────────────────────────────────────

    def start_recording(self) -> None:
        """Marca o início da gravação (origem dos tempos da timeline)"""
        self._recording_start = self._clock()

    def current_time(self) -> float:
        """Milissegundos desde o início da gravação (0 antes de iniciar)"""
        if self._recording_start is None:
            return 0.0
        return (self._clock() - self._recording_start) * 1000

    # ─── Eventos ─────────────────────────────────────────────────────────

    async def play(
        self,
        file: str,
        channel: int = NARRATION_CHANNEL,
        wait: bool = True,
        fade_in: float = 0,
        fade_out: float = 0,
        start_at: Optional[float] = None,
        loop: bool = False,
    ) -> float:
        """Toca um arquivo no canal; retorna a duração em milissegundos"""
        channel_config = self.get_channel(channel)
        resolved = resolve_media_path(file, self.base_path)
        duration = self.probe.get_duration_ms(resolved)
        if duration <= 0:
            self.logger.warning("Áudio ausente ou vazio: %s", resolved)

        async with self._lock:
            now = self.current_time()
            existing = self.active_tracks.get(channel)
            if existing is not None:
                crossfade = max(fade_in, existing.fade_out, self.settings.crossfade_min_ms)
                self._timeline.append(
                    AudioEvent(type="stop", channel=channel, time=now, fade_out=crossfade)
                )
                self.logger.debug(
                    "Crossfade de %.0fms no canal %d (%s)", crossfade, channel, existing.file
                )

            self._timeline.append(
                AudioEvent(
                    type="play",
                    channel=channel,
                    time=now,
                    file=resolved,
                    fade_in=fade_in,
                    fade_out=fade_out,
                    loop=loop,
                    audio_duration=duration,
                    start_at=start_at or 0.0,
                )
            )
            self.active_tracks[channel] = ActiveTrack(
                file=resolved,
                start_time=now,
                duration=duration,
                fade_in=fade_in,
                fade_out=fade_out,
                loop=loop,
                volume=channel_config.volume,
            )

        if channel_config.is_live:
            # Sem saída ao vivo conectada não há o que esperar
            if self.live_sink is not None:
                result = await self.live_sink.play(resolved) or {}
                if wait:
                    reported = result.get("duration")
                    wait_ms = reported * 1000 if reported else duration
                    await self._sleep((wait_ms + self.settings.settle_margin_ms) / 1000)
        elif wait and channel_config.output == "post-only":
            # Sem reprodução real, a espera mantém o ritmo da cena
            await self._sleep(duration / 1000)

        return duration

    async def stop(self, channel: Optional[int] = None, fade_out: Optional[float] = None) -> None:
        """Para um canal ou, sem canal, todos os que estão tocando"""
        if fade_out is None:
            fade_out = self.settings.default_stop_fade_ms

        async with self._lock:
            now = self.current_time()
            targets = [channel] if channel is not None else list(self.active_tracks)
            for channel_id in targets:
                self._timeline.append(
                    AudioEvent(type="stop", channel=channel_id, time=now, fade_out=fade_out)
                )
                self.active_tracks.pop(channel_id, None)

        if self.live_sink is not None and any(self.get_channel(c).is_live for c in targets):
            await self.live_sink.stop()

    async def set_volume(self, channel: int, volume: float, duration: float = 0) -> None:
        """Altera o volume do canal, com rampa linear se duration > 0"""
        volume = min(1.0, max(0.0, volume))
        async with self._lock:
            self._timeline.append(
                AudioEvent(
                    type="volume",
                    channel=channel,
                    time=self.current_time(),
                    volume=volume,
                    duration=max(0.0, duration),
                )
            )
            current = self.get_channel(channel)
            self._configured_volumes.setdefault(channel, current.volume)
            self.channels[channel] = replace(current, volume=volume)
            track = self.active_tracks.get(channel)
            if track is not None:
                self.active_tracks[channel] = replace(track, volume=volume)

    @property
    def timeline(self) -> List[AudioEvent]:
        return list(self._timeline)

    def get_timeline(self) -> List[AudioEvent]:
        """Cópia da timeline gravada"""
        return list(self._timeline)

    # ─── Compilação e renderização ───────────────────────────────────────

    def compile_filter_graph(
        self, video_path: Path, video_duration: Optional[float] = None
    ) -> AudioMix:
        """Compila a timeline no filtergraph da mixagem (video_duration em segundos)"""
        return self.graph_builder.build(
            Path(video_path),
            self._timeline,
            self.channels,
            video_duration=video_duration,
            initial_volumes=self._configured_volumes,
        )

    def render_final_mix(self, video_path: Path, output_path: Path) -> bool:
        """Combina o vídeo capturado com o áudio da timeline"""
        # O vídeo pode ter sido regravado desde a última renderização
        self.probe.forget(Path(video_path))
        video_duration = self.probe.get_duration_ms(Path(video_path)) / 1000
        mix = self.compile_filter_graph(video_path, video_duration)

        if not mix.has_audio:
            self.logger.info("Sem áudio de pós-produção, copiando o vídeo")
            try:
                shutil.copyfile(video_path, output_path)
            except OSError as e:
                self.logger.error("Falha ao copiar %s: %s", video_path, e)
                return False
            return True

        cmd = self.cli_builder.make_mix_command(mix, Path(output_path))
        return self.invoker.invoke(cmd, Path(output_path), "mix").success

    def reset(self) -> None:
        """Limpa timeline, faixas ativas e relógio para uma nova gravação"""
        self._timeline = []
        self.active_tracks.clear()
        self._recording_start = None
        for channel_id, volume in self._configured_volumes.items():
            self.channels[channel_id] = replace(self.get_channel(channel_id), volume=volume)
        self.probe.clear_cache()
