# -*- coding: utf-8 -*-
"""
Modelos de domínio para canais e eventos de áudio
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Protocol, Union

ChannelRole = Literal["music", "narration", "sfx", "ambient", "custom"]
ChannelOutput = Literal["virtual-mic", "monitor", "both", "post-only"]
AudioEventType = Literal["play", "stop", "volume"]

NARRATION_CHANNEL = 1
LIVE_OUTPUTS = ("virtual-mic", "both")


@dataclass(frozen=True)
class Channel:
    """Uma faixa de áudio independente, com roteamento e volume próprios"""

    id: int
    role: ChannelRole = "custom"
    output: ChannelOutput = "post-only"
    volume: float = 1.0  # 0.0 - 1.0
    pan: float = 0.0  # -1.0 (esquerda) a 1.0 (direita)

    @classmethod
    def default(cls, channel_id: int) -> Channel:
        """Canal padrão: o canal 1 é narração ao vivo, os demais só pós-produção"""
        if channel_id == NARRATION_CHANNEL:
            return cls(id=channel_id, role="narration", output="virtual-mic")
        return cls(id=channel_id)

    @property
    def is_live(self) -> bool:
        """Se o canal é reproduzido ao vivo no microfone virtual"""
        return self.output in LIVE_OUTPUTS

    @property
    def is_post_mixed(self) -> bool:
        """Canais só virtual-mic já estão gravados no vídeo capturado"""
        return self.output != "virtual-mic"


@dataclass(frozen=True)
class AudioEvent:
    """Registro imutável de algo que aconteceu em um canal"""

    type: AudioEventType
    channel: int
    time: float  # ms desde o início da gravação
    file: Optional[Path] = None
    fade_in: float = 0.0
    fade_out: float = 0.0
    loop: bool = False
    volume: Optional[float] = None
    duration: float = 0.0  # Rampa de volume em ms
    audio_duration: float = 0.0  # Duração real do arquivo em ms
    start_at: float = 0.0  # Deslocamento dentro do arquivo em ms


@dataclass(frozen=True)
class ActiveTrack:
    """Arquivo tocando no momento em um canal"""

    file: Path
    start_time: float
    duration: float
    fade_in: float = 0.0
    fade_out: float = 0.0
    loop: bool = False
    volume: float = 1.0


def parse_duration(value: Union[str, int, float, None]) -> float:
    """
    Converte uma duração em milissegundos

    Números são milissegundos; strings aceitam os sufixos "ms" e "s"
    ("500ms", "1.5s"). Sem sufixo, assume milissegundos.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)

    text = value.strip().lower()
    if text.endswith("ms"):
        return float(text[:-2])
    if text.endswith("s"):
        return float(text[:-1]) * 1000
    return float(text)


class LiveSink(Protocol):
    """Reprodução ao vivo (microfone virtual) durante a captura"""

    async def play(self, file_path: Path) -> Mapping[str, Any]:
        """Toca o arquivo; o resultado pode trazer "duration" em segundos"""
        ...

    async def stop(self) -> None:
        ...
