# -*- coding: utf-8 -*-
"""
Serviços de mídia/IO: consulta de duração e dimensões via FFprobe
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .logging import get_logger
from .paths import ffprobe_bin
from .settings import AppSettings


@dataclass(frozen=True)
class MediaInfo:
    """Resultado de uma consulta ao FFprobe"""

    duration_ms: float = 0.0
    width: Optional[int] = None
    height: Optional[int] = None


class MediaProbe:
    """
    Consulta duração/dimensões de arquivos de mídia

    Arquivos ausentes e falhas do FFprobe não são erros: o resultado é um
    MediaInfo vazio (duração 0). Os resultados ficam em cache por caminho até
    clear_cache().
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self.logger = get_logger("MediaProbe")
        self.settings = settings
        self._cache: Dict[str, MediaInfo] = {}

    def probe(self, media_path: Path) -> MediaInfo:
        """Obtém informações do arquivo, usando o cache quando possível"""
        key = str(media_path)
        if key not in self._cache:
            self._cache[key] = self._run_probe(Path(media_path))
        return self._cache[key]

    def get_duration_ms(self, media_path: Path) -> float:
        """Obtém duração em milissegundos (0 se indisponível)"""
        return self.probe(media_path).duration_ms

    def get_resolution(
        self, video_path: Path, default: tuple[int, int]
    ) -> tuple[int, int]:
        """Obtém (largura, altura) do vídeo, com fallback para o padrão informado"""
        info = self.probe(video_path)
        if info.width and info.height:
            return info.width, info.height
        return default

    def forget(self, media_path: Path):
        """Descarta o resultado em cache de um arquivo (ex: vídeo regravado)"""
        self._cache.pop(str(media_path), None)

    def clear_cache(self):
        self._cache.clear()

    def _run_probe(self, media_path: Path) -> MediaInfo:
        if not media_path.exists():
            self.logger.warning("Arquivo de mídia não encontrado: %s", media_path)
            return MediaInfo()

        try:
            result = subprocess.run(
                [
                    ffprobe_bin(self.settings),
                    "-v",
                    "error",
                    "-show_entries",
                    "stream=codec_type,width,height:format=duration",
                    "-of",
                    "json",
                    str(media_path),
                ],
                capture_output=True,
                text=True,
                check=True,
            )
            data = json.loads(result.stdout)
        except (OSError, subprocess.CalledProcessError, ValueError) as e:
            self.logger.warning("Erro ao consultar %s: %s", media_path, e)
            return MediaInfo()

        return self._parse_probe_output(data)

    def _parse_probe_output(self, data: dict) -> MediaInfo:
        """Converte o JSON do FFprobe em MediaInfo"""
        try:
            duration_ms = float(data.get("format", {}).get("duration", 0)) * 1000
        except (TypeError, ValueError):
            duration_ms = 0.0

        width = height = None
        for stream in data.get("streams", []):
            if stream.get("codec_type") == "video" and stream.get("width"):
                width = int(stream["width"])
                height = int(stream["height"])
                break

        self.logger.debug(
            "Mídia: duração=%.0fms dimensões=%sx%s", duration_ms, width, height
        )
        return MediaInfo(duration_ms=duration_ms, width=width, height=height)
