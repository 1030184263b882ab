# -*- coding: utf-8 -*-
"""
Construção de comandos FFmpeg para as etapas de renderização
"""

from pathlib import Path
from typing import List, Sequence

from ..infra.logging import get_logger
from ..infra.paths import ffmpeg_bin
from ..infra.settings import AppSettings, settings as app_settings
from .graph_builder import AudioMix


class CliBuilder:
    """Constrói comandos FFmpeg a partir dos filtros compilados"""

    def __init__(self, settings: AppSettings = None):
        self.logger = get_logger("CliBuilder")
        self.settings = settings or app_settings

    def make_command(
        self,
        inputs: Sequence[Path],
        filter_graph: str,
        out_path: Path,
        maps: Sequence[str] = (),
        codec_args: Sequence[str] = (),
        simple_filter: bool = False,
    ) -> List[str]:
        """
        Gera o comando FFmpeg completo

        simple_filter usa -vf (um input, uma cadeia); caso contrário
        -filter_complex com os maps explícitos.
        """
        cmd = [ffmpeg_bin(self.settings), "-y"]

        for input_path in inputs:
            cmd.extend(["-i", str(input_path)])

        if filter_graph:
            cmd.extend(["-vf" if simple_filter else "-filter_complex", filter_graph])

        for stream in maps:
            cmd.extend(["-map", stream])

        cmd.extend(codec_args)
        cmd.append(str(out_path))

        self.logger.debug("Comando FFmpeg: %s", " ".join(map(str, cmd)))
        return cmd

    def make_mix_command(self, mix: AudioMix, out_path: Path) -> List[str]:
        """Vídeo do input 0 sem recodificar + áudio mixado"""
        self.logger.info("Construindo comando de mixagem para %d inputs", len(mix.inputs))
        return self.make_command(
            mix.inputs,
            mix.filter_graph,
            out_path,
            maps=["0:v", f"[{mix.output_label}]"],
            codec_args=[
                "-c:v",
                "copy",
                "-c:a",
                self.settings.audio_codec,
                "-b:a",
                self.settings.audio_bitrate,
            ],
        )

    def make_viewport_command(
        self, input_video: Path, video_filter: str, out_path: Path
    ) -> List[str]:
        """Aplica crop/scale mantendo o áudio original"""
        self.logger.info("Construindo comando de viewport para %s", Path(input_video).name)
        return self.make_command(
            [input_video],
            video_filter,
            out_path,
            codec_args=["-c:a", "copy"],
            simple_filter=True,
        )
