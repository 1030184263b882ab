# -*- coding: utf-8 -*-
"""
Resolução dos binários FFmpeg/FFprobe e de caminhos de mídia
"""

import os
import shutil
from pathlib import Path
from typing import Optional

from .settings import AppSettings, settings


def _resolve_bin(configured: Optional[str], name: str) -> str:
    if configured:
        return configured
    exe_name = f"{name}.exe" if os.name == "nt" else name
    return shutil.which(exe_name) or exe_name


def ffmpeg_bin(app_settings: Optional[AppSettings] = None) -> str:
    """Resolve o caminho para o binário do FFmpeg"""
    return _resolve_bin((app_settings or settings).ffmpeg_path, "ffmpeg")


def ffprobe_bin(app_settings: Optional[AppSettings] = None) -> str:
    """Resolve o caminho para o binário do FFprobe"""
    return _resolve_bin((app_settings or settings).ffprobe_path, "ffprobe")


def resolve_media_path(file: str, base_path: Path) -> Path:
    """
    Resolve o caminho de um arquivo de mídia

    Caminhos absolutos e relativos ao home passam direto; os demais são
    relativos a base_path.
    """
    if file.startswith("~"):
        return Path(file).expanduser()
    path = Path(file)
    if path.is_absolute():
        return path
    return (Path(base_path) / path).resolve()
