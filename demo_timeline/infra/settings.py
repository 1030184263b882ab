# -*- coding: utf-8 -*-
"""
Gerenciamento de configurações usando pydantic-settings
"""

import json
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """Configurações da aplicação"""

    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None

    # Áudio
    crossfade_min_ms: int = 500  # Crossfade mínimo ao trocar a faixa de um canal
    settle_margin_ms: int = 200  # Folga após reprodução ao vivo
    default_stop_fade_ms: int = 500
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"

    # Viewport
    viewport_fps: int = 30
    keyframe_interval: int = 15  # 0.5s a 30fps
    default_width: int = 1920
    default_height: int = 1080

    render_timeout: Optional[float] = 600

    class Config:
        env_prefix = "DEMO_TIMELINE_"
        env_file = ".env"
        case_sensitive = False
        # config.json pode trazer chaves de outras partes da ferramenta
        extra = "ignore"


def load_settings(config_path: Path = Path("config.json")) -> AppSettings:
    """Carrega as configurações da aplicação"""
    # Primeiro tenta carregar do config.json
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = json.load(f)
        return AppSettings(**config_data)

    # Senão carrega das variáveis de ambiente ou padrões
    return AppSettings()


# Instância global das configurações
settings = load_settings()
