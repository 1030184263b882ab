# -*- coding: utf-8 -*-
"""
Modelos de domínio para comandos de viewport e trilha do cursor
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, Union


@dataclass(frozen=True)
class Point:
    """Coordenada em pixels no espaço do vídeo de origem"""

    x: float
    y: float


# "mouse" acompanha a posição interpolada do cursor
Target = Union[Literal["mouse"], Point]


@dataclass(frozen=True)
class FollowCommand:
    """Centro acompanha o cursor entre from_ e to"""

    from_: float
    to: float
    zoom: Optional[float] = None

    @property
    def start(self) -> float:
        return self.from_


@dataclass(frozen=True)
class ZoomCommand:
    """Transição de zoom até level em [at, at + duration]"""

    level: float
    at: float = 0.0
    duration: float = 0.5
    center: Target = "mouse"

    @property
    def start(self) -> float:
        return self.at


@dataclass(frozen=True)
class PanCommand:
    """Transição do centro até `to` em [at, at + duration], sem alterar o zoom"""

    to: Target
    at: float = 0.0
    duration: float = 0.5

    @property
    def start(self) -> float:
        return self.at


@dataclass(frozen=True)
class HoldCommand:
    """Mantém o último estado confirmado entre from_ e to"""

    from_: float
    to: float

    @property
    def start(self) -> float:
        return self.from_


ViewportCommand = Union[FollowCommand, ZoomCommand, PanCommand, HoldCommand]


@dataclass(frozen=True)
class ViewportConfig:
    """Configuração completa de viewport de uma gravação"""

    commands: list[ViewportCommand] = field(default_factory=list)


@dataclass(frozen=True)
class ViewportState:
    """Estado do viewport em um instante"""

    time: float  # segundos
    zoom: float  # >= 1.0
    center_x: float
    center_y: float


@dataclass(frozen=True)
class CursorSample:
    """Posição do cursor registrada durante a captura"""

    timestamp: float  # ms
    x: float
    y: float


@dataclass(frozen=True)
class CursorTrack:
    """Trilha do cursor, ordenada por timestamp"""

    positions: list[CursorSample] = field(default_factory=list)

    @classmethod
    def from_json(cls, path: Path) -> CursorTrack:
        """Carrega a trilha salva; arquivo ausente ou inválido resulta em trilha vazia"""
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            positions = [
                CursorSample(float(p["timestamp"]), float(p["x"]), float(p["y"]))
                for p in data.get("positions", [])
            ]
        except (ValueError, KeyError, TypeError, AttributeError):
            return cls()
        return cls(positions=positions)

    def to_json(self, path: Path) -> None:
        """Salva a trilha como JSON"""
        data = {
            "positions": [
                {"timestamp": p.timestamp, "x": p.x, "y": p.y} for p in self.positions
            ]
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
