# -*- coding: utf-8 -*-
"""
Execução de comandos FFmpeg
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..infra.logging import get_logger


class RenderError(RuntimeError):
    """Falha na execução do FFmpeg; carrega o stderr da ferramenta"""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


@dataclass(frozen=True)
class RenderResult:
    """Resultado de uma etapa de renderização"""

    success: bool
    output_path: Optional[Path] = None
    stderr: str = ""


class Runner:
    """Executa comandos FFmpeg bloqueando até o término"""

    def run(
        self,
        cmd: list[str],
        timeout: Optional[float] = 600,
    ) -> subprocess.CompletedProcess:
        """
        Executa o comando com timeout

        Em caso de timeout o processo é encerrado pelo subprocess.run; a saída
        parcial deve ser descartada pelo chamador.
        """
        logger = get_logger("Runner")
        logger.info("Executando comando FFmpeg: %s", " ".join(map(str, cmd)))

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error("Timeout após %ss: %s", timeout, " ".join(map(str, cmd)))
            raise RenderError(f"Comando FFmpeg excedeu timeout de {timeout}s")
        except OSError as e:
            logger.error("Não foi possível executar o FFmpeg: %s", e)
            raise RenderError(f"Erro na execução do FFmpeg: {e}", str(e))

        if result.returncode != 0:
            logger.error(
                "Comando FFmpeg retornou código %d. Stderr: %s",
                result.returncode,
                result.stderr,
            )
            raise RenderError(
                f"FFmpeg falhou com código {result.returncode}", result.stderr
            )

        logger.info("Comando FFmpeg finalizado com sucesso.")
        return result


class RenderInvoker:
    """
    Executa uma etapa de renderização e reporta sucesso ou falha

    Não há nova tentativa automática: a saída pode estar parcialmente escrita.
    """

    def __init__(self, runner: Runner = None, timeout: Optional[float] = 600):
        self.logger = get_logger("RenderInvoker")
        self.runner = runner or Runner()
        self.timeout = timeout

    def invoke(self, cmd: list[str], output_path: Path, stage: str) -> RenderResult:
        """Roda o comando da etapa (ex: "mix", "crop")"""
        try:
            self.runner.run(cmd, timeout=self.timeout)
        except RenderError as e:
            self.logger.error("%s failed: %s", stage, e.stderr or e)
            return RenderResult(success=False, stderr=e.stderr or str(e))

        output_path = Path(output_path)
        if not output_path.exists():
            self.logger.error("%s failed: saída não encontrada em %s", stage, output_path)
            return RenderResult(success=False, stderr=f"saída ausente: {output_path}")

        return RenderResult(success=True, output_path=output_path)
