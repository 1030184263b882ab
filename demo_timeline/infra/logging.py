# -*- coding: utf-8 -*-
"""
Configuração de logging da aplicação

Todos os loggers ficam sob "demo_timeline" (ex: demo_timeline.MediaProbe), então
setup_logging configura só a hierarquia do pacote e não mexe no logger raiz
de quem embute a biblioteca.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "demo_timeline"


def setup_logging(
    log_file: Optional[Union[str, Path]] = "demo_timeline.log",
    level: int = logging.INFO,
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """
    Configura o logging do pacote

    Arquivo recebe tudo a partir de `level`; o console só warnings e erros por
    padrão. Chamadas repetidas substituem os handlers instalados antes.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in [h for h in logger.handlers if getattr(h, "_demo_timeline", False)]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = []

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    handlers.append(console_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._demo_timeline = True
        logger.addHandler(handler)

    logger.setLevel(min(level, console_level))
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
