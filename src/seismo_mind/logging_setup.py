"""Logging configuration for the Seismo-Mind CLI."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Dict


@dataclass
class LoggerConfig:
    level: int = logging.WARNING
    fmt: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(config: LoggerConfig | None = None) -> Dict[str, logging.Logger]:
    """Configure the root logger to write to stderr; stdout stays reserved for JSON."""
    cfg = config or LoggerConfig()
    logging.basicConfig(level=cfg.level, format=cfg.fmt, stream=sys.stderr, force=True)
    return {
        "seismo_mind": logging.getLogger("seismo_mind"),
        "poster": logging.getLogger("seismo_mind.poster"),
        "datasource": logging.getLogger("seismo_mind.datasource"),
    }
