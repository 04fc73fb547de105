"""
Logging for V2X entities.

One named logger per entity (TA, registrant, verifier, session manager).
Sessions run their two roles on worker threads, so records carry the thread
name. Secrets are never logged; public values appear only as fingerprints.
"""

import logging
import sys
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

# [2025-10-09 14:30:45] [ThreadPoolExecutor-0_1] [REGISTRANT_3] [INFO] Messaggio
LOG_FORMAT = "[%(asctime)s] [%(threadName)s] [%(name)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class V2XLogger:
    """Cache of configured entity loggers with console and optional file output."""

    _loggers: Dict[str, logging.Logger] = {}
    _lock = Lock()

    @classmethod
    def get_logger(
        cls,
        name: str,
        log_dir: Optional[str] = None,
        level: int = logging.INFO,
        console_output: bool = True,
    ) -> logging.Logger:
        """
        Ottiene o crea un logger configurato.

        The first call for a name configures it; later calls return the
        cached logger unchanged.

        Args:
            name: Nome del logger (es. "TA_001", "REGISTRANT_3")
            log_dir: Directory per il file <name>.log (opzionale)
            level: Livello minimo di log
            console_output: Se True, stampa anche su stdout
        """
        with cls._lock:
            logger = cls._loggers.get(name)
            if logger is None:
                logger = cls._configure(name, log_dir, level, console_output)
                cls._loggers[name] = logger
            return logger

    @staticmethod
    def _configure(name, log_dir, level, console_output) -> logging.Logger:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = False
        logger.handlers.clear()

        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        handlers = []
        if console_output:
            handlers.append(logging.StreamHandler(sys.stdout))
        if log_dir:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path / f"{name}.log", encoding="utf-8"))

        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        return logger

    @classmethod
    def clear_cache(cls):
        """Closes file handlers and forgets every cached logger."""
        with cls._lock:
            for logger in cls._loggers.values():
                for handler in list(logger.handlers):
                    handler.close()
                    logger.removeHandler(handler)
            cls._loggers.clear()


def fingerprint(data: bytes, length: int = 8) -> str:
    """Short hex prefix used when logging public values."""
    return data.hex()[: length * 2]
