# --- Settings & logging setup -----------------------------------------------
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from call_flow.src.call_flow.errors import ConfigurationError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class ExtractorBackend(str, Enum):
    LINES = "lines"  # brace-depth line scanner (Java and Kotlin)
    TREE_SITTER = "tree-sitter"  # syntax-tree extraction for Java; Kotlin still uses LINES


@dataclass(frozen=True)
class Settings:
    backend: ExtractorBackend = ExtractorBackend.LINES
    link_end: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Reads CALL_FLOW_BACKEND, CALL_FLOW_LINK_END and CALL_FLOW_LOG_LEVEL.
        Unset variables fall back to the defaults above.
        """
        env = os.environ if environ is None else environ
        return cls(
            backend=parse_backend(env.get("CALL_FLOW_BACKEND", ExtractorBackend.LINES.value)),
            link_end=_parse_bool("CALL_FLOW_LINK_END", env.get("CALL_FLOW_LINK_END", "")),
            log_level=parse_log_level(env.get("CALL_FLOW_LOG_LEVEL", "WARNING")),
        )


def parse_backend(value: str) -> ExtractorBackend:
    try:
        return ExtractorBackend(value.strip().lower())
    except ValueError:
        choices = ", ".join(b.value for b in ExtractorBackend)
        raise ConfigurationError(f"Unknown extractor backend {value!r} (expected one of: {choices})") from None


def parse_log_level(value: str) -> str:
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"Unknown log level {value!r}")
    return level


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """
    Installs one stream handler on the package logger. Calling it again only
    changes the level, so repeated CLI runs in one process don't stack handlers.
    """
    logger = logging.getLogger("call_flow")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)
    return logger
