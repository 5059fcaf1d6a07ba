# --- Directory scanning convenience -----------------------------------------
import logging
import os
from typing import Iterator

from call_flow.src.call_flow.analysis import ProjectAnalysis, SourceFile
from call_flow.src.call_flow.config import ExtractorBackend

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".java", ".kt", ".kts")


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def iter_source_files(root_dir: str) -> Iterator[SourceFile]:
    """
    Recursively yields every Java/Kotlin file under root_dir, in sorted path
    order so repeated runs build the same function map. Unreadable files are
    logged and skipped.
    """
    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames.sort()
        for fn in sorted(filenames):
            if not fn.endswith(SOURCE_EXTENSIONS):
                continue
            full = os.path.join(dirpath, fn)
            try:
                text = read_text(full)
            except OSError as e:
                logger.warning("Failed to read %s: %s", full, e)
                continue
            yield SourceFile(path=full, text=text)


def analyze_directory(root_dir: str, backend: ExtractorBackend = ExtractorBackend.LINES) -> ProjectAnalysis:
    if not os.path.isdir(root_dir):
        raise NotADirectoryError(root_dir)
    return ProjectAnalysis.from_sources(iter_source_files(root_dir), backend)
