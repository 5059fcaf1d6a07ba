# --- Function map: "Class.method" -> statements -----------------------------
import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from call_flow.src.call_flow.models.ast_models import ClassDeclaration

logger = logging.getLogger(__name__)

FunctionMap = Mapping[str, tuple]


def build_function_map(classes: Iterable[ClassDeclaration]) -> FunctionMap:
    """
    Flattens classes into a read-only lookup keyed by `Class.method`, in
    declaration order. When two methods share a key (overloads, or same-named
    classes in different files) the last one wins.
    """
    entries: dict[str, tuple] = {}
    for cls in classes:
        for method in cls.methods:
            key = method.full_name
            if key in entries:
                # key keeps its original position, value is replaced
                logger.debug("Duplicate method %s; keeping the later declaration (line %d)", key, method.line)
            entries[key] = method.statements
    return MappingProxyType(entries)


def resolve_callee(function_map: FunctionMap, callee_name: str) -> Optional[str]:
    """
    Maps a bare call name to a function-map key: the first key ending in
    `.callee_name`, else an exact key match, else None. With several
    same-named methods the first in map order wins.
    """
    suffix = "." + callee_name
    for key in function_map:
        if key.endswith(suffix):
            return key
    if callee_name in function_map:
        return callee_name
    return None


def split_method_name(full_name: str) -> tuple[str, str]:
    """`MainActivity.onCreate` -> ("MainActivity", "onCreate"); no dot -> ("Unknown", name)."""
    class_name, dot, method_name = full_name.rpartition(".")
    if not dot:
        return "Unknown", full_name
    return class_name, method_name
