"""
Request-level pipeline: source files -> classes -> function map -> trace.

A `ProjectAnalysis` is built once per request and is read-only afterwards;
every trace gets its own `CallFlowTracer`.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from call_flow.src.call_flow.config import ExtractorBackend
from call_flow.src.call_flow.errors import InvalidEntryMethodError, UnknownEntryMethodError
from call_flow.src.call_flow.extractor import SourceExtractor
from call_flow.src.call_flow.function_map import build_function_map
from call_flow.src.call_flow.models.ast_models import ClassDeclaration, Dialect
from call_flow.src.call_flow.models.flow_models import EntryMethodListing, FlowGraph
from call_flow.src.call_flow.outputs.output import graph_to_dict
from call_flow.src.call_flow.tracer import CallFlowTracer, available_entry_methods

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    path: str  # used for labelling and dialect detection only
    text: str
    dialect: Optional[Dialect] = None

    def resolved_dialect(self) -> Dialect:
        return self.dialect or Dialect.from_path(self.path)


def extract_classes(sources: Iterable[SourceFile],
                    backend: ExtractorBackend = ExtractorBackend.LINES) -> list[ClassDeclaration]:
    line_extractor = SourceExtractor()
    tree_extractor = None
    if backend is ExtractorBackend.TREE_SITTER:
        from call_flow.src.call_flow.tree_sitter_extractor import JavaTreeExtractor
        tree_extractor = JavaTreeExtractor()

    classes = []
    for source in sources:
        dialect = source.resolved_dialect()
        if tree_extractor is not None and dialect is Dialect.JAVA:
            classes.extend(tree_extractor.extract(source.text, source.path))
        else:
            classes.extend(line_extractor.extract(source.text, dialect, source.path))
    return classes


class ProjectAnalysis:

    def __init__(self, classes: Iterable[ClassDeclaration]):
        self.classes = tuple(classes)
        self.function_map = build_function_map(self.classes)
        logger.info("Analysed %d classes, %d methods", len(self.classes), len(self.function_map))

    @classmethod
    def from_sources(cls, sources: Iterable[SourceFile],
                     backend: ExtractorBackend = ExtractorBackend.LINES) -> "ProjectAnalysis":
        return cls(extract_classes(sources, backend))

    def entry_methods(self) -> EntryMethodListing:
        return EntryMethodListing(
            entry_methods=tuple(available_entry_methods(self.function_map)),
            all_methods=tuple(self.function_map),
            total_classes=len(self.classes),
        )

    def validate_entry_method(self, entry_method: Optional[str]) -> str:
        if not entry_method or not entry_method.strip():
            raise InvalidEntryMethodError("Entry method is required")
        entry_method = entry_method.strip()
        if entry_method not in self.function_map:
            raise UnknownEntryMethodError(entry_method)
        return entry_method

    def trace(self, entry_method: Optional[str], link_end: bool = False) -> FlowGraph:
        """Rejects unknown entry methods, then traces with a fresh tracer."""
        entry_method = self.validate_entry_method(entry_method)
        return CallFlowTracer(self.function_map, link_end=link_end).trace_from_entry(entry_method)

    def call_flow_response(self, entry_method: Optional[str], link_end: bool = False) -> dict:
        """The combined payload: the graph plus the entry-method listing."""
        graph = self.trace(entry_method, link_end=link_end)
        listing = self.entry_methods()
        return {
            "callFlowGraph": graph_to_dict(graph),
            "availableEntryMethods": list(listing.entry_methods),
            "allMethods": list(listing.all_methods),
            "totalMethods": listing.total_methods,
            "totalClasses": listing.total_classes,
        }
