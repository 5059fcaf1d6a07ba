# --- Flow graph produced by tracing -----------------------------------------
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from call_flow.src.call_flow.models.ast_models import LoopKind


class NodeKind(str, Enum):
    START = "start"
    END = "end"
    METHOD = "method"
    DECISION = "decision"
    LOOP = "loop"


class EdgeKind(str, Enum):
    CALLS = "calls"
    IF_TRUE = "if_true"
    IF_FALSE = "if_false"
    LOOP_ENTRY = "loop_entry"
    LOOP_EXIT = "loop_exit"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class FlowNode:
    id: str  # "node_<n>", assigned in creation order within one trace
    kind: NodeKind
    name: str
    class_name: Optional[str] = None
    condition: Optional[str] = None
    loop_kind: Optional[LoopKind] = None
    line: Optional[int] = None


@dataclass(frozen=True)
class FlowEdge:
    source: str
    target: str
    kind: EdgeKind
    branch_label: Optional[str] = None  # "true"/"false" on decision edges


@dataclass(frozen=True)
class FlowGraph:
    """One trace's output. Built once per trace and never mutated afterwards."""
    nodes: tuple  # FlowNode
    edges: tuple  # FlowEdge
    entry_method: str

    def node(self, node_id: str) -> FlowNode:
        for n in self.nodes:
            if n.id == node_id:
                return n
        raise KeyError(node_id)

    def edges_from(self, node_id: str) -> list:
        return [e for e in self.edges if e.source == node_id]


@dataclass(frozen=True)
class EntryMethodListing:
    entry_methods: tuple
    all_methods: tuple
    total_classes: int

    @property
    def total_methods(self) -> int:
        return len(self.all_methods)
