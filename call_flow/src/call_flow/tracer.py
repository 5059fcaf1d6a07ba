"""
Call-flow tracer
----------------
Unfolds a function map into a flow graph rooted at one entry method:

    START -> entry method -> (calls, decisions, loops ...)    END

Each distinct method is expanded at most once per trace; a second encounter
(direct or mutual recursion) becomes a "(ref)" node instead, so every trace
terminates. All mutable bookkeeping lives in a `_TraceState` created per call
to `trace_from_entry`, so one tracer can serve concurrent traces over the same
(read-only) function map.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from call_flow.src.call_flow.function_map import FunctionMap, resolve_callee, split_method_name
from call_flow.src.call_flow.models.ast_models import Branch, Call, Loop
from call_flow.src.call_flow.models.flow_models import EdgeKind, FlowEdge, FlowGraph, FlowNode, NodeKind

logger = logging.getLogger(__name__)

# Android lifecycle callbacks plus `main`; a method whose name contains one
# of these is offered as an entry point.
ENTRY_METHOD_PATTERNS = (
    "onCreate",
    "onStart",
    "onResume",
    "onPause",
    "onStop",
    "onDestroy",
    "onActivityResult",
    "onRequestPermissionsResult",
    "main",
)


@dataclass
class _TraceState:
    visited: set = field(default_factory=set)
    nodes: list = field(default_factory=list)
    edges: list = field(default_factory=list)
    next_id: int = 0

    def add_node(self, kind: NodeKind, name: str, **attrs) -> str:
        node_id = f"node_{self.next_id}"
        self.next_id += 1
        self.nodes.append(FlowNode(id=node_id, kind=kind, name=name, **attrs))
        return node_id

    def link(self, source: str, target: str, kind: EdgeKind, branch_label: Optional[str] = None):
        self.edges.append(FlowEdge(source=source, target=target, kind=kind, branch_label=branch_label))


class CallFlowTracer:

    def __init__(self, function_map: FunctionMap, link_end: bool = False):
        self.function_map = function_map
        # End is a pure marker unless asked to link the last node into it
        self.link_end = link_end

    # -- tracing ------------------------------------------------------------

    def trace_from_entry(self, entry_method: str) -> FlowGraph:
        state = _TraceState()
        start_id = state.add_node(NodeKind.START, "START", line=1)
        terminal_id = self._trace_method(state, entry_method, start_id)
        end_id = state.add_node(NodeKind.END, "END")
        if self.link_end:
            state.link(terminal_id, end_id, EdgeKind.SEQUENCE)

        logger.info("Traced %s: %d nodes, %d links", entry_method, len(state.nodes), len(state.edges))
        return FlowGraph(nodes=tuple(state.nodes), edges=tuple(state.edges), entry_method=entry_method)

    def _trace_method(self, state: _TraceState, name: str, parent_id: str) -> str:
        class_name, method_name = split_method_name(name)

        if name in state.visited:
            ref_id = state.add_node(NodeKind.METHOD, f"{name} (ref)", class_name=class_name)
            state.link(parent_id, ref_id, EdgeKind.CALLS)
            return ref_id

        state.visited.add(name)
        method_id = state.add_node(NodeKind.METHOD, method_name, class_name=class_name)
        state.link(parent_id, method_id, EdgeKind.CALLS)
        return self._fold(state, self.function_map.get(name, ()), method_id)

    def _fold(self, state: _TraceState, statements, start_id: str) -> str:
        current_id = start_id
        for statement in statements:
            current_id = self._process_statement(state, statement, current_id)
        return current_id

    def _process_statement(self, state: _TraceState, statement, parent_id: str) -> str:
        if isinstance(statement, Call):
            return self._process_call(state, statement, parent_id)
        if isinstance(statement, Branch):
            return self._process_branch(state, statement, parent_id)
        if isinstance(statement, Loop):
            return self._process_loop(state, statement, parent_id)
        raise TypeError(f"Unsupported statement type: {type(statement).__name__}")

    def _process_call(self, state: _TraceState, call: Call, parent_id: str) -> str:
        target = resolve_callee(self.function_map, call.callee_name)
        if target is not None:
            return self._trace_method(state, target, parent_id)

        # external / unresolved call: a leaf
        leaf_id = state.add_node(NodeKind.METHOD, call.callee_name, line=call.line)
        state.link(parent_id, leaf_id, EdgeKind.CALLS)
        return leaf_id

    def _process_branch(self, state: _TraceState, branch: Branch, parent_id: str) -> str:
        decision_id = state.add_node(NodeKind.DECISION, "Decision", condition=branch.condition, line=branch.line)
        state.link(parent_id, decision_id, EdgeKind.SEQUENCE)

        true_end = self._fold(state, branch.true_body, decision_id)
        false_end = self._fold(state, branch.false_body, decision_id)

        if not branch.true_body and not branch.false_body:
            return decision_id

        merge_id = state.add_node(NodeKind.METHOD, "Merge")
        for body, end_id, kind, label in (
            (branch.true_body, true_end, EdgeKind.IF_TRUE, "true"),
            (branch.false_body, false_end, EdgeKind.IF_FALSE, "false"),
        ):
            if not body:
                continue
            advanced = end_id != decision_id
            state.link(decision_id, end_id if advanced else merge_id, kind, branch_label=label)
            if advanced:
                state.link(end_id, merge_id, EdgeKind.SEQUENCE)
        return merge_id

    def _process_loop(self, state: _TraceState, loop: Loop, parent_id: str) -> str:
        loop_id = state.add_node(
            NodeKind.LOOP,
            f"{loop.kind.value.upper()} Loop",
            condition=loop.condition,
            loop_kind=loop.kind,
            line=loop.line,
        )
        state.link(parent_id, loop_id, EdgeKind.SEQUENCE)

        body_end = self._fold(state, loop.body, loop_id)
        if body_end != loop_id:
            state.link(body_end, loop_id, EdgeKind.LOOP_EXIT)  # back edge

        exit_id = state.add_node(NodeKind.METHOD, "Loop Exit")
        state.link(loop_id, exit_id, EdgeKind.LOOP_EXIT)
        return exit_id

    # -- queries --------------------------------------------------------------

    def available_entry_methods(self) -> list[str]:
        return available_entry_methods(self.function_map)

    def all_methods(self) -> list[str]:
        return list(self.function_map)


def available_entry_methods(function_map: FunctionMap) -> list[str]:
    entries = []
    for full_name in function_map:
        _, method_name = split_method_name(full_name)
        if any(pattern in method_name for pattern in ENTRY_METHOD_PATTERNS):
            entries.append(full_name)
    return entries
