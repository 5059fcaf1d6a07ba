import json

from call_flow.src.call_flow.models.ast_models import LoopKind
from call_flow.src.call_flow.models.flow_models import (
    EdgeKind,
    EntryMethodListing,
    FlowEdge,
    FlowGraph,
    FlowNode,
    NodeKind,
)
from call_flow.src.call_flow.outputs.output import (
    edge_to_dict,
    graph_to_dict,
    listing_to_dict,
    node_to_dict,
    print_summary,
    to_json,
)


def _graph():
    nodes = (
        FlowNode("node_0", NodeKind.START, "START", line=1),
        FlowNode("node_1", NodeKind.METHOD, "run", class_name="A"),
        FlowNode("node_2", NodeKind.LOOP, "WHILE Loop", condition="more()", loop_kind=LoopKind.WHILE, line=4),
        FlowNode("node_3", NodeKind.END, "END"),
    )
    edges = (
        FlowEdge("node_0", "node_1", EdgeKind.CALLS),
        FlowEdge("node_1", "node_2", EdgeKind.SEQUENCE),
    )
    return FlowGraph(nodes=nodes, edges=edges, entry_method="A.run")


def test_node_fields_use_wire_names_and_omit_missing_values():
    assert node_to_dict(_graph().nodes[1]) == {"id": "node_1", "kind": "method", "name": "run", "className": "A"}
    assert node_to_dict(_graph().nodes[2]) == {
        "id": "node_2",
        "kind": "loop",
        "name": "WHILE Loop",
        "condition": "more()",
        "loopKind": "while",
        "line": 4,
    }


def test_edge_fields():
    assert edge_to_dict(FlowEdge("a", "b", EdgeKind.IF_TRUE, branch_label="true")) == {
        "source": "a",
        "target": "b",
        "kind": "if_true",
        "branchLabel": "true",
    }
    assert "branchLabel" not in edge_to_dict(FlowEdge("a", "b", EdgeKind.CALLS))


def test_graph_payload():
    payload = graph_to_dict(_graph())

    assert set(payload) == {"nodes", "links", "entryMethod"}
    assert [n["kind"] for n in payload["nodes"]] == ["start", "method", "loop", "end"]
    assert [l["kind"] for l in payload["links"]] == ["calls", "sequence"]


def test_listing_payload():
    listing = EntryMethodListing(entry_methods=("A.main",), all_methods=("A.main", "A.run"), total_classes=1)

    assert listing_to_dict(listing) == {
        "entryMethods": ["A.main"],
        "allMethods": ["A.main", "A.run"],
        "totalMethods": 2,
        "totalClasses": 1,
    }


def test_to_json_accepts_models_and_dicts():
    assert json.loads(to_json(_graph()))["entryMethod"] == "A.run"
    assert json.loads(to_json({"ok": True})) == {"ok": True}


def test_print_summary(capsys):
    print_summary(_graph())
    out = capsys.readouterr().out

    assert "=== CALL FLOW from A.run ===" in out
    assert "START --calls--> A.run" in out
    assert "A.run --sequence--> WHILE Loop [more()]" in out
