"""Tests for the TOML graph report."""

import tomllib
from pathlib import Path

from stackgraph._graph import EdgeKind, Node, TemplateGraph
from stackgraph._ids import NodeId
from stackgraph._report import export_report_to_toml, graph_to_dict
from stackgraph._values import Ref


def _graph() -> TemplateGraph:
    graph = TemplateGraph()
    queue = NodeId("infra", "Queue")
    worker = NodeId("app", "Worker")
    graph.add_node(Node(queue, "AWS::SQS::Queue"))
    graph.add_node(Node(worker, "AWS::Lambda::Function"))
    graph.add_edge(worker, queue, EdgeKind.IMPORTED_VALUE, attribute="Arn")
    graph.register_export("infra-Queue-Arn", queue, "QueueArn", Ref("Queue", "Arn"), "Queue ARN")
    return graph


class TestGraphToDict:
    def test_structure(self) -> None:
        data = graph_to_dict(_graph())
        assert data == {
            "stacks": {
                "infra": {"resources": {"Queue": "AWS::SQS::Queue"}},
                "app": {"resources": {"Worker": "AWS::Lambda::Function"}},
            },
            "edges": [
                {
                    "source": "app::Worker",
                    "target": "infra::Queue",
                    "kind": "ImportValue",
                    "cross_stack": True,
                    "attribute": "Arn",
                },
            ],
            "exports": {
                "infra-Queue-Arn": {
                    "node": "infra::Queue",
                    "output": "QueueArn",
                    "value": {"Fn::GetAtt": ["Queue", "Arn"]},
                    "description": "Queue ARN",
                },
            },
        }

    def test_empty_graph(self) -> None:
        assert graph_to_dict(TemplateGraph()) == {"stacks": {}, "edges": [], "exports": {}}


class TestExportReportToToml:
    def test_writes_readable_toml(self, tmp_path: Path) -> None:
        output = tmp_path / "reports" / "graph.toml"

        export_report_to_toml(_graph(), output)

        with output.open("rb") as f:
            data = tomllib.load(f)
        assert data == graph_to_dict(_graph())
