"""Tests for building a template graph from CloudFormation templates."""

import logging
from typing import Any

import pytest

from stackgraph._errors import DanglingEdgeError
from stackgraph._graph import EdgeKind, TemplateGraph
from stackgraph._ids import NodeId
from stackgraph._template import TemplateDocument, TemplateError, parse_stacks, parse_template
from stackgraph._values import ImportValue, Ref


@pytest.fixture
def infra() -> dict[str, Any]:
    return {
        "AWSTemplateFormatVersion": "2010-09-09",
        "Description": "Shared infrastructure",
        "Parameters": {"Env": {"Type": "String"}},
        "Resources": {
            "Topic": {"Type": "AWS::SNS::Topic", "Properties": {"TopicName": {"Fn::Sub": "${Env}-orders"}}},
            "Queue": {
                "Type": "AWS::SQS::Queue",
                "DeletionPolicy": "Retain",
                "Metadata": {"Owner": "platform"},
            },
            "Subscription": {
                "Type": "AWS::SNS::Subscription",
                "DependsOn": "Queue",
                "Properties": {
                    "TopicArn": {"Ref": "Topic"},
                    "Endpoint": {"Fn::GetAtt": ["Queue", "Arn"]},
                    "Protocol": "sqs",
                    "Region": {"Ref": "AWS::Region"},
                },
            },
        },
        "Outputs": {
            "TopicArn": {"Value": {"Ref": "Topic"}, "Export": {"Name": "infra-TopicArn"}},
            "QueueUrl": {"Value": {"Ref": "Queue"}, "Description": "Not exported"},
        },
    }


@pytest.fixture
def app() -> dict[str, Any]:
    return {
        "Resources": {
            "Handler": {
                "Type": "AWS::Lambda::Function",
                "Properties": {"Environment": {"Variables": {"TOPIC": {"Fn::ImportValue": "infra-TopicArn"}}}},
            },
        },
    }


class TestParseStacks:
    def test_nodes(self, infra: dict[str, Any], app: dict[str, Any]) -> None:
        stack_set = parse_stacks({"infra": infra, "app": app})
        graph = stack_set.graph

        assert [str(node.id) for node in graph.get_all_nodes()] == [
            "infra::Topic",
            "infra::Queue",
            "infra::Subscription",
            "app::Handler",
        ]
        subscription = graph.get_node(NodeId("infra", "Subscription"))
        assert subscription is not None
        assert subscription.kind == "AWS::SNS::Subscription"
        assert subscription.properties["TopicArn"] == Ref("Topic")
        assert subscription.properties["Endpoint"] == Ref("Queue", "Arn")

    def test_side_channel_attributes_go_to_metadata(self, infra: dict[str, Any]) -> None:
        graph = parse_template(infra, "infra").graph
        queue = graph.get_node(NodeId("infra", "Queue"))
        assert queue is not None
        assert queue.properties == {}
        assert queue.metadata == {"Metadata": {"Owner": "platform"}, "DeletionPolicy": "Retain"}

    def test_edges(self, infra: dict[str, Any], app: dict[str, Any]) -> None:
        graph = parse_stacks({"infra": infra, "app": app}).graph
        subscription = NodeId("infra", "Subscription")

        kinds = {(edge.source, edge.target, edge.kind) for edge in graph.get_edges()}
        assert kinds == {
            (subscription, NodeId("infra", "Queue"), EdgeKind.STRUCTURAL_DEPENDENCY),
            (subscription, NodeId("infra", "Topic"), EdgeKind.VALUE_REFERENCE),
            (subscription, NodeId("infra", "Queue"), EdgeKind.ATTRIBUTE_REFERENCE),
            (NodeId("app", "Handler"), NodeId("infra", "Topic"), EdgeKind.IMPORTED_VALUE),
        }

    def test_pseudo_parameters_are_not_edges(self, infra: dict[str, Any]) -> None:
        graph = parse_template(infra, "infra").graph
        assert all(edge.target.name != "AWS::Region" for edge in graph.get_edges())

    def test_import_resolves_regardless_of_stack_order(self, infra: dict[str, Any], app: dict[str, Any]) -> None:
        graph = parse_stacks({"app": app, "infra": infra}).graph
        (edge,) = graph.get_cross_group_edges()
        assert edge.kind is EdgeKind.IMPORTED_VALUE
        assert edge.target == NodeId("infra", "Topic")

    def test_import_keeps_marker_in_properties(self, infra: dict[str, Any], app: dict[str, Any]) -> None:
        graph = parse_stacks({"infra": infra, "app": app}).graph
        handler = graph.get_node(NodeId("app", "Handler"))
        assert handler is not None
        assert handler.properties["Environment"] == {"Variables": {"TOPIC": ImportValue("infra-TopicArn")}}

    def test_exported_outputs_become_registrations(self, infra: dict[str, Any]) -> None:
        stack_set = parse_template(infra, "infra")
        export = stack_set.graph.get_export("infra-TopicArn")
        assert export is not None
        assert export.node_id == NodeId("infra", "Topic")
        assert export.output_id == "TopicArn"
        assert export.value == Ref("Topic")

    def test_sections_keep_plain_outputs_only(self, infra: dict[str, Any]) -> None:
        sections = parse_template(infra, "infra").sections["infra"]
        assert sections.resources == {}
        assert sections.outputs is not None
        assert list(sections.outputs) == ["QueueUrl"]
        assert sections.description == "Shared infrastructure"
        assert sections.parameters == {"Env": {"Type": "String"}}

    def test_sub_export_name(self) -> None:
        template = {
            "Resources": {"Vpc": {"Type": "AWS::EC2::VPC"}},
            "Outputs": {
                "VpcId": {"Value": {"Ref": "Vpc"}, "Export": {"Name": {"Fn::Sub": "${AWS::StackName}-VpcId"}}},
            },
        }
        graph = parse_template(template, "net").graph
        assert graph.resolve_export("${AWS::StackName}-VpcId") == NodeId("net", "Vpc")

    def test_unresolvable_export_name_stays_plain(self, caplog: pytest.LogCaptureFixture) -> None:
        template = {
            "Resources": {"Vpc": {"Type": "AWS::EC2::VPC"}},
            "Outputs": {
                "VpcId": {"Value": {"Ref": "Vpc"}, "Export": {"Name": {"Fn::Join": ["-", ["a", "b"]]}}},
            },
        }
        with caplog.at_level(logging.WARNING):
            stack_set = parse_template(template, "net")
        assert stack_set.graph.get_exports() == {}
        outputs = stack_set.sections["net"].outputs
        assert outputs is not None
        assert "VpcId" in outputs
        assert "Cannot resolve export name" in caplog.text

    def test_unknown_import_adds_no_edge(self, app: dict[str, Any]) -> None:
        graph = parse_template(app, "app").graph
        assert graph.get_edges() == []

    def test_depends_on_missing_resource(self) -> None:
        template = {"Resources": {"A": {"Type": "AWS::SNS::Topic", "DependsOn": ["Missing"]}}}
        with pytest.raises(DanglingEdgeError):
            parse_template(template)

    def test_invalid_template(self) -> None:
        with pytest.raises(TemplateError, match="Invalid template"):
            parse_template({"Resources": {"A": {"Properties": {}}}})

    def test_accepts_documents(self, infra: dict[str, Any]) -> None:
        document = TemplateDocument.from_dict(infra)
        stack_set = parse_template(document, "infra")
        assert len(stack_set.graph) == 3

    def test_adds_to_existing_graph(self, infra: dict[str, Any], app: dict[str, Any]) -> None:
        graph = TemplateGraph()
        parse_template(infra, "infra", graph)
        parse_template(app, "app", graph)
        assert len(graph.get_cross_group_edges()) == 1
