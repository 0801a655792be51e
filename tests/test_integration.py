"""End-to-end tests: parse stacks, move resources, regenerate templates."""

import logging
from typing import Any

import pytest

from stackgraph._graph import EdgeKind
from stackgraph._ids import NodeId
from stackgraph._template import StackSet, parse_stacks


@pytest.fixture
def stack_set() -> StackSet:
    infra: dict[str, Any] = {
        "AWSTemplateFormatVersion": "2010-09-09",
        "Resources": {
            "Topic": {"Type": "AWS::SNS::Topic"},
            "Subscription": {
                "Type": "AWS::SNS::Subscription",
                "Properties": {"TopicArn": {"Ref": "Topic"}, "Protocol": "email"},
            },
        },
        "Outputs": {"TopicName": {"Value": {"Fn::GetAtt": ["Topic", "TopicName"]}}},
    }
    services: dict[str, Any] = {
        "Description": "Services",
        "Resources": {"Api": {"Type": "AWS::ApiGateway::RestApi"}},
    }
    return parse_stacks({"infra": infra, "services": services})


class TestMoveScenarios:
    def test_move_consumer_to_other_stack(self, stack_set: StackSet) -> None:
        stack_set.move_node(NodeId("infra", "Subscription"), NodeId("services", "Subscription"))

        infra = stack_set.generate("infra").to_dict()
        services = stack_set.generate("services").to_dict()

        assert list(infra["Resources"]) == ["Topic"]
        assert infra["Outputs"]["Topic"] == {"Value": {"Ref": "Topic"}, "Export": {"Name": "infra-Topic"}}
        assert infra["Outputs"]["TopicName"] == {"Value": {"Fn::GetAtt": ["Topic", "TopicName"]}}

        assert list(services["Resources"]) == ["Subscription", "Api"]
        assert services["Resources"]["Subscription"]["Properties"] == {
            "TopicArn": {"Fn::ImportValue": "infra-Topic"},
            "Protocol": "email",
        }
        assert services["Description"] == "Services"

    def test_move_back_restores_template(self, stack_set: StackSet) -> None:
        stack_set.move_node(NodeId("infra", "Subscription"), NodeId("services", "Subscription"))
        stack_set.move_node(NodeId("services", "Subscription"), NodeId("infra", "Subscription"))

        infra = stack_set.generate("infra").to_dict()
        assert list(infra["Outputs"]) == ["TopicName"]
        subscription = infra["Resources"]["Subscription"]
        assert subscription["Properties"]["TopicArn"] == {"Ref": "Topic"}
        assert subscription["DependsOn"] == "Topic"
        assert stack_set.graph.get_exports() == {}

    def test_move_everything_out(self, stack_set: StackSet) -> None:
        stack_set.move_node(NodeId("infra", "Subscription"), NodeId("services", "Subscription"))
        stack_set.move_node(NodeId("infra", "Topic"), NodeId("services", "Topic"))

        documents = stack_set.generate_all()
        assert list(documents) == ["services", "infra"]
        assert documents["infra"].resources == {}
        services = documents["services"].to_dict()
        assert services["Resources"]["Subscription"]["Properties"]["TopicArn"] == {"Ref": "Topic"}
        assert "Outputs" not in services
        assert all(edge.kind is not EdgeKind.IMPORTED_VALUE for edge in stack_set.graph.get_edges())

    def test_plain_output_left_behind_is_reported(
        self,
        stack_set: StackSet,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING):
            stack_set.move_node(NodeId("infra", "Topic"), NodeId("services", "Topic"))
        assert "still references 'Topic'" in caplog.text

    def test_rename_updates_plain_outputs(self, stack_set: StackSet) -> None:
        stack_set.move_node(NodeId("infra", "Topic"), NodeId("infra", "Events"))

        infra = stack_set.generate("infra").to_dict()
        assert list(infra["Resources"]) == ["Events", "Subscription"]
        assert infra["Resources"]["Subscription"]["Properties"]["TopicArn"] == {"Ref": "Events"}
        assert infra["Outputs"]["TopicName"]["Value"] == {"Fn::GetAtt": ["Events", "TopicName"]}

    def test_groups(self, stack_set: StackSet) -> None:
        assert stack_set.groups() == ["infra", "services"]


class TestCrossStackImports:
    def test_existing_import_survives_regeneration(self) -> None:
        stack_set = parse_stacks(
            {
                "net": {
                    "Resources": {"Vpc": {"Type": "AWS::EC2::VPC"}},
                    "Outputs": {"VpcId": {"Value": {"Ref": "Vpc"}, "Export": {"Name": "net-VpcId"}}},
                },
                "app": {
                    "Resources": {
                        "Sg": {
                            "Type": "AWS::EC2::SecurityGroup",
                            "Properties": {"VpcId": {"Fn::ImportValue": "net-VpcId"}},
                        },
                    },
                },
            },
        )

        documents = {name: document.to_dict() for name, document in stack_set.generate_all().items()}

        assert documents["net"]["Outputs"] == {"VpcId": {"Value": {"Ref": "Vpc"}, "Export": {"Name": "net-VpcId"}}}
        assert documents["app"]["Resources"]["Sg"]["Properties"] == {"VpcId": {"Fn::ImportValue": "net-VpcId"}}

    def test_moving_importer_next_to_export_inlines_value(self) -> None:
        stack_set = parse_stacks(
            {
                "net": {
                    "Resources": {"Vpc": {"Type": "AWS::EC2::VPC"}},
                    "Outputs": {"VpcId": {"Value": {"Ref": "Vpc"}, "Export": {"Name": "net-VpcId"}}},
                },
                "app": {
                    "Resources": {
                        "Sg": {
                            "Type": "AWS::EC2::SecurityGroup",
                            "Properties": {"VpcId": {"Fn::ImportValue": "net-VpcId"}},
                        },
                    },
                },
            },
        )

        stack_set.move_node(NodeId("app", "Sg"), NodeId("net", "Sg"))

        net = stack_set.generate("net").to_dict()
        assert net["Resources"]["Sg"]["Properties"] == {"VpcId": {"Ref": "Vpc"}}
        assert net["Resources"]["Sg"]["DependsOn"] == "Vpc"
        assert "Outputs" not in net
