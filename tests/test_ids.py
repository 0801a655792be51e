"""Tests for node ids."""

import pytest

from stackgraph._ids import NodeId, create_node_id, parse_node_id


class TestNodeId:
    def test_str(self) -> None:
        assert str(NodeId("infra", "Topic")) == "infra::Topic"

    def test_parse(self) -> None:
        assert parse_node_id("infra::Topic") == NodeId("infra", "Topic")

    def test_parse_splits_at_first_separator(self) -> None:
        assert parse_node_id("infra::Nested::Name") == NodeId("infra", "Nested::Name")

    def test_parse_strips_whitespace(self) -> None:
        assert parse_node_id("  app::Queue ") == NodeId("app", "Queue")

    @pytest.mark.parametrize("text", ["Topic", "::Topic", "infra::", ""])
    def test_parse_invalid(self, text: str) -> None:
        with pytest.raises(ValueError, match="Invalid node id"):
            parse_node_id(text)

    def test_create_node_id(self) -> None:
        assert create_node_id("infra", "Topic") == "infra::Topic"

    def test_round_trip(self) -> None:
        node_id = NodeId("a", "b")
        assert parse_node_id(str(node_id)) == node_id

    def test_hashable_and_ordered(self) -> None:
        ids = {NodeId("b", "x"), NodeId("a", "y"), NodeId("a", "x")}
        assert sorted(ids) == [NodeId("a", "x"), NodeId("a", "y"), NodeId("b", "x")]
