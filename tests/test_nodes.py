from __future__ import annotations

import pytest

from cluster.context import ClusterContext
from cluster.errors import (
    ClusterConfigError,
    EmptyNodeNameError,
    InvalidNodeAddressError,
    InvalidNodeError,
    InvalidNodeIndexError,
    NodeNotFoundError,
)
from cluster.models import Node, Role


def test_add_node_trims_name_and_normalizes_labels() -> None:
    ctx = ClusterContext("/")
    node = ctx.add_node("  ctrl1 \n", "10.0.0.1", 3, ["controller", Role.WORKER])

    assert ctx.config.nodes == {"ctrl1": node}
    assert node == Node(ip="10.0.0.1", index=3, labels=frozenset({Role.CONTROLLER, Role.WORKER}))
    assert node.is_controller() and node.is_worker()


def test_add_node_accepts_ipv6() -> None:
    ctx = ClusterContext("/")
    assert ctx.add_node("v6", "fd00::1", 0, [Role.WORKER]).ip == "fd00::1"


@pytest.mark.parametrize("name", ["", "   ", "\n"])
def test_add_node_rejects_empty_name(name: str) -> None:
    ctx = ClusterContext("/")
    with pytest.raises(EmptyNodeNameError):
        ctx.add_node(name, "10.0.0.1", 0, [Role.WORKER])
    assert ctx.config.nodes == {}


@pytest.mark.parametrize("ip", ["", "10.0.0", "10.0.0.256", "example.com"])
def test_add_node_rejects_invalid_address(ip: str) -> None:
    ctx = ClusterContext("/")
    with pytest.raises(InvalidNodeAddressError) as excinfo:
        ctx.add_node("node", ip, 0, [Role.WORKER])
    assert isinstance(excinfo.value, InvalidNodeError)
    assert ctx.config.nodes == {}


def test_add_node_rejects_negative_index() -> None:
    ctx = ClusterContext("/")
    with pytest.raises(InvalidNodeIndexError) as excinfo:
        ctx.add_node("node", "10.0.0.1", -1, [Role.WORKER])
    assert isinstance(excinfo.value, InvalidNodeError)
    assert ctx.config.nodes == {}


def test_add_node_replaces_existing_node_whole() -> None:
    ctx = ClusterContext("/")
    ctx.add_node("node", "10.0.0.1", 0, [Role.CONTROLLER])
    ctx.add_node("node", "10.0.0.9", 4, [Role.WORKER])

    assert ctx.config.nodes["node"] == Node(ip="10.0.0.9", index=4, labels=frozenset({Role.WORKER}))


def test_remove_node(context: ClusterContext) -> None:
    context.remove_node("work1")
    assert list(context.config.nodes) == ["ctrl1"]

    with pytest.raises(NodeNotFoundError) as excinfo:
        context.remove_node("work1")
    assert excinfo.value.name == "work1"


def test_unknown_role_is_rejected() -> None:
    ctx = ClusterContext("/")
    with pytest.raises(ValueError):
        ctx.add_node("node", "10.0.0.1", 0, ["pilot"])


def test_controller_queries_are_sorted_by_name() -> None:
    ctx = ClusterContext("/")
    ctx.add_node("ctrl2", "10.0.0.2", 1, [Role.CONTROLLER])
    ctx.add_node("work1", "10.0.0.3", 2, [Role.WORKER])
    ctx.add_node("ctrl1", "10.0.0.1", 0, [Role.CONTROLLER])

    assert [name for name, _ in ctx.controller_nodes()] == ["ctrl1", "ctrl2"]
    assert ctx.etcd_client_endpoints() == ["https://10.0.0.1:2379", "https://10.0.0.2:2379"]
    assert ctx.kube_api_server_addresses() == ["10.0.0.1:6443", "10.0.0.2:6443"]
    assert ctx.api_server_ip() == "10.0.0.1"


def test_api_server_ip_prefers_virtual_ip(context: ClusterContext) -> None:
    context.config.controller_virtual_ip = "10.0.0.100"
    assert context.api_server_ip() == "10.0.0.100"


def test_api_server_ip_without_controllers() -> None:
    ctx = ClusterContext("/")
    ctx.add_node("work1", "10.0.0.2", 0, [Role.WORKER])
    with pytest.raises(ClusterConfigError):
        ctx.api_server_ip()
