from __future__ import annotations

import pytest

from cluster import registry
from cluster.context import ClusterContext
from cluster.models import Role


@pytest.fixture
def context() -> ClusterContext:
    ctx = ClusterContext("/local")
    ctx.add_node("ctrl1", "10.0.0.1", 0, [Role.CONTROLLER])
    ctx.add_node("work1", "10.0.0.2", 1, [Role.WORKER])
    return ctx


@pytest.fixture
def generated(context: ClusterContext) -> ClusterContext:
    registry.generate(context, "/")
    return context


@pytest.fixture
def on_controller(generated: ClusterContext) -> ClusterContext:
    generated.set_node("ctrl1", generated.config.nodes["ctrl1"])
    return generated


@pytest.fixture
def on_worker(generated: ClusterContext) -> ClusterContext:
    generated.set_node("work1", generated.config.nodes["work1"])
    return generated
