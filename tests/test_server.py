from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from cluster.context import ClusterContext
from cluster.errors import ClusterConfigError, MissingAssetError, TemplateError
from cluster.models import LoggerConfig, Role
from supervisor.manager import ServerManager
from supervisor.server import ServerState, ServerWrapper, materialize_command


async def _wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


# Materialization -----------------------------------------------------------


def test_arguments_render_sorted_with_bare_flags(context: ClusterContext) -> None:
    context.register_server("test", [Role.WORKER], "/bin/test", {"v": "0", "allow-privileged": ""})

    argv = materialize_command(context, "test", context.config.servers["test"])
    assert argv == ["/bin/test", "--allow-privileged", "--v=0"]
    assert " ".join(argv[1:]) == "--allow-privileged --v=0"


def test_generated_etcd_command_line(on_controller: ClusterContext) -> None:
    server = on_controller.config.servers["etcd"]
    argv = materialize_command(on_controller, "etcd", server)

    assert argv[0] == "/opt/nodeforge/bin/etcd/etcd"
    assert argv[1:] == sorted(argv[1:])
    assert "--initial-cluster=ctrl1=https://10.0.0.1:2380" in argv
    assert "--listen-client-urls=https://10.0.0.1:2379" in argv
    assert "--name=ctrl1" in argv
    assert "--peer-client-cert-auth" in argv
    assert "--data-dir=/var/lib/nodeforge/etcd" in argv
    assert "--trusted-ca-file=/etc/nodeforge/ssl/ca.pem" in argv
    assert argv == materialize_command(on_controller, "etcd", server)


def test_generated_kubelet_command_line(on_worker: ClusterContext) -> None:
    argv = materialize_command(on_worker, "kubelet", on_worker.config.servers["kubelet"])

    assert argv[0] == "/opt/nodeforge/bin/k8s/kubelet"
    assert "--kubeconfig=/etc/nodeforge/k8s/kubeconfig/kubelet-work1.kubeconfig" in argv
    assert "--container-runtime-endpoint=unix:///var/run/nodeforge/containerd/containerd.sock" in argv
    assert "--resolv-conf=/etc/resolv.conf" in argv


def test_kube_apiserver_uses_cluster_functions(on_controller: ClusterContext) -> None:
    argv = materialize_command(on_controller, "kube-apiserver", on_controller.config.servers["kube-apiserver"])

    assert "--apiserver-count=1" in argv
    assert "--etcd-servers=https://10.0.0.1:2379" in argv
    assert "--secure-port=6443" in argv
    assert "--audit-log-path=/var/log/nodeforge/audit.log" in argv


def test_failing_argument_names_server_and_flag(context: ClusterContext) -> None:
    context.register_server("broken", [Role.WORKER], "/bin/broken", {"good": "1", "peer": "{{ etcd_peers() }}"})

    with pytest.raises(TemplateError) as excinfo:
        materialize_command(context, "broken", context.config.servers["broken"])
    assert excinfo.value.label == "broken.peer"
    assert "server 'broken'" in str(excinfo.value)
    assert "flag 'peer'" in str(excinfo.value)


def test_missing_asset_in_argument_is_fatal(context: ClusterContext) -> None:
    context.register_server("srv", [Role.WORKER], "/bin/srv", {"config": '{{ asset_file("none.toml") }}'})

    with pytest.raises(MissingAssetError) as excinfo:
        materialize_command(context, "srv", context.config.servers["srv"])
    assert excinfo.value.name == "none.toml"
    assert excinfo.value.label == "srv.config"
    assert "srv.config" in str(excinfo.value)


def test_from_config_expands_log_filename(on_worker: ClusterContext) -> None:
    wrapper = ServerWrapper.from_config(on_worker, "kube-proxy", on_worker.config.servers["kube-proxy"])

    assert wrapper.name == "kube-proxy"
    assert wrapper.log_filename == "/var/log/nodeforge/kube-proxy.log"
    assert wrapper.state is ServerState.IDLE


# Supervision ---------------------------------------------------------------


def test_crashing_child_is_restarted_after_backoff(tmp_path: Path) -> None:
    async def runner() -> None:
        server = ServerWrapper(
            "crasher",
            _python("import sys; sys.exit(3)"),
            LoggerConfig(enabled=True, filename=str(tmp_path / "logs" / "crasher.log")),
        )
        assert server.restart_delay == 1.0

        loop = asyncio.get_running_loop()
        started = loop.time()
        server.start()
        assert server.state is ServerState.RUNNING

        await _wait_for(lambda: server.spawns >= 2, timeout=5.0)
        assert loop.time() - started >= 0.9

        # stop lands while the second child is still in its backoff window
        server.stop()
        await asyncio.wait_for(server.wait(), timeout=5.0)

        assert server.spawns == 2
        assert server.last_exit_code == 3
        assert server.state is ServerState.IDLE

    asyncio.run(runner())


def test_stop_waits_for_running_child(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "sleeper.log"

    async def runner() -> None:
        server = ServerWrapper(
            "sleeper",
            _python("import sys, time; print('out'); print('err', file=sys.stderr); sys.stdout.flush(); time.sleep(0.5)"),
            LoggerConfig(enabled=True, filename=str(log_file)),
            restart_delay=0.05,
        )
        server.start()
        await _wait_for(lambda: server.spawns == 1)

        server.stop()
        assert server.state is ServerState.STOPPING
        await asyncio.wait_for(server.wait(), timeout=5.0)

        assert server.spawns == 1
        assert server.last_exit_code == 0
        assert server.state is ServerState.IDLE

    asyncio.run(runner())

    content = log_file.read_text()
    assert "out" in content
    assert "err" in content


def test_log_file_is_appended_across_restarts(tmp_path: Path) -> None:
    log_file = tmp_path / "echo.log"

    async def runner() -> None:
        server = ServerWrapper(
            "echo",
            _python("print('tick')"),
            LoggerConfig(enabled=True, filename=str(log_file)),
            restart_delay=0.05,
        )
        server.start()
        await _wait_for(lambda: server.spawns >= 3)
        server.stop()
        await asyncio.wait_for(server.wait(), timeout=5.0)

    asyncio.run(runner())
    assert log_file.read_text().count("tick") >= 3


def test_log_open_failure_is_retried_without_spawning(tmp_path: Path) -> None:
    blocked = tmp_path / "logs" / "blocked.log"
    blocked.mkdir(parents=True)

    async def runner() -> None:
        server = ServerWrapper(
            "blocked",
            _python("print('never')"),
            LoggerConfig(enabled=True, filename=str(blocked)),
            restart_delay=0.05,
        )
        server.start()
        await _wait_for(lambda: server.attempts >= 3)
        server.stop()
        await asyncio.wait_for(server.wait(), timeout=5.0)

        assert server.spawns == 0
        assert server.state is ServerState.IDLE

    asyncio.run(runner())


def test_exit_code_is_cleared_when_a_later_attempt_fails(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    log_file = tmp_path / "flip.log"

    async def runner() -> None:
        server = ServerWrapper(
            "flip",
            _python("import sys; sys.exit(3)"),
            LoggerConfig(enabled=True, filename=str(log_file)),
            restart_delay=0.3,
        )
        server.start()
        await _wait_for(lambda: server.last_exit_code == 3)

        # the next attempt cannot open its log
        log_file.unlink()
        log_file.mkdir()
        await _wait_for(lambda: server.attempts >= 3)
        assert server.spawns == 1
        assert server.last_exit_code is None

        server.stop()
        await asyncio.wait_for(server.wait(), timeout=5.0)

    with caplog.at_level("ERROR"):
        asyncio.run(runner())
    assert "Server flip terminated (exit code None)" in caplog.messages


def test_spawn_failure_is_retried(tmp_path: Path) -> None:
    async def runner() -> None:
        server = ServerWrapper(
            "ghost",
            [str(tmp_path / "does-not-exist")],
            LoggerConfig(enabled=False),
            restart_delay=0.05,
        )
        server.start()
        await _wait_for(lambda: server.attempts >= 2)
        server.stop()
        await asyncio.wait_for(server.wait(), timeout=5.0)
        assert server.spawns == 0

    asyncio.run(runner())


def test_start_fails_loudly_when_log_directory_cannot_be_created(tmp_path: Path) -> None:
    not_a_directory = tmp_path / "plain-file"
    not_a_directory.write_text("")

    async def runner() -> None:
        server = ServerWrapper(
            "srv",
            _python("pass"),
            LoggerConfig(enabled=True, filename=str(not_a_directory / "srv.log")),
        )
        with pytest.raises(OSError):
            server.start()
        assert server.state is ServerState.IDLE
        await server.wait()

    asyncio.run(runner())


def test_empty_command_is_rejected() -> None:
    with pytest.raises(ValueError):
        ServerWrapper("empty", [], LoggerConfig())


# Manager -------------------------------------------------------------------


@pytest.fixture
def python_cluster(context: ClusterContext, tmp_path: Path) -> ClusterContext:
    context.config.deployment_directory = str(tmp_path)
    context.register_directory("logging", [], "var/log")
    # 표준입력이 DEVNULL 이므로 인자 없는 인터프리터는 바로 종료된다.
    context.register_server("both", [Role.CONTROLLER, Role.WORKER], sys.executable, {})
    context.register_server("only-worker", [Role.WORKER], sys.executable, {})
    context.register_server("only-controller", [Role.CONTROLLER], sys.executable, {})
    context.set_node("work1", context.config.nodes["work1"])
    return context


def test_manager_selects_servers_by_node_labels(python_cluster: ClusterContext, tmp_path: Path) -> None:
    manager = ServerManager(python_cluster, restart_delay=0.05)
    names = [server.name for server in manager.build()]

    assert names == ["both", "only-worker"]
    assert manager.status()[0]["log_filename"] == str(tmp_path / "var" / "log" / "both.log")
    assert manager.status()[0]["state"] == "idle"


def test_manager_requires_current_node(context: ClusterContext) -> None:
    context.set_node("ghost", None)
    with pytest.raises(ClusterConfigError):
        ServerManager(context).build()


def test_manager_build_propagates_template_errors(python_cluster: ClusterContext) -> None:
    python_cluster.register_server("bad", [Role.WORKER], sys.executable, {"x": "{{ nope() }}"})
    manager = ServerManager(python_cluster)

    with pytest.raises(TemplateError):
        manager.build()
    assert manager.servers == []


def test_manager_runs_and_stops_all(python_cluster: ClusterContext, tmp_path: Path) -> None:
    async def runner() -> None:
        manager = ServerManager(python_cluster, restart_delay=0.05)
        manager.build()
        manager.start_all()
        assert {entry["state"] for entry in manager.status()} == {"running"}

        await _wait_for(lambda: all(server.spawns >= 2 for server in manager.servers))
        manager.stop_all()
        await asyncio.wait_for(manager.wait_all(), timeout=5.0)

        for entry in manager.status():
            assert entry["state"] == "idle"
            assert entry["last_exit_code"] == 0
            assert entry["command"] == [sys.executable]

    asyncio.run(runner())
    assert (tmp_path / "var" / "log" / "both.log").exists()
