"""현재 노드의 역할에 해당하는 서버들을 한꺼번에 구동/정지한다."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from cluster.context import ClusterContext
from cluster.errors import ClusterConfigError

from .server import ServerWrapper

LOGGER = logging.getLogger(__name__)


class ServerManager:
    def __init__(self, context: ClusterContext, *, restart_delay: float | None = None) -> None:
        self._context = context
        self._restart_delay = restart_delay
        self._servers: dict[str, ServerWrapper] = {}

    @property
    def servers(self) -> list[ServerWrapper]:
        return list(self._servers.values())

    def build(self) -> list[ServerWrapper]:
        """현재 노드 라벨과 겹치는 서버 설정을 확장해 래퍼를 만든다.

        템플릿 오류는 어떤 서버도 시작하기 전에 호출자에게 전파된다.
        """
        node = self._context.node
        if node is None:
            raise ClusterConfigError(f"node '{self._context.name}' is not part of the cluster config")

        servers: dict[str, ServerWrapper] = {}
        for name, server in self._context.config.servers.items():
            if not node.has_any(server.labels):
                continue
            servers[name] = ServerWrapper.from_config(
                self._context, name, server, restart_delay=self._restart_delay
            )
        self._servers = servers
        LOGGER.info("Node %s runs %d server(s): %s", self._context.name, len(servers), ", ".join(servers) or "-")
        return self.servers

    def start_all(self) -> None:
        for server in self._servers.values():
            server.start()

    def stop_all(self) -> None:
        for server in self._servers.values():
            server.stop()

    async def wait_all(self) -> None:
        await asyncio.gather(*(server.wait() for server in self._servers.values()))

    def status(self) -> list[dict[str, Any]]:
        return [
            {
                "name": server.name,
                "state": server.state.value,
                "attempts": server.attempts,
                "spawns": server.spawns,
                "last_exit_code": server.last_exit_code,
                "log_filename": server.log_filename,
                "command": server.command,
            }
            for server in self._servers.values()
        ]
