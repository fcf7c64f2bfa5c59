"""읽기 전용 진단 REST API 라우트."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from aiohttp import web

from cluster import registry
from cluster.context import ClusterContext
from cluster.models import Role, sorted_labels
from supervisor.manager import ServerManager


class DiagnosticsApi:
    def __init__(self, context: ClusterContext, manager: ServerManager | None = None) -> None:
        self._context = context
        self._manager = manager

    def routes(self) -> tuple[web.RouteDef, ...]:
        return (
            web.get("/api/status", self.get_status),
            web.get("/api/nodes", self.list_nodes),
            web.get("/api/assets", self.list_assets),
            web.get("/api/commands", self.list_commands),
            web.get("/api/servers", self.list_servers),
        )

    async def get_status(self, _: web.Request) -> web.Response:
        node = self._context.node
        payload = {
            "status": "ok",
            "name": self._context.name,
            "node": self._node_to_dict(node) if node is not None else None,
            "servers": self._manager.status() if self._manager is not None else [],
        }
        return web.json_response(payload)

    async def list_nodes(self, _: web.Request) -> web.Response:
        nodes = self._context.config.nodes
        payload = [
            {"name": name, **self._node_to_dict(nodes[name])} for name in self._context.sorted_node_names()
        ]
        return web.json_response({"nodes": payload})

    async def list_assets(self, request: web.Request) -> web.Response:
        roles = self._parse_roles(request)
        return web.json_response(
            {
                "directories": self._entries(registry.list_directories, roles),
                "files": self._entries(registry.list_files, roles),
            }
        )

    async def list_commands(self, request: web.Request) -> web.Response:
        roles = self._parse_roles(request)
        return web.json_response({"commands": self._entries(registry.list_commands, roles)})

    async def list_servers(self, request: web.Request) -> web.Response:
        roles = self._parse_roles(request)
        return web.json_response({"servers": self._entries(registry.list_servers, roles)})

    def _parse_roles(self, request: web.Request) -> list[Role] | None:
        values = request.query.getall("role", [])
        if not values:
            return None
        try:
            return [Role(value.strip().lower()) for value in values]
        except ValueError as exc:
            raise web.HTTPBadRequest(text="invalid role") from exc

    def _entries(self, lister: Callable[..., list[registry.RegistryEntry]], roles: list[Role] | None) -> list[dict[str, Any]]:
        return [
            {"name": entry.name, "labels": list(entry.labels), "detail": entry.detail}
            for entry in lister(self._context, roles)
        ]

    def _node_to_dict(self, node: Any) -> dict[str, Any]:
        return {"ip": node.ip, "index": node.index, "labels": sorted_labels(node.labels)}
