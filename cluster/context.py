"""설정 문서와 현재 노드를 묶는 명시적 컨텍스트.

레지스트리, 노드 집합, 템플릿 확장은 모두 이 객체를 통해서만 접근한다.
감독 루프가 실행되는 동안에는 읽기 전용으로 취급한다.
"""

from __future__ import annotations

import ipaddress
import logging
import posixpath
from collections.abc import Iterable, Mapping

from . import constants
from .errors import (
    ClusterConfigError,
    EmptyNodeNameError,
    InvalidNodeAddressError,
    InvalidNodeIndexError,
    MissingAssetError,
    NodeNotFoundError,
)
from .models import (
    AssetDirectory,
    AssetFile,
    CommandConfig,
    Config,
    LoggerConfig,
    Node,
    Role,
    ServerConfig,
    labels_of,
    sorted_labels,
)
from .template import TemplateResolver

LOGGER = logging.getLogger(__name__)


def _rooted(base: str, relative: str) -> str:
    return posixpath.normpath(posixpath.join(base or "/", relative.lstrip("/")))


def validate_node(name: str, ip: str, index: int) -> str:
    """노드 불변식을 검사하고 공백을 제거한 이름을 돌려준다."""
    name = name.strip(" \t\n")
    if not name:
        raise EmptyNodeNameError()

    try:
        ipaddress.ip_address(ip)
    except ValueError:
        raise InvalidNodeAddressError(ip) from None

    if index < 0:
        raise InvalidNodeIndexError(index)
    return name


class ClusterContext:
    def __init__(self, base_directory: str, config: Config | None = None) -> None:
        self.base_directory = base_directory
        self.config = config if config is not None else Config()
        self.name: str | None = None
        self.node: Node | None = None
        self._resolver = TemplateResolver(self)

    # Node ---------------------------------------------------------------

    def set_node(self, name: str | None, node: Node | None) -> None:
        self.name = name
        self.node = node

    def add_node(self, name: str, ip: str, index: int, roles: Iterable[Role | str]) -> Node:
        name = validate_node(name, ip, index)
        node = Node(ip=ip, index=index, labels=labels_of(roles))
        self.config.nodes[name] = node
        return node

    def remove_node(self, name: str) -> None:
        if name not in self.config.nodes:
            raise NodeNotFoundError(name)
        del self.config.nodes[name]

    def sorted_node_names(self) -> list[str]:
        return sorted(self.config.nodes)

    def controller_nodes(self) -> list[tuple[str, Node]]:
        """컨트롤러 노드 목록. 생성되는 플래그가 매번 같도록 이름순으로 정렬한다."""
        return [(name, self.config.nodes[name]) for name in self.sorted_node_names() if self.config.nodes[name].is_controller()]

    def etcd_client_endpoints(self) -> list[str]:
        return [f"https://{node.ip}:{constants.ETCD_CLIENT_PORT}" for _, node in self.controller_nodes()]

    def api_server_ip(self) -> str:
        if self.config.controller_virtual_ip:
            return self.config.controller_virtual_ip
        for _, node in self.controller_nodes():
            return node.ip
        raise ClusterConfigError("no API server IP found")

    def kube_api_server_addresses(self) -> list[str]:
        return [f"{node.ip}:{self.config.apiserver_port}" for _, node in self.controller_nodes()]

    # Assets -------------------------------------------------------------

    def register_directory(self, name: str, roles: Iterable[Role | str], relative_path: str) -> None:
        if name in self.config.directories:
            return
        self.config.directories[name] = AssetDirectory(directory=relative_path, labels=labels_of(roles))

    def register_file(self, name: str, roles: Iterable[Role | str], directory_name: str) -> None:
        if name in self.config.files:
            return
        self.config.files[name] = AssetFile(directory=directory_name, labels=labels_of(roles))

    def relative_directory(self, name: str) -> str:
        """확장 전 상대 경로. 등록 테이블에서 하위 디렉터리를 만들 때 쓴다."""
        directory = self.config.directories.get(name)
        if directory is None:
            raise MissingAssetError(name, "asset directory")
        return directory.directory

    def resolve_directory_path(self, name: str) -> str:
        return self.apply_template("asset-directory", self.relative_directory(name))

    def resolve_file_path(self, name: str) -> str:
        asset = self.config.files.get(name)
        if asset is None:
            raise MissingAssetError(name, "asset file")
        directory = self.config.directories.get(asset.directory)
        if directory is None:
            raise MissingAssetError(asset.directory, "asset directory")
        # 디렉터리 경로와 파일 이름 모두 플레이스홀더를 가질 수 있어 합친 뒤 다시 확장한다.
        return self.apply_template("asset-file", posixpath.join(directory.directory, name))

    def full_target_directory(self, name: str) -> str:
        return _rooted(self.config.deployment_directory, self.resolve_directory_path(name))

    def full_target_file(self, name: str) -> str:
        return _rooted(self.config.deployment_directory, self.resolve_file_path(name))

    def full_local_directory(self, name: str) -> str:
        return _rooted(self.base_directory, self.resolve_directory_path(name))

    def full_local_file(self, name: str) -> str:
        return _rooted(self.base_directory, self.resolve_file_path(name))

    @staticmethod
    def template_asset_file(name: str) -> str:
        return f'{{{{ asset_file("{name}") }}}}'

    @staticmethod
    def template_asset_directory(name: str) -> str:
        return f'{{{{ asset_directory("{name}") }}}}'

    # Commands / servers -------------------------------------------------

    def register_command(self, name: str, roles: Iterable[Role | str], command: str) -> None:
        if name in self.config.commands:
            return
        self.config.commands[name] = CommandConfig(command=command, labels=labels_of(roles))

    def register_server(
        self,
        name: str,
        roles: Iterable[Role | str],
        command: str,
        arguments: Mapping[str, str],
    ) -> None:
        if name in self.config.servers:
            return
        logger = LoggerConfig(
            enabled=True,
            filename=posixpath.join(self.template_asset_directory(constants.LOGGING_DIRECTORY), f"{name}.log"),
        )
        self.config.servers[name] = ServerConfig(
            command=command,
            arguments=dict(arguments),
            labels=labels_of(roles),
            logger=logger,
        )

    # Templates ----------------------------------------------------------

    def apply_template(self, label: str, template: str) -> str:
        return self._resolver.expand(label, template)

    def dump(self) -> None:
        LOGGER.info("config base-directory=%s", self.base_directory)
        LOGGER.info("config name=%s", self.name)
        if self.node is not None:
            LOGGER.info(
                "config ip=%s labels=%s index=%d",
                self.node.ip,
                ",".join(sorted_labels(self.node.labels)),
                self.node.index,
            )

        for name, asset in self.config.files.items():
            LOGGER.info(
                "config asset file name=%s directory=%s labels=%s",
                name,
                asset.directory,
                ",".join(sorted_labels(asset.labels)),
            )
        for name in self.sorted_node_names():
            node = self.config.nodes[name]
            LOGGER.info(
                "config node name=%s index=%d labels=%s ip=%s",
                name,
                node.index,
                ",".join(sorted_labels(node.labels)),
                node.ip,
            )
        for name, command in self.config.commands.items():
            LOGGER.info(
                "config command name=%s command=%s labels=%s",
                name,
                command.command,
                ",".join(sorted_labels(command.labels)),
            )
        for name, server in self.config.servers.items():
            LOGGER.info(
                "config server name=%s command=%s labels=%s logger=%s",
                name,
                server.command,
                ",".join(sorted_labels(server.labels)),
                server.logger.filename if server.logger.enabled else "-",
            )
