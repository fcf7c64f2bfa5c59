"""nodeforge 선언적 설정 도메인 모델."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from . import constants


class Role(str, Enum):
    """노드 역할."""

    CONTROLLER = "controller"
    WORKER = "worker"
    BOOTSTRAPPER = "bootstrapper"


def labels_of(roles: Iterable[Role | str] | None) -> frozenset[Role]:
    """역할 목록을 ``frozenset[Role]`` 로 정규화한다. 알 수 없는 값은 ValueError."""
    if not roles:
        return frozenset()
    return frozenset(Role(role) for role in roles)


def sorted_labels(labels: Iterable[Role]) -> list[str]:
    return sorted(role.value for role in labels)


@dataclass(slots=True, frozen=True)
class Node:
    """클러스터 멤버. 이름은 ``Config.nodes`` 의 키로 식별된다."""

    ip: str
    index: int
    labels: frozenset[Role] = frozenset()

    def is_controller(self) -> bool:
        return Role.CONTROLLER in self.labels

    def is_worker(self) -> bool:
        return Role.WORKER in self.labels

    def has_any(self, roles: Iterable[Role]) -> bool:
        return not self.labels.isdisjoint(roles)


@dataclass(slots=True, frozen=True)
class AssetDirectory:
    directory: str  # 상대 경로, 템플릿 가능
    labels: frozenset[Role] = frozenset()


@dataclass(slots=True, frozen=True)
class AssetFile:
    directory: str  # 소유 디렉터리의 논리 이름
    labels: frozenset[Role] = frozenset()


@dataclass(slots=True, frozen=True)
class CommandConfig:
    command: str
    labels: frozenset[Role] = frozenset()


@dataclass(slots=True, frozen=True)
class LoggerConfig:
    enabled: bool = False
    filename: str = ""


@dataclass(slots=True, frozen=True)
class ServerConfig:
    """실행 파일 경로 템플릿과 인자 맵으로 정의되는 장기 실행 서버."""

    command: str
    arguments: dict[str, str] = field(default_factory=dict)
    labels: frozenset[Role] = frozenset()
    logger: LoggerConfig = field(default_factory=LoggerConfig)


@dataclass(slots=True)
class Config:
    """노드 집합과 레지스트리를 묶은 선언적 설정 문서."""

    version: str = constants.CONFIG_VERSION
    load_balancer_port: int = constants.LOAD_BALANCER_PORT
    apiserver_port: int = constants.API_SERVER_PORT
    controller_virtual_ip: str = ""
    controller_virtual_ip_interface: str = ""
    worker_virtual_ip: str = ""
    worker_virtual_ip_interface: str = ""
    cluster_ip_range: str = constants.CLUSTER_IP_RANGE
    cluster_dns_ip: str = constants.CLUSTER_DNS_IP
    cluster_cidr: str = constants.CLUSTER_CIDR
    resolv_conf: str = constants.RESOLV_CONF
    deployment_directory: str = constants.DEFAULT_DEPLOYMENT_DIRECTORY
    directories: dict[str, AssetDirectory] = field(default_factory=dict)
    files: dict[str, AssetFile] = field(default_factory=dict)
    nodes: dict[str, Node] = field(default_factory=dict)
    commands: dict[str, CommandConfig] = field(default_factory=dict)
    servers: dict[str, ServerConfig] = field(default_factory=dict)
