"""YAML 기반 설정 문서 영속화 헬퍼."""

from __future__ import annotations

import logging
import socket
from pathlib import Path
from typing import Any

import yaml

from . import constants
from .context import ClusterContext, validate_node
from .errors import ConfigFormatError, ConfigNotFoundError, InvalidNodeError
from .models import (
    AssetDirectory,
    AssetFile,
    CommandConfig,
    Config,
    LoggerConfig,
    Node,
    ServerConfig,
    labels_of,
    sorted_labels,
)

LOGGER = logging.getLogger(__name__)

_SCALAR_FIELDS: tuple[tuple[str, str], ...] = (
    ("version", "version"),
    ("load_balancer_port", "load-balancer-port"),
    ("apiserver_port", "apiserver-port"),
    ("controller_virtual_ip", "controller-virtual-ip"),
    ("controller_virtual_ip_interface", "controller-virtual-ip-interface"),
    ("worker_virtual_ip", "worker-virtual-ip"),
    ("worker_virtual_ip_interface", "worker-virtual-ip-interface"),
    ("cluster_ip_range", "cluster-ip-range"),
    ("cluster_dns_ip", "cluster-dns-ip"),
    ("cluster_cidr", "cluster-cidr"),
    ("resolv_conf", "resolv-conf"),
    ("deployment_directory", "deployment-directory"),
)


def config_directory(base_directory: str | Path) -> Path:
    return Path(base_directory) / constants.CONFIG_SUBDIRECTORY / constants.TOOL_SUBDIRECTORY


class ConfigStorage:
    def __init__(self, base_directory: str | Path) -> None:
        self._base_directory = Path(base_directory)

    @property
    def filename(self) -> Path:
        return config_directory(self._base_directory) / constants.CONFIG_FILENAME

    def save(self, config: Config) -> Path:
        filename = self.filename
        filename.parent.mkdir(parents=True, exist_ok=True)
        document = yaml.safe_dump(config_to_dict(config), sort_keys=False, default_flow_style=False)
        filename.write_text(document, encoding="utf-8")
        LOGGER.info("Saved config to %s", filename)
        return filename

    def load(self) -> Config:
        filename = self.filename
        if not filename.exists():
            raise ConfigNotFoundError(str(filename))

        try:
            document = yaml.safe_load(filename.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigFormatError(f"invalid YAML in '{filename}': {exc}") from exc

        config = config_from_dict(document)
        LOGGER.debug("Loaded config from %s (%d nodes)", filename, len(config.nodes))
        return config


def load_context(base_directory: str | Path, node_name: str | None = None) -> ClusterContext:
    """저장된 문서를 읽어 컨텍스트를 만들고, 현재 노드를 이름(기본: 호스트명)으로 선택한다."""
    config = ConfigStorage(base_directory).load()
    context = ClusterContext(str(base_directory), config)
    name = node_name or socket.gethostname()
    context.set_node(name, config.nodes.get(name))
    if context.node is None:
        LOGGER.warning("Node '%s' is not part of the cluster config", name)
    return context


# Mapping -------------------------------------------------------------------


def config_to_dict(config: Config) -> dict[str, Any]:
    payload: dict[str, Any] = {key: getattr(config, attr) for attr, key in _SCALAR_FIELDS}
    payload["assets"] = {
        "directories": {
            name: {"directory": entry.directory, "labels": sorted_labels(entry.labels)}
            for name, entry in config.directories.items()
        },
        "files": {
            name: {"directory": entry.directory, "labels": sorted_labels(entry.labels)}
            for name, entry in config.files.items()
        },
    }
    payload["nodes"] = {
        name: {"ip": node.ip, "index": node.index, "labels": sorted_labels(node.labels)}
        for name, node in config.nodes.items()
    }
    payload["commands"] = {
        name: {"command": entry.command, "labels": sorted_labels(entry.labels)}
        for name, entry in config.commands.items()
    }
    payload["servers"] = {
        name: {
            "command": entry.command,
            "labels": sorted_labels(entry.labels),
            "arguments": dict(sorted(entry.arguments.items())),
            "logger": {"enabled": entry.logger.enabled, "filename": entry.logger.filename},
        }
        for name, entry in config.servers.items()
    }
    return payload


def config_from_dict(document: Any) -> Config:
    if not isinstance(document, dict):
        raise ConfigFormatError("config document must be a mapping")

    config = Config()
    try:
        for attr, key in _SCALAR_FIELDS:
            if key in document and document[key] is not None:
                default = getattr(config, attr)
                setattr(config, attr, type(default)(document[key]))

        assets = document.get("assets") or {}
        for name, entry in _section(assets, "directories").items():
            config.directories[name] = AssetDirectory(
                directory=str(entry["directory"]), labels=labels_of(entry.get("labels"))
            )
        for name, entry in _section(assets, "files").items():
            config.files[name] = AssetFile(directory=str(entry["directory"]), labels=labels_of(entry.get("labels")))
        for name, entry in _section(document, "nodes").items():
            node = Node(ip=str(entry["ip"]), index=int(entry.get("index", 0)), labels=labels_of(entry.get("labels")))
            try:
                name = validate_node(str(name), node.ip, node.index)
            except InvalidNodeError as exc:
                raise ConfigFormatError(f"invalid node {name!r}: {exc}") from exc
            config.nodes[name] = node
        for name, entry in _section(document, "commands").items():
            config.commands[name] = CommandConfig(
                command=str(entry["command"]), labels=labels_of(entry.get("labels"))
            )
        for name, entry in _section(document, "servers").items():
            logger = entry.get("logger") or {}
            config.servers[name] = ServerConfig(
                command=str(entry["command"]),
                arguments={str(key): "" if value is None else str(value) for key, value in (entry.get("arguments") or {}).items()},
                labels=labels_of(entry.get("labels")),
                logger=LoggerConfig(enabled=bool(logger.get("enabled", False)), filename=str(logger.get("filename", ""))),
            )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ConfigFormatError(f"invalid config document: {exc!r}") from exc
    return config


def _section(document: dict[str, Any], key: str) -> dict[str, dict[str, Any]]:
    section = document.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigFormatError(f"'{key}' must be a mapping")
    return section

