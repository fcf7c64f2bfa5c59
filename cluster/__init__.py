"""노드 역할별 경로/명령줄을 선언적 모델에서 만들어내는 설정 계층."""

from .context import ClusterContext
from .errors import (
    ClusterConfigError,
    ConfigFormatError,
    ConfigNotFoundError,
    EmptyNodeNameError,
    InvalidNodeAddressError,
    InvalidNodeError,
    InvalidNodeIndexError,
    LogOpenError,
    MissingAssetError,
    NodeNotFoundError,
    TemplateError,
)
from .models import Config, LoggerConfig, Node, Role, ServerConfig
from .registry import generate
from .storage import ConfigStorage, load_context

__all__ = [
    "ClusterConfigError",
    "ClusterContext",
    "Config",
    "ConfigFormatError",
    "ConfigNotFoundError",
    "ConfigStorage",
    "EmptyNodeNameError",
    "InvalidNodeAddressError",
    "InvalidNodeError",
    "InvalidNodeIndexError",
    "LogOpenError",
    "LoggerConfig",
    "MissingAssetError",
    "Node",
    "NodeNotFoundError",
    "Role",
    "ServerConfig",
    "TemplateError",
    "generate",
    "load_context",
]
