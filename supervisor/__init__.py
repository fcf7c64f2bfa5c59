"""설정에서 확장한 서버 프로세스를 띄우고 종료 시 재시작하는 감독 모듈."""

from .manager import ServerManager
from .server import ServerState, ServerWrapper, expand_command, materialize_command

__all__ = [
    "ServerManager",
    "ServerState",
    "ServerWrapper",
    "expand_command",
    "materialize_command",
]
