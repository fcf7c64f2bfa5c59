"""서버 명령줄 생성과 서버별 재시작 감독 루프."""

from __future__ import annotations

import asyncio
import asyncio.subprocess
import contextlib
import logging
from enum import Enum
from pathlib import Path
from typing import IO, Sequence

from cluster.context import ClusterContext
from cluster.errors import LogOpenError, MissingAssetError, TemplateError
from cluster.models import CommandConfig, LoggerConfig, ServerConfig

LOGGER = logging.getLogger(__name__)


def materialize_command(context: ClusterContext, name: str, server: ServerConfig) -> list[str]:
    """``[바이너리, --flag, --flag=value, ...]`` argv 를 만든다. 플래그는 이름순.

    실패하면 예외 메시지에 ``<서버>.<플래그>`` 라벨이 들어간다.
    """
    argv = [_expand_part(context, name, "command", server.command)]
    for key in sorted(server.arguments):
        value = server.arguments[key]
        if not value:
            argv.append(f"--{key}")
            continue
        argv.append(f"--{key}={_expand_part(context, name, key, value)}")
    return argv


def _expand_part(context: ClusterContext, name: str, key: str, value: str) -> str:
    label = f"{name}.{key}"
    try:
        return context.apply_template(label, value)
    except TemplateError as exc:
        raise TemplateError(label, value, f"server '{name}' flag '{key}': {exc.reason}") from exc
    except MissingAssetError as exc:
        raise MissingAssetError(exc.name, exc.kind, label) from exc


def expand_logger(context: ClusterContext, name: str, logger: LoggerConfig) -> LoggerConfig:
    if not logger.enabled:
        return logger
    return LoggerConfig(enabled=True, filename=context.apply_template(f"{name}.logger", logger.filename))


def expand_command(context: ClusterContext, name: str, command: CommandConfig) -> str:
    return context.apply_template(name, command.command)


class ServerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class ServerWrapper:
    """외부 프로세스 하나를 띄우고, 종료되면 고정 지연 후 다시 띄운다.

    ``stop()`` 은 실행 중인 자식 프로세스를 죽이지 않는다. 자식이 스스로 종료된
    뒤에야 루프가 정지 요청을 확인하고 빠져나온다.
    """

    restart_delay: float = 1.0

    def __init__(
        self,
        name: str,
        command: Sequence[str],
        logger: LoggerConfig,
        *,
        restart_delay: float | None = None,
    ) -> None:
        if not command:
            raise ValueError(f"server '{name}' has an empty command")
        self._name = name
        self._command = list(command)
        self._logger = logger
        if restart_delay is not None:
            self.restart_delay = restart_delay
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._state = ServerState.IDLE
        self.attempts = 0
        self.spawns = 0
        self.last_exit_code: int | None = None

    @classmethod
    def from_config(
        cls,
        context: ClusterContext,
        name: str,
        server: ServerConfig,
        *,
        restart_delay: float | None = None,
    ) -> ServerWrapper:
        return cls(
            name,
            materialize_command(context, name, server),
            expand_logger(context, name, server.logger),
            restart_delay=restart_delay,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def log_filename(self) -> str | None:
        return self._logger.filename if self._logger.enabled else None

    @property
    def state(self) -> ServerState:
        return self._state

    def start(self) -> None:
        """감독 루프를 예약하고 바로 반환한다. 실행 중인 asyncio 루프가 필요하다."""
        self._stop_event.clear()

        if self._logger.enabled:
            Path(self._logger.filename).parent.mkdir(parents=True, exist_ok=True)

        if self._task is not None and not self._task.done():
            self._state = ServerState.RUNNING
            return

        self._state = ServerState.RUNNING
        self._task = asyncio.create_task(self._run(), name=f"server:{self._name}")

    def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None and not self._task.done():
            self._state = ServerState.STOPPING

    async def wait(self) -> None:
        """감독 루프가 끝날 때까지 기다린다."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def _run(self) -> None:
        try:
            while True:
                self.attempts += 1
                self.last_exit_code = None
                LOGGER.info("Starting server %s: %s", self._name, " ".join(self._command))
                try:
                    self.last_exit_code = await self._run_once()
                except LogOpenError as exc:
                    LOGGER.error("Server %s: %s (%s)", self._name, exc, exc.__cause__)
                except OSError as exc:
                    LOGGER.error("Server %s could not be spawned: %s", self._name, exc)

                await asyncio.sleep(self.restart_delay)

                if self._stop_event.is_set():
                    break
                LOGGER.error("Server %s terminated (exit code %s)", self._name, self.last_exit_code)
        finally:
            self._state = ServerState.IDLE
            LOGGER.info("Server %s stopped", self._name)

    async def _run_once(self) -> int:
        with contextlib.ExitStack() as stack:
            output: IO[bytes] | int = asyncio.subprocess.DEVNULL
            if self._logger.enabled:
                output = stack.enter_context(self._open_log())

            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=output,
                stderr=output,
            )
            self.spawns += 1
            LOGGER.debug("Server %s spawned with pid %s", self._name, process.pid)
            return await process.wait()

    def _open_log(self) -> IO[bytes]:
        try:
            return open(self._logger.filename, "ab")
        except OSError as exc:
            raise LogOpenError(self._logger.filename) from exc
