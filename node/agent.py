"""nodeforge 노드 에이전트 진입점.

설정 문서를 만들고 노드를 관리하며, ``run`` 으로 현재 노드의 서버들을 감독한다.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from typing import Sequence

from aiohttp import web

from cluster import registry
from cluster.context import ClusterContext
from cluster.errors import ClusterConfigError, ConfigNotFoundError
from cluster.models import Role
from cluster.storage import ConfigStorage, load_context
from supervisor.manager import ServerManager
from supervisor.server import expand_command

from .api import DiagnosticsApi

LOGGER = logging.getLogger(__name__)


def _split_roles(value: str | None) -> list[Role]:
    if not value:
        return []
    try:
        return [Role(item.strip().lower()) for item in value.split(",") if item.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"unknown role in '{value}'") from exc


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="nodeforge 노드 에이전트")
    parser.add_argument(
        "--base-directory",
        default=os.getenv("NODEFORGE_BASE_DIRECTORY", "/"),
        help="로컬 에셋 루트 경로",
    )
    parser.add_argument("--verbose", action="store_true", help="디버그 로그 출력")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="기본 에셋/명령/서버 테이블을 등록하고 저장")
    generate.add_argument(
        "--deployment-directory",
        default=os.getenv("NODEFORGE_DEPLOYMENT_DIRECTORY", "/"),
        help="대상 노드의 배포 루트 경로",
    )

    add_node = subparsers.add_parser("add-node", help="노드 추가(같은 이름이면 교체)")
    add_node.add_argument("--name", required=True, help="노드 이름")
    add_node.add_argument("--ip", required=True, help="노드 IP 주소")
    add_node.add_argument("--index", type=int, default=0, help="노드 순번")
    add_node.add_argument(
        "--labels",
        type=_split_roles,
        default=[Role.CONTROLLER, Role.WORKER],
        help="역할 목록(콤마 구분: controller,worker,bootstrapper)",
    )

    remove_node = subparsers.add_parser("remove-node", help="노드 제거")
    remove_node.add_argument("--name", required=True, help="노드 이름")

    dump = subparsers.add_parser("dump", help="설정과 레지스트리를 로그로 출력")
    dump.add_argument("--roles", type=_split_roles, default=None, help="역할 필터(콤마 구분)")

    commands = subparsers.add_parser("commands", help="현재 노드 역할에 해당하는 명령을 확장해 출력")
    commands.add_argument("--node-name", default=os.getenv("NODEFORGE_NODE_NAME"), help="현재 노드 이름 (기본: 호스트명)")
    commands.add_argument("--roles", type=_split_roles, default=None, help="노드 라벨 대신 사용할 역할(콤마 구분)")

    run = subparsers.add_parser("run", help="현재 노드의 서버들을 감독")
    run.add_argument("--node-name", default=os.getenv("NODEFORGE_NODE_NAME"), help="현재 노드 이름 (기본: 호스트명)")
    run.add_argument("--http-host", default="127.0.0.1", help="진단 API 바인딩 호스트")
    run.add_argument(
        "--http-port",
        type=int,
        default=int(os.getenv("NODEFORGE_HTTP_PORT", "0")),
        help="진단 API 포트 (0이면 비활성화)",
    )
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")


def _load_or_create(base_directory: str) -> ClusterContext:
    try:
        return ClusterContext(base_directory, ConfigStorage(base_directory).load())
    except ConfigNotFoundError:
        LOGGER.info("No config found under %s, creating a new one", base_directory)
        return ClusterContext(base_directory)


def _cmd_generate(args: argparse.Namespace) -> int:
    context = _load_or_create(args.base_directory)
    registry.generate(context, args.deployment_directory)
    ConfigStorage(args.base_directory).save(context.config)
    return 0


def _cmd_add_node(args: argparse.Namespace) -> int:
    context = _load_or_create(args.base_directory)
    node = context.add_node(args.name, args.ip, args.index, args.labels)
    ConfigStorage(args.base_directory).save(context.config)
    LOGGER.info("Added node %s (ip=%s, index=%d)", args.name.strip(), node.ip, node.index)
    return 0


def _cmd_remove_node(args: argparse.Namespace) -> int:
    storage = ConfigStorage(args.base_directory)
    context = ClusterContext(args.base_directory, storage.load())
    context.remove_node(args.name)
    storage.save(context.config)
    LOGGER.info("Removed node %s", args.name)
    return 0


def _cmd_dump(args: argparse.Namespace) -> int:
    context = ClusterContext(args.base_directory, ConfigStorage(args.base_directory).load())
    context.dump()
    registry.dump_registry(context, args.roles)
    return 0


def _cmd_commands(args: argparse.Namespace) -> int:
    context = load_context(args.base_directory, args.node_name)
    roles = args.roles
    if roles is None:
        if context.node is None:
            LOGGER.error("노드 '%s' 가 설정에 없습니다. --roles 를 지정하세요.", context.name)
            return 1
        roles = list(context.node.labels)

    for entry in registry.list_commands(context, roles):
        print(f"{entry.name}: {expand_command(context, entry.name, context.config.commands[entry.name])}")
    return 0


async def _run_node(args: argparse.Namespace) -> None:
    context = load_context(args.base_directory, args.node_name)
    manager = ServerManager(context)
    manager.build()

    web_runner: web.AppRunner | None = None
    if args.http_port:
        app = web.Application()
        app.add_routes(DiagnosticsApi(context, manager).routes())
        web_runner = web.AppRunner(app)
        await web_runner.setup()
        await web.TCPSite(web_runner, args.http_host, args.http_port).start()
        LOGGER.info("Diagnostics API available on http://%s:%s", args.http_host, args.http_port)

    stop_event = asyncio.Event()
    force_event = asyncio.Event()

    def _handle_signal(*_: signal.Signals) -> None:
        if stop_event.is_set():
            LOGGER.warning("Second shutdown signal, not waiting for servers to exit")
            force_event.set()
            return
        LOGGER.info("Received shutdown signal")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _handle_signal)

    manager.start_all()
    try:
        await stop_event.wait()
    finally:
        manager.stop_all()
        if web_runner is not None:
            await web_runner.cleanup()

    # 실행 중인 자식은 스스로 종료될 때까지 기다린다. 두 번째 시그널이면 기다리지 않는다.
    LOGGER.info("Waiting for running servers to exit")
    waiter = asyncio.create_task(manager.wait_all())
    forced = asyncio.create_task(force_event.wait())
    _, pending = await asyncio.wait({waiter, forced}, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def _cmd_run(args: argparse.Namespace) -> int:
    asyncio.run(_run_node(args))
    return 0


_COMMANDS = {
    "generate": _cmd_generate,
    "add-node": _cmd_add_node,
    "remove-node": _cmd_remove_node,
    "dump": _cmd_dump,
    "commands": _cmd_commands,
    "run": _cmd_run,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    try:
        return _COMMANDS[args.command](args)
    except ClusterConfigError as exc:
        LOGGER.error("%s", exc)
        return 1
    except OSError as exc:
        LOGGER.error("I/O error: %s", exc)
        return 1
    except KeyboardInterrupt:
        LOGGER.info("사용자 요청으로 종료합니다.")
        return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
