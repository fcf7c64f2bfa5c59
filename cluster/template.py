"""``{{ }}`` 플레이스홀더 템플릿 확장기 (Jinja2 기반).

렌더 컨텍스트에는 ``name`` (현재 노드 이름), ``node`` (현재 ``Node``),
``config`` 가 들어가고, 전역 함수는 닫힌 집합(``FUNCTIONS``)뿐이다.
인자 없는 함수는 ``{{ controllers_count }}`` 처럼 이름만 써도 호출된다.

정의되지 않은 이름, 메서드나 컨테이너 같은 렌더할 수 없는 값은 모두
``TemplateError`` 가 된다. 빈 문자열로 대체되는 경우는 없다.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final

import jinja2

from . import constants
from .errors import TemplateError

if TYPE_CHECKING:
    from .context import ClusterContext

_OPEN: Final = "{{"
_MAX_DEPTH: Final = 16


def controllers_count(context: ClusterContext) -> str:
    return str(len(context.controller_nodes()))


def etcd_servers(context: ClusterContext) -> str:
    return ",".join(context.etcd_client_endpoints())


def etcd_cluster(context: ClusterContext) -> str:
    return ",".join(
        f"{name}=https://{node.ip}:{constants.ETCD_PEER_PORT}" for name, node in context.controller_nodes()
    )


def asset_file(context: ClusterContext, name: str) -> str:
    return context.full_target_file(name)


def asset_directory(context: ClusterContext, name: str) -> str:
    return context.full_target_directory(name)


# 이름 -> (콜백, 인자 수)
FUNCTIONS: Final[Mapping[str, tuple[Callable[..., str], int]]] = MappingProxyType(
    {
        "controllers_count": (controllers_count, 0),
        "etcd_servers": (etcd_servers, 0),
        "etcd_cluster": (etcd_cluster, 0),
        "asset_file": (asset_file, 1),
        "asset_directory": (asset_directory, 1),
    }
)


class _BoundFunction:
    """컨텍스트를 묶은 템플릿 전역 함수. 인자 수를 검사한다."""

    def __init__(self, context: ClusterContext, name: str, function: Callable[..., str], arity: int) -> None:
        self._context = context
        self.name = name
        self._function = function
        self.arity = arity

    def __call__(self, *arguments: Any, **keywords: Any) -> str:
        if keywords or len(arguments) != self.arity:
            raise jinja2.TemplateRuntimeError(
                f"function '{self.name}' expects {self.arity} argument(s), got {len(arguments) + len(keywords)}"
            )
        for argument in arguments:
            if not isinstance(argument, str):
                raise jinja2.TemplateRuntimeError(f"function '{self.name}' takes string arguments only")
        return self._function(self._context, *arguments)


def _finalize(value: Any) -> str:
    if isinstance(value, jinja2.Undefined):
        # StrictUndefined 는 문자열 변환 시 UndefinedError 를 던진다.
        return str(value)
    if isinstance(value, _BoundFunction):
        if value.arity:
            raise jinja2.TemplateRuntimeError(f"function '{value.name}' needs {value.arity} argument(s)")
        return value()
    if value is None:
        raise jinja2.TemplateRuntimeError("value is not set")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (set, frozenset)):
        return ",".join(sorted(_finalize(item) for item in value))
    if isinstance(value, (str, int, float)):
        return str(value)
    raise jinja2.TemplateRuntimeError(f"cannot render {type(value).__name__} value")


class TemplateResolver:
    """현재 설정과 현재 노드를 기준으로 템플릿 문자열을 확장한다."""

    def __init__(self, context: ClusterContext) -> None:
        self._context = context
        self._depth = 0
        self._environment = jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            finalize=_finalize,
        )
        self._environment.globals.update(
            {name: _BoundFunction(context, name, function, arity) for name, (function, arity) in FUNCTIONS.items()}
        )

    def expand(self, label: str, template: str) -> str:
        if _OPEN not in template:
            return template

        # asset_file -> resolve_file_path -> expand 로 재귀하므로 순환 참조를 깊이로 끊는다.
        if self._depth >= _MAX_DEPTH:
            raise TemplateError(label, template, "nesting too deep (circular asset reference?)")
        self._depth += 1
        try:
            return self._environment.from_string(template).render(self._variables())
        except jinja2.TemplateError as exc:
            raise TemplateError(label, template, str(exc)) from exc
        finally:
            self._depth -= 1

    def _variables(self) -> dict[str, Any]:
        # 현재 노드가 없으면 name/node 는 정의되지 않은 이름으로 남긴다.
        variables: dict[str, Any] = {"config": self._context.config}
        if self._context.name is not None:
            variables["name"] = self._context.name
        if self._context.node is not None:
            variables["node"] = self._context.node
        return variables
