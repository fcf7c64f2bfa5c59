"""클러스터 설정 계층의 예외."""

from __future__ import annotations


class ClusterConfigError(RuntimeError):
    """설정 모델/레지스트리 처리 중 발생한 예외의 베이스."""


class MissingAssetError(ClusterConfigError):
    """등록되지 않은 에셋 논리 이름을 참조했다. 레지스트리 무결성 버그.

    ``label`` 은 참조한 위치(예: ``etcd.data-dir``)가 알려진 경우에만 채워진다.
    """

    def __init__(self, name: str, kind: str = "asset", label: str | None = None) -> None:
        message = f"missing {kind} '{name}'"
        if label is not None:
            message += f" (referenced from '{label}')"
        super().__init__(message)
        self.name = name
        self.kind = kind
        self.label = label


class TemplateError(ClusterConfigError):
    """템플릿 파싱 또는 실행 실패."""

    def __init__(self, label: str, template: str, reason: str) -> None:
        super().__init__(f"template '{label}' failed: {reason} (template: {template!r})")
        self.label = label
        self.template = template
        self.reason = reason


class InvalidNodeError(ClusterConfigError):
    """노드 추가 요청이 유효하지 않다."""


class EmptyNodeNameError(InvalidNodeError):
    def __init__(self) -> None:
        super().__init__("empty node name")


class InvalidNodeAddressError(InvalidNodeError):
    def __init__(self, ip: str) -> None:
        super().__init__(f"invalid or wrong ip format: {ip!r}")
        self.ip = ip


class InvalidNodeIndexError(InvalidNodeError):
    def __init__(self, index: int) -> None:
        super().__init__(f"node index must be a non-negative integer: {index!r}")
        self.index = index


class NodeNotFoundError(ClusterConfigError):
    def __init__(self, name: str) -> None:
        super().__init__(f"node '{name}' not found")
        self.name = name


class LogOpenError(ClusterConfigError):
    """서버 로그 파일을 열 수 없다. 다음 감독 주기에서 재시도된다."""

    def __init__(self, filename: str) -> None:
        super().__init__(f"could not open log file '{filename}'")
        self.filename = filename


class ConfigNotFoundError(ClusterConfigError):
    def __init__(self, filename: str) -> None:
        super().__init__(f"config '{filename}' not found")
        self.filename = filename


class ConfigFormatError(ClusterConfigError):
    """저장된 설정 문서를 해석할 수 없다."""
