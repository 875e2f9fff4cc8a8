"""Error taxonomy shared by the editing core and the external collaborators."""

from __future__ import annotations


class StoryloomError(Exception):
    """所有业务异常的基类。"""

    @property
    def kind(self) -> str:
        return type(self).__name__


class NotFoundError(StoryloomError):
    """引用的 ID 在当前项目中不存在。"""


class InvalidOperationError(StoryloomError):
    """操作格式正确，但会破坏结构约束（如循环移动、缺少 position）。"""


class UnsupportedOperationError(StoryloomError):
    """无法识别的意图或无法映射的工具调用。"""


class ExternalCollaboratorError(StoryloomError):
    """模型、图像或存储等外部协作方失败。

    ``retryable`` 只做分类，重试策略由界面层决定。
    """

    def __init__(self, message: str, *, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable

    @property
    def kind(self) -> str:
        return "ExternalCollaboratorError"


class TransientCollaboratorError(ExternalCollaboratorError):
    """网络抖动、超时、限流、服务端 5xx，可安全重试。"""

    def __init__(self, message: str):
        super().__init__(message, retryable=True)


class ContentSafetyError(ExternalCollaboratorError):
    """内容安全策略拒绝，不应重试。"""

    def __init__(self, message: str):
        super().__init__(message, retryable=False)


class MalformedResponseError(ExternalCollaboratorError):
    """上游返回无法解析的结果。"""

    def __init__(self, message: str):
        super().__init__(message, retryable=False)


__all__ = [
    "StoryloomError",
    "NotFoundError",
    "InvalidOperationError",
    "UnsupportedOperationError",
    "ExternalCollaboratorError",
    "TransientCollaboratorError",
    "ContentSafetyError",
    "MalformedResponseError",
]
