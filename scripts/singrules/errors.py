"""转换流程中可向调用方暴露的错误类型。"""

from __future__ import annotations


class ConvertError(Exception):
    """转换失败的基类，`path` 指向出错的源文件或输出文件。"""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.message}: {self.path}"
        return self.message


class SourceUnreadableError(ConvertError):
    """源文件无法打开或读取。"""


class EmptySourceError(ConvertError):
    """源内容为空（0 字节）。"""


class EmptyResultError(ConvertError):
    """全部规则处理完后没有任何可输出的匹配项。"""


class SerializationError(ConvertError):
    """JSON/SRS 编码或写文件失败。"""


class UpgradeError(ConvertError):
    """规则集无法转换为二进制编码所需的结构（版本或内容不受支持）。"""
