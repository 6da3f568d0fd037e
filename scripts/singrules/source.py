"""输入源加载与规则行提取。"""

from __future__ import annotations

import logging
import sys

import yaml

from .constants import (
    COMMENT_PREFIX,
    PAYLOAD_KEY,
    RULE_SEPARATOR,
    STDIN_SOURCE,
    STRIPPED_SOURCE_SUFFIXES,
)
from .errors import EmptySourceError, SourceUnreadableError

logger = logging.getLogger(__name__)

# 有 libyaml 时使用 C 实现，规则列表较大时解析明显更快。
_YAML_LOADER = getattr(yaml, "CSafeLoader", yaml.SafeLoader)


def load_source(source_path: str) -> bytes:
    """读取源规则的原始字节。

    `stdin` 作为占位路径时从标准输入读取；读到 0 字节直接报错，
    避免后续阶段把“空文件”和“没有可用规则”混为一谈。
    """

    if source_path == STDIN_SOURCE:
        try:
            content = sys.stdin.buffer.read()
        except OSError as exc:
            raise SourceUnreadableError("读取源内容失败", source_path) from exc
    else:
        try:
            with open(source_path, "rb") as fp:
                content = fp.read()
        except OSError as exc:
            raise SourceUnreadableError("无法打开源文件", source_path) from exc

    if not content:
        raise EmptySourceError("源文件为空", source_path)
    return content


def derive_output_path(source_path: str, output: str | None = None) -> str:
    """推导输出路径前缀。

    显式指定时原样使用；否则去掉源路径末尾的 `.yaml` / `.list`，其它后缀保持不变。
    """

    if output:
        return output
    for suffix in STRIPPED_SOURCE_SUFFIXES:
        if source_path.endswith(suffix):
            return source_path[: -len(suffix)]
    return source_path


def _payload_from_yaml(content: bytes) -> list[str] | None:
    """尝试按 rule-provider YAML 解析；不是该结构时返回 None 交给按行解析。"""

    try:
        document = yaml.load(content, Loader=_YAML_LOADER)
    except yaml.YAMLError:
        return None

    if document is None:
        # 只有注释或空白的 YAML 文档：结构解析成功但没有规则。
        return []
    if not isinstance(document, dict):
        return None

    payload = document.get(PAYLOAD_KEY)
    if payload is None:
        return []
    if not isinstance(payload, list):
        return None
    return [str(item) for item in payload if item is not None]


def _split_lines(content: bytes) -> list[str]:
    text = content.decode("utf-8", errors="replace")
    lines: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        if RULE_SEPARATOR not in line:
            # 没有分隔符的行无法拆出类型与内容。
            logger.debug("跳过无分隔符的行：%s", line)
            continue
        lines.append(line)
    return lines


def extract_rule_lines(content: bytes) -> list[str]:
    """将源内容转换为有序的规则行列表（类型与内容尚未拆分）。

    优先解析 YAML `payload:` 列表，失败再回退到按行解析。
    结果为空不在这里报错，由调用方在分类完成后结合输出路径统一报告。
    """

    payload = _payload_from_yaml(content)
    if payload is not None:
        logger.debug("按 YAML payload 解析到 %d 行规则", len(payload))
        return payload

    lines = _split_lines(content)
    logger.debug("按行解析到 %d 行规则", len(lines))
    return lines
