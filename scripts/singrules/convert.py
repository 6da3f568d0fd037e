"""clash/surge 规则行到 sing-box 匹配项的分类逻辑。"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable

from .constants import (
    CLASH_SUFFIX_PREFIX,
    LOGICAL_TOKENS,
    PORT_MASK,
    RULE_DOMAIN,
    RULE_DOMAIN_KEYWORD,
    RULE_DOMAIN_REGEX,
    RULE_DOMAIN_SUFFIX,
    RULE_DST_PORT,
    RULE_IP_CIDR,
    RULE_IP_CIDR6,
    RULE_PROCESS_NAME,
    RULE_PROCESS_PATH,
    RULE_SEPARATOR,
    RULE_SRC_DST_PORT,
    RULE_SRC_IP_CIDR,
    STAR_ONLY_DOMAIN,
    WILDCARD,
    WILDCARD_REGEX,
)
from .models import RuleBuckets, RuleLine

logger = logging.getLogger(__name__)

_TOKEN_SPLIT_RE = re.compile(r"[,()\s]+")
_PORT_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)


def parse_rule_line(line: str) -> RuleLine | None:
    """拆出规则类型与内容。

    仅取前两个字段，`no-resolve` 之类的附加字段忽略；缺少内容的行返回 None。
    """

    parts = line.split(RULE_SEPARATOR)
    if len(parts) < 2 or not parts[1]:
        return None
    return RuleLine(rule_type=parts[0], content=parts[1], raw=line)


def is_logical_rule(line: str) -> bool:
    """判断是否为 AND/OR/NOT 组合规则。

    按 `,`、括号与空白切分后逐个词元比较（大小写敏感），
    不能做整行子串匹配，否则 `DST-PORT`、`DOMAIN-KEYWORD` 会因包含 `OR` 被误判。
    """

    return any(token in LOGICAL_TOKENS for token in _TOKEN_SPLIT_RE.split(line))


def parse_port(content: str, warnings: list[str] | None = None) -> int:
    """将端口内容解析为 16 位无符号整数。

    只接受可选符号加 ASCII 数字；无法解析时回落为 0，超出范围的数值按 16 位截断，
    两种情况都记录 warning，避免单条脏数据中断整批转换。
    """

    if not _PORT_RE.fullmatch(content):
        if warnings is not None:
            warnings.append(f"端口无法解析，已按 0 处理：{content}")
        return 0
    value = int(content)
    port = value & PORT_MASK
    if port != value and warnings is not None:
        warnings.append(f"端口超出范围，已截断为 {port}：{content}")
    return port


def _add_domain(rule: RuleLine, buckets: RuleBuckets) -> None:
    content = rule.content
    if content == STAR_ONLY_DOMAIN:
        buckets.has_star_only_domain = True
        return
    if WILDCARD in content:
        # 前导通配视为已隐含：改写后整体去掉首字符。
        rewritten = content.replace(WILDCARD, WILDCARD_REGEX)
        buckets.domain_regex.append(rewritten[1:])
        return
    if content.startswith(CLASH_SUFFIX_PREFIX):
        buckets.domain_suffix.append(content[1:])
        return
    buckets.domain.append(content)


def _add_domain_keyword(rule: RuleLine, buckets: RuleBuckets) -> None:
    buckets.domain_keyword.append(rule.content)


def _add_domain_suffix(rule: RuleLine, buckets: RuleBuckets) -> None:
    content = rule.content
    if content.startswith("."):
        buckets.domain_suffix.append(content)
        return
    # 不带前导点的后缀既要命中域名本身，也要命中其子域名。
    buckets.domain.append(content)
    buckets.domain_suffix.append("." + content)


def _add_domain_regex(rule: RuleLine, buckets: RuleBuckets) -> None:
    buckets.domain_regex.append(rule.content)


def _add_ip_cidr(rule: RuleLine, buckets: RuleBuckets) -> None:
    buckets.ip_cidr.append(rule.content)


def _add_source_ip_cidr(rule: RuleLine, buckets: RuleBuckets) -> None:
    buckets.source_ip_cidr.append(rule.content)


def _add_port(rule: RuleLine, buckets: RuleBuckets) -> None:
    buckets.port.append(parse_port(rule.content, buckets.warnings))


def _add_source_port(rule: RuleLine, buckets: RuleBuckets) -> None:
    buckets.source_port.append(parse_port(rule.content, buckets.warnings))


def _add_process_name(rule: RuleLine, buckets: RuleBuckets) -> None:
    buckets.process_name.append(rule.content)


def _add_process_path(rule: RuleLine, buckets: RuleBuckets) -> None:
    buckets.process_path.append(rule.content)


RULE_HANDLERS: dict[str, Callable[[RuleLine, RuleBuckets], None]] = {
    RULE_DOMAIN: _add_domain,
    RULE_DOMAIN_KEYWORD: _add_domain_keyword,
    RULE_DOMAIN_SUFFIX: _add_domain_suffix,
    RULE_DOMAIN_REGEX: _add_domain_regex,
    RULE_IP_CIDR: _add_ip_cidr,
    RULE_IP_CIDR6: _add_ip_cidr,
    RULE_SRC_IP_CIDR: _add_source_ip_cidr,
    RULE_DST_PORT: _add_port,
    RULE_SRC_DST_PORT: _add_source_port,
    RULE_PROCESS_NAME: _add_process_name,
    RULE_PROCESS_PATH: _add_process_path,
}


def classify_rule(line: str, buckets: RuleBuckets) -> bool:
    """将单条规则行归入对应的匹配项；返回该行是否被采用。

    被丢弃的行（组合规则、无法拆分、未知类型）只记录 warning，不抛错。
    """

    if is_logical_rule(line):
        buckets.warnings.append(f"不支持的组合规则，已跳过：{line}")
        logger.debug("跳过组合规则：%s", line)
        return False

    rule = parse_rule_line(line)
    if rule is None:
        buckets.warnings.append(f"无法拆分类型与内容，已跳过：{line}")
        logger.debug("跳过无法拆分的行：%s", line)
        return False

    handler = RULE_HANDLERS.get(rule.rule_type)
    if handler is None:
        buckets.warnings.append(f"未识别的规则类型 `{rule.rule_type}`，已跳过：{line}")
        logger.debug("跳过未知类型 %s：%s", rule.rule_type, line)
        return False

    handler(rule, buckets)
    return True


def classify_rules(lines: Iterable[str]) -> RuleBuckets:
    """对全部规则行分类，返回本次转换独占的累积结果。"""

    buckets = RuleBuckets()
    accepted = 0
    skipped = 0
    for line in lines:
        if classify_rule(line, buckets):
            accepted += 1
        else:
            skipped += 1
    logger.debug("共采用 %d 条规则，跳过 %d 条", accepted, skipped)
    return buckets
