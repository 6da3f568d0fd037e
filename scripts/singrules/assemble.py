"""将分类结果组装为一个或多个 sing-box 规则集产物。"""

from __future__ import annotations

import logging

from .constants import (
    STAR_CATCH_ALL_KEYWORD,
    SUFFIX_IP,
    SUFFIX_PORT,
    SUFFIX_PROCESS,
    SUFFIX_SITE,
    SUFFIX_SRC_IP,
    SUFFIX_SRC_PORT,
)
from .errors import EmptyResultError
from .models import Artifact, HeadlessRule, RuleBuckets, RuleSet

logger = logging.getLogger(__name__)


def star_catch_all_rule() -> HeadlessRule:
    """`DOMAIN,*` 的近似表达：不包含 "." 的目标（取反后即“任意非常规域名”）。"""

    return HeadlessRule(domain_keyword=[STAR_CATCH_ALL_KEYWORD], invert=True)


def build_domain_rules(buckets: RuleBuckets, include_ip: bool = False) -> list[HeadlessRule]:
    """域名类匹配项合并为一条规则；出现过 `DOMAIN,*` 时追加兜底规则。

    混合模式下 IP-CIDR 也并入同一条规则。
    """

    has_ip = include_ip and bool(buckets.ip_cidr)
    if not (buckets.has_domain_rules() or buckets.has_star_only_domain or has_ip):
        return []

    rule = HeadlessRule(
        domain=list(buckets.domain),
        domain_suffix=list(buckets.domain_suffix),
        domain_keyword=list(buckets.domain_keyword),
        domain_regex=list(buckets.domain_regex),
    )
    if include_ip:
        rule.ip_cidr = list(buckets.ip_cidr)

    rules = [rule]
    if buckets.has_star_only_domain:
        rules.append(star_catch_all_rule())
    return rules


def build_process_rules(buckets: RuleBuckets) -> list[HeadlessRule]:
    rules: list[HeadlessRule] = []
    if buckets.process_name:
        rules.append(HeadlessRule(process_name=list(buckets.process_name)))
    if buckets.process_path:
        rules.append(HeadlessRule(process_path=list(buckets.process_path)))
    return rules


def _category_groups(buckets: RuleBuckets) -> list[tuple[str, list[HeadlessRule]]]:
    """端口、源地址与进程类分组，两种模式共用；顺序即输出顺序。"""

    groups: list[tuple[str, list[HeadlessRule]]] = []
    if buckets.port:
        groups.append((SUFFIX_PORT, [HeadlessRule(port=list(buckets.port))]))
    if buckets.source_port:
        groups.append((SUFFIX_SRC_PORT, [HeadlessRule(source_port=list(buckets.source_port))]))
    if buckets.source_ip_cidr:
        groups.append(
            (SUFFIX_SRC_IP, [HeadlessRule(source_ip_cidr=list(buckets.source_ip_cidr))])
        )
    process_rules = build_process_rules(buckets)
    if process_rules:
        groups.append((SUFFIX_PROCESS, process_rules))
    return groups


def assemble_rule_sets(
    buckets: RuleBuckets,
    output_path: str,
    mix_mode: bool = False,
) -> list[Artifact]:
    """按组装模式生成产物列表。

    - 拆分模式：每类匹配项各自成为一个带后缀的产物（site/ip/port/src-port/src-ip/process）。
    - 混合模式：全部规则按顺序合并为一个不带后缀的产物。

    这里只做纯计算，不写文件；没有任何规则时抛出 `EmptyResultError`。
    """

    artifacts: list[Artifact] = []
    all_rules: list[HeadlessRule] = []

    if mix_mode:
        all_rules.extend(build_domain_rules(buckets, include_ip=True))
        for _, rules in _category_groups(buckets):
            all_rules.extend(rules)
        if all_rules:
            artifacts.append(Artifact("", output_path, RuleSet(rules=all_rules)))
    else:
        groups: list[tuple[str, list[HeadlessRule]]] = []
        domain_rules = build_domain_rules(buckets)
        if domain_rules:
            groups.append((SUFFIX_SITE, domain_rules))
        if buckets.ip_cidr:
            groups.append((SUFFIX_IP, [HeadlessRule(ip_cidr=list(buckets.ip_cidr))]))
        groups.extend(_category_groups(buckets))

        for suffix, rules in groups:
            artifacts.append(Artifact(suffix, output_path, RuleSet(rules=rules)))
            all_rules.extend(rules)

    if not all_rules:
        raise EmptyResultError("未找到可转换的规则", output_path)

    logger.debug(
        "组装完成：%d 个产物，共 %d 条 headless rule", len(artifacts), len(all_rules)
    )
    return artifacts
