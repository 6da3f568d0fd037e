"""规则转换过程中的中间模型。"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from .constants import (
    DEFAULT_SING_BOX_BIN,
    DEFAULT_VERSION,
    DOMAIN_FIELDS,
    MATCHER_FIELDS,
    RULE_SET_VERSION_1,
)


@dataclass(frozen=True)
class RuleLine:
    """拆分后的单条源规则，`raw` 保留原始行便于输出诊断信息。"""

    rule_type: str
    content: str
    raw: str


@dataclass
class RuleBuckets:
    """一次转换过程中按匹配类型累积的规则值。

    每次转换新建一个实例，分类完成后交给组装阶段，不跨运行复用。
    """

    domain: list[str] = field(default_factory=list)
    domain_suffix: list[str] = field(default_factory=list)
    domain_keyword: list[str] = field(default_factory=list)
    domain_regex: list[str] = field(default_factory=list)
    ip_cidr: list[str] = field(default_factory=list)
    source_ip_cidr: list[str] = field(default_factory=list)
    port: list[int] = field(default_factory=list)
    source_port: list[int] = field(default_factory=list)
    process_name: list[str] = field(default_factory=list)
    process_path: list[str] = field(default_factory=list)
    has_star_only_domain: bool = False
    warnings: list[str] = field(default_factory=list)

    def has_domain_rules(self) -> bool:
        return any(getattr(self, name) for name in DOMAIN_FIELDS)


@dataclass
class HeadlessRule:
    """sing-box 默认类型的 headless rule：字段之间为 AND，`invert` 取反。"""

    domain: list[str] = field(default_factory=list)
    domain_suffix: list[str] = field(default_factory=list)
    domain_keyword: list[str] = field(default_factory=list)
    domain_regex: list[str] = field(default_factory=list)
    source_ip_cidr: list[str] = field(default_factory=list)
    ip_cidr: list[str] = field(default_factory=list)
    source_port: list[int] = field(default_factory=list)
    port: list[int] = field(default_factory=list)
    process_name: list[str] = field(default_factory=list)
    process_path: list[str] = field(default_factory=list)
    invert: bool = False

    def to_dict(self) -> dict:
        """输出 sing-box JSON 结构；空字段与 `invert=false` 省略。"""

        data: dict = {}
        for name in MATCHER_FIELDS:
            values = getattr(self, name)
            if values:
                data[name] = list(values)
        if self.invert:
            data["invert"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "HeadlessRule":
        if not isinstance(data, dict):
            raise ValueError(f"headless rule 必须是对象，实际类型为 `{type(data).__name__}`")
        kwargs: dict = {}
        for name in MATCHER_FIELDS:
            values = data.get(name)
            if values is None:
                values = []
            elif not isinstance(values, list):
                # sing-box 允许单值写法，这里统一为列表。
                values = [values]
            kwargs[name] = list(values)
        kwargs["invert"] = bool(data.get("invert", False))
        return cls(**kwargs)


@dataclass
class RuleSet:
    """带版本号的规则集；`rules` 之间为 OR。"""

    version: int = RULE_SET_VERSION_1
    rules: list[HeadlessRule] = field(default_factory=list)

    def with_version(self, version: int) -> "RuleSet":
        return replace(self, version=version, rules=list(self.rules))

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "rules": [rule.to_dict() for rule in self.rules],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RuleSet":
        if not isinstance(data, dict):
            raise ValueError("规则集必须是 JSON 对象")
        rules = data.get("rules") or []
        if not isinstance(rules, list):
            raise ValueError("`rules` 必须是数组")
        return cls(
            version=int(data.get("version", RULE_SET_VERSION_1)),
            rules=[HeadlessRule.from_dict(item) for item in rules],
        )


@dataclass
class Artifact:
    """一个待写出的产物：同一份规则集对应一对 JSON/SRS 文件。

    `suffix` 为空表示混合模式下的单一产物。
    """

    suffix: str
    output_path: str
    rule_set: RuleSet

    @property
    def base_path(self) -> str:
        if not self.suffix:
            return self.output_path
        return f"{self.output_path}-{self.suffix}"

    def versioned_path(self, version: int, extension: str) -> Path:
        return Path(f"{self.base_path}-v{version}{extension}")


@dataclass
class ConvertOptions:
    """一次转换的全部配置，通常由命令行参数构造。"""

    source: str
    output: str | None = None
    mix: bool = False
    version: int = DEFAULT_VERSION
    strict: bool = False
    sing_box: str = DEFAULT_SING_BOX_BIN


@dataclass
class ConvertResult:
    output_path: str
    artifacts: list[Artifact] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
