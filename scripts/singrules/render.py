"""规则集编码与文件输出。"""

from __future__ import annotations

import ipaddress
import json
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol

from .constants import (
    BINARY_EXTENSION,
    COMPILE_TIMEOUT_SECONDS,
    DEFAULT_SING_BOX_BIN,
    JSON_EXTENSION,
    SUPPORTED_VERSIONS,
)
from .errors import SerializationError, UpgradeError
from .models import Artifact, RuleSet

logger = logging.getLogger(__name__)


class RuleSetEncoder(Protocol):
    """规则集编码器接口：按给定版本输出完整文件内容。"""

    def encode(self, rule_set: RuleSet, version: int) -> bytes:
        ...


def dump_rule_set_json(rule_set: RuleSet, version: int) -> str:
    """输出 sing-box 源格式 JSON，`version` 覆盖规则集内部的版本号。"""

    data = rule_set.with_version(version).to_dict()
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def decode_rule_set_json(text: str | bytes) -> RuleSet:
    return RuleSet.from_dict(json.loads(text))


class JsonRuleSetEncoder:
    def encode(self, rule_set: RuleSet, version: int) -> bytes:
        return dump_rule_set_json(rule_set, version).encode("utf-8")


def _check_cidr(value: str) -> None:
    try:
        ipaddress.ip_network(value, strict=False)
    except ValueError:
        # 与 sing-box 一致：单个地址也接受。
        ipaddress.ip_address(value)


def upgrade_rule_set(rule_set: RuleSet, version: int) -> dict:
    """转换为二进制编译所需的结构。

    版本不受支持、规则为空或 CIDR 无法解析时抛出 `UpgradeError`，
    这样错误能在调用外部编译器之前带着具体内容暴露出来。
    """

    if version not in SUPPORTED_VERSIONS:
        raise UpgradeError(f"不支持的规则集版本 {version}")
    if not rule_set.rules:
        raise UpgradeError("规则集为空")

    for idx, rule in enumerate(rule_set.rules):
        for field_name in ("ip_cidr", "source_ip_cidr"):
            for value in getattr(rule, field_name):
                try:
                    _check_cidr(value)
                except ValueError as exc:
                    raise UpgradeError(
                        f"rules[{idx}].{field_name} 无法解析：{value}"
                    ) from exc

    return rule_set.with_version(version).to_dict()


class SingBoxBinaryEncoder:
    """调用 `sing-box rule-set compile` 生成 SRS 二进制内容。

    编译器只接受文件输入输出，这里在临时目录中完成一次完整编译后读回字节。
    """

    def __init__(self, executable: str = DEFAULT_SING_BOX_BIN) -> None:
        self.executable = executable

    def encode(self, rule_set: RuleSet, version: int) -> bytes:
        payload = upgrade_rule_set(rule_set, version)
        with tempfile.TemporaryDirectory(prefix="singrules-") as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "rule-set.json"
            target = tmp_path / "rule-set.srs"
            source.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")

            try:
                result = subprocess.run(
                    [
                        self.executable,
                        "rule-set",
                        "compile",
                        "--output",
                        str(target),
                        str(source),
                    ],
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=COMPILE_TIMEOUT_SECONDS,
                )
            except (OSError, subprocess.TimeoutExpired) as exc:
                raise SerializationError(
                    f"无法执行 sing-box 编译器 {self.executable}：{exc}"
                ) from exc

            if result.returncode != 0:
                detail = (result.stderr or result.stdout or "").strip()
                raise SerializationError(
                    f"sing-box 编译失败（exit {result.returncode}）：{detail}"
                )
            try:
                return target.read_bytes()
            except OSError as exc:
                raise SerializationError(f"读取编译结果失败：{exc}") from exc


def write_source_file(path: Path, content: bytes) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as exc:
        raise SerializationError(f"写入失败：{exc}", str(path)) from exc


def write_binary_file(path: Path, rule_set: RuleSet, version: int, encoder: RuleSetEncoder) -> None:
    """编码并写入 SRS 文件。

    先完成编码再打开目标文件，编码失败时不会动到已有产物；写入失败则删除半成品。
    """

    try:
        content = encoder.encode(rule_set, version)
    except (SerializationError, UpgradeError) as exc:
        if exc.path is None:
            exc.path = str(path)
        raise

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as fp:
            fp.write(content)
    except OSError as exc:
        path.unlink(missing_ok=True)
        raise SerializationError(f"写入失败：{exc}", str(path)) from exc


def write_artifact(
    artifact: Artifact,
    version: int,
    text_encoder: RuleSetEncoder,
    binary_encoder: RuleSetEncoder,
) -> list[Path]:
    """写出一个产物的 JSON 与 SRS 两个文件，返回写出的路径。"""

    json_path = artifact.versioned_path(version, JSON_EXTENSION)
    try:
        content = text_encoder.encode(artifact.rule_set, version)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"编码 JSON 失败：{exc}", str(json_path)) from exc
    write_source_file(json_path, content)
    logger.info("已写入 %s", json_path)

    srs_path = artifact.versioned_path(version, BINARY_EXTENSION)
    write_binary_file(srs_path, artifact.rule_set, version, binary_encoder)
    logger.info("已写入 %s", srs_path)
    return [json_path, srs_path]
