"""规则转换主流程。"""

from __future__ import annotations

import logging
import sys

from .assemble import assemble_rule_sets
from .cli import options_from_args, parse_args
from .convert import classify_rules
from .errors import ConvertError
from .models import ConvertOptions, ConvertResult
from .render import JsonRuleSetEncoder, RuleSetEncoder, SingBoxBinaryEncoder, write_artifact
from .source import derive_output_path, extract_rule_lines, load_source

logger = logging.getLogger(__name__)


class StrictModeError(ConvertError):
    """严格模式下存在被跳过或被修正的规则行。"""

    def __init__(self, warnings: list[str], path: str | None = None) -> None:
        super().__init__("严格模式命中 warning，已终止转换", path)
        self.warnings = warnings


def convert_source(
    options: ConvertOptions,
    text_encoder: RuleSetEncoder | None = None,
    binary_encoder: RuleSetEncoder | None = None,
) -> ConvertResult:
    """读取源规则 -> 分类 -> 组装 -> 写出全部产物。

    组装成功之前不写任何文件，因此空结果与严格模式失败都不会留下产物。
    """

    text_encoder = text_encoder or JsonRuleSetEncoder()
    binary_encoder = binary_encoder or SingBoxBinaryEncoder(options.sing_box)

    content = load_source(options.source)
    output_path = derive_output_path(options.source, options.output)
    lines = extract_rule_lines(content)
    buckets = classify_rules(lines)

    if options.strict and buckets.warnings:
        raise StrictModeError(list(buckets.warnings), options.source)

    artifacts = assemble_rule_sets(buckets, output_path, mix_mode=options.mix)
    result = ConvertResult(
        output_path=output_path,
        artifacts=artifacts,
        warnings=list(buckets.warnings),
    )
    for artifact in artifacts:
        result.written.extend(
            write_artifact(artifact, options.version, text_encoder, binary_encoder)
        )
    return result


def main(argv: list[str] | None = None) -> int:
    """命令行入口，返回进程退出码。"""

    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    options = options_from_args(args)

    try:
        result = convert_source(options)
    except StrictModeError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        for item in exc.warnings:
            print(f"  - {item}", file=sys.stderr)
        return 2
    except ConvertError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    print(f"[OK] 已生成 {len(result.artifacts)} 个规则集（{result.output_path}）：")
    for path in result.written:
        print(f"  - {path}")
    if result.warnings:
        # warning 输出到 stderr，便于在 CI 中与正常日志分流采集。
        print("[WARN] 以下规则行被跳过或修正：", file=sys.stderr)
        for item in result.warnings:
            print(f"  - {item}", file=sys.stderr)
    return 0
