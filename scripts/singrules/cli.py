"""命令行参数解析。"""

from __future__ import annotations

import argparse
import os

from .constants import DEFAULT_SING_BOX_BIN, DEFAULT_VERSION, SING_BOX_BIN_ENV, SUPPORTED_VERSIONS
from .models import ConvertOptions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sing-rules-converter",
        description="将 clash/surge rule-provider 转换为 sing-box 规则集（JSON + SRS）",
    )
    parser.add_argument(
        "source",
        help="规则源文件路径；传入 stdin 时从标准输入读取",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="输出路径前缀（默认：源路径去掉 .yaml/.list 后缀）",
    )
    parser.add_argument(
        "-m",
        "--mix",
        action="store_true",
        help="混合模式：所有规则类型合并为一个规则集",
    )
    parser.add_argument(
        "-v",
        "--version",
        type=int,
        choices=SUPPORTED_VERSIONS,
        default=DEFAULT_VERSION,
        help=f"规则集版本（默认：{DEFAULT_VERSION}）",
    )
    parser.add_argument(
        "--sing-box",
        dest="sing_box",
        default=os.environ.get(SING_BOX_BIN_ENV) or DEFAULT_SING_BOX_BIN,
        help=f"用于编译 SRS 的 sing-box 可执行文件（默认：${SING_BOX_BIN_ENV} 或 sing-box）",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="严格模式：存在被跳过或被修正的规则行时不写文件并返回非 0",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="WARNING",
        help="日志级别（默认：WARNING）",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """解析命令行参数。"""

    return build_parser().parse_args(argv)


def options_from_args(args: argparse.Namespace) -> ConvertOptions:
    return ConvertOptions(
        source=args.source,
        output=args.output,
        mix=args.mix,
        version=args.version,
        strict=args.strict,
        sing_box=args.sing_box,
    )
