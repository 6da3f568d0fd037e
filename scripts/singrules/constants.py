"""规则转换器使用的静态常量。"""

from __future__ import annotations

# 从标准输入读取规则时使用的占位路径。
STDIN_SOURCE = "stdin"

# 推导输出路径时会被剥离的源文件后缀。
STRIPPED_SOURCE_SUFFIXES = (".yaml", ".list")

# YAML rule-provider 中承载规则列表的字段。
PAYLOAD_KEY = "payload"

COMMENT_PREFIX = "#"
RULE_SEPARATOR = ","

# 逻辑组合规则不在转换范围内，行内出现任一词元即整行跳过。
LOGICAL_TOKENS = ("AND", "OR", "NOT")

RULE_DOMAIN = "DOMAIN"
RULE_DOMAIN_KEYWORD = "DOMAIN-KEYWORD"
RULE_DOMAIN_SUFFIX = "DOMAIN-SUFFIX"
RULE_DOMAIN_REGEX = "DOMAIN-REGEX"
RULE_IP_CIDR = "IP-CIDR"
RULE_IP_CIDR6 = "IP-CIDR6"
RULE_SRC_IP_CIDR = "SRC-IP-CIDR"
RULE_DST_PORT = "DST-PORT"
# 沿用 clash 的命名，实际表示源端口。
RULE_SRC_DST_PORT = "SRC-DST-PORT"
RULE_PROCESS_NAME = "PROCESS-NAME"
RULE_PROCESS_PATH = "PROCESS-PATH"

STAR_ONLY_DOMAIN = "*"
WILDCARD = "*"
# `*` 改写后的片段：不跨越 `.` 的非贪婪匹配。
WILDCARD_REGEX = r"[^\.]*?"
CLASH_SUFFIX_PREFIX = "+."

# `DOMAIN,*` 的近似兜底：keyword "." 取反。
STAR_CATCH_ALL_KEYWORD = "."

PORT_MASK = 0xFFFF

# 拆分模式下各类产物的文件名后缀。
SUFFIX_SITE = "site"
SUFFIX_IP = "ip"
SUFFIX_PORT = "port"
SUFFIX_SRC_PORT = "src-port"
SUFFIX_SRC_IP = "src-ip"
SUFFIX_PROCESS = "process"

RULE_SET_VERSION_1 = 1
RULE_SET_VERSION_2 = 2
RULE_SET_VERSION_3 = 3
SUPPORTED_VERSIONS = (RULE_SET_VERSION_1, RULE_SET_VERSION_2, RULE_SET_VERSION_3)
DEFAULT_VERSION = RULE_SET_VERSION_3

JSON_EXTENSION = ".json"
BINARY_EXTENSION = ".srs"

DEFAULT_SING_BOX_BIN = "sing-box"
SING_BOX_BIN_ENV = "SING_BOX_BIN"
COMPILE_TIMEOUT_SECONDS = 180

# HeadlessRule 的匹配字段，同时也是 sing-box JSON 键；顺序即输出顺序。
MATCHER_FIELDS = (
    "domain",
    "domain_suffix",
    "domain_keyword",
    "domain_regex",
    "source_ip_cidr",
    "ip_cidr",
    "source_port",
    "port",
    "process_name",
    "process_path",
)
DOMAIN_FIELDS = ("domain", "domain_suffix", "domain_keyword", "domain_regex")
