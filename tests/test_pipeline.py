"""端到端转换流程测试。"""

from __future__ import annotations

import contextlib
import io
import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

ROOT = Path(__file__).resolve().parents[1]
SCRIPTS_DIR = ROOT / "scripts"
SCRIPT = SCRIPTS_DIR / "convert_rule_provider.py"
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from singrules.app import StrictModeError, convert_source, main  # noqa: E402
from singrules.errors import EmptyResultError  # noqa: E402
from singrules.models import ConvertOptions, RuleSet  # noqa: E402


class RecordingBinaryEncoder:
    def __init__(self) -> None:
        self.encoded: list[tuple[RuleSet, int]] = []

    def encode(self, rule_set: RuleSet, version: int) -> bytes:
        self.encoded.append((rule_set, version))
        return b"SRS" + bytes([version])


class ConvertSourceTests(unittest.TestCase):
    def test_ip_only_list_produces_single_ip_pair(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "lan.list"
            source.write_text("IP-CIDR,10.0.0.0/8\n", encoding="utf-8")

            binary = RecordingBinaryEncoder()
            result = convert_source(
                ConvertOptions(source=str(source), version=2), binary_encoder=binary
            )

            self.assertEqual(
                sorted(path.name for path in tmp_path.iterdir()),
                ["lan-ip-v2.json", "lan-ip-v2.srs", "lan.list"],
            )
            data = json.loads((tmp_path / "lan-ip-v2.json").read_text(encoding="utf-8"))
            self.assertEqual(data, {"version": 2, "rules": [{"ip_cidr": ["10.0.0.0/8"]}]})
            self.assertEqual(len(result.artifacts), 1)
            self.assertEqual(binary.encoded[0][1], 2)

    def test_yaml_provider_in_mixed_mode_with_output_override(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "provider.yaml"
            source.write_text(
                "payload:\n"
                "  - DOMAIN-SUFFIX,example.com\n"
                "  - IP-CIDR,1.1.1.1/32,no-resolve\n"
                "  - DST-PORT,443\n",
                encoding="utf-8",
            )
            output = tmp_path / "out" / "merged"

            result = convert_source(
                ConvertOptions(source=str(source), output=str(output), mix=True),
                binary_encoder=RecordingBinaryEncoder(),
            )

            self.assertEqual(
                result.written,
                [tmp_path / "out" / "merged-v3.json", tmp_path / "out" / "merged-v3.srs"],
            )
            data = json.loads(result.written[0].read_text(encoding="utf-8"))
            self.assertEqual(data["version"], 3)
            self.assertEqual(len(data["rules"]), 2)

    def test_comment_only_source_creates_no_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "empty.list"
            source.write_text("# nothing here\n# still nothing\n", encoding="utf-8")

            with self.assertRaises(EmptyResultError) as ctx:
                convert_source(
                    ConvertOptions(source=str(source)), binary_encoder=RecordingBinaryEncoder()
                )
            self.assertEqual(ctx.exception.path, str(tmp_path / "empty"))
            self.assertEqual([path.name for path in tmp_path.iterdir()], ["empty.list"])

    def test_strict_mode_stops_before_writing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "rules.list"
            source.write_text("DOMAIN,example.com\nGEOIP,CN\n", encoding="utf-8")

            with self.assertRaises(StrictModeError) as ctx:
                convert_source(
                    ConvertOptions(source=str(source), strict=True),
                    binary_encoder=RecordingBinaryEncoder(),
                )
            self.assertEqual(len(ctx.exception.warnings), 1)
            self.assertEqual([path.name for path in tmp_path.iterdir()], ["rules.list"])


class MainTests(unittest.TestCase):
    def run_main(self, *args: str) -> tuple[int, str, str]:
        def fake_compile(cmd, **kwargs):
            Path(cmd[4]).write_bytes(b"SRS")
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        stdout = io.StringIO()
        stderr = io.StringIO()
        with mock.patch("singrules.render.subprocess.run", side_effect=fake_compile):
            with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
                code = main(list(args))
        return code, stdout.getvalue(), stderr.getvalue()

    def test_strict_mode_exits_with_2_and_writes_nothing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "rules.list"
            source.write_text("DOMAIN,example.com\nDST-PORT,70000\n", encoding="utf-8")

            code, stdout, stderr = self.run_main(str(source), "--strict")

            self.assertEqual(code, 2)
            self.assertEqual(stdout, "")
            self.assertIn("70000", stderr)
            self.assertEqual([path.name for path in tmp_path.iterdir()], ["rules.list"])

    def test_mixed_mode_with_output_writes_single_pair(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "rules.list"
            source.write_text(
                "DOMAIN,example.com\nIP-CIDR,10.0.0.0/8\nPROCESS-NAME,curl\n", encoding="utf-8"
            )
            output = tmp_path / "merged"

            code, stdout, _ = self.run_main(str(source), "-m", "-o", str(output))

            self.assertEqual(code, 0)
            self.assertEqual(
                sorted(path.name for path in tmp_path.iterdir()),
                ["merged-v3.json", "merged-v3.srs", "rules.list"],
            )
            self.assertIn(f"（{output}）", stdout)
            self.assertIn(str(tmp_path / "merged-v3.srs"), stdout)


class ScriptTests(unittest.TestCase):
    def run_script(self, *args: str, cwd: Path) -> subprocess.CompletedProcess:
        env = dict(os.environ)
        # 失败路径不会走到编译阶段，这里指向一个不存在的编译器即可。
        env["SING_BOX_BIN"] = str(cwd / "missing-sing-box")
        return subprocess.run(
            [sys.executable, str(SCRIPT), *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
            env=env,
        )

    def test_empty_result_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "comments.list"
            source.write_text("# only comments\n", encoding="utf-8")

            result = self.run_script(str(source), cwd=tmp_path)

            self.assertEqual(result.returncode, 1)
            self.assertIn("[ERROR]", result.stderr)
            self.assertIn(str(tmp_path / "comments"), result.stderr)
            self.assertEqual([path.name for path in tmp_path.iterdir()], ["comments.list"])

    def test_missing_source_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            result = self.run_script(str(tmp_path / "nope.yaml"), cwd=tmp_path)
            self.assertEqual(result.returncode, 1)
            self.assertIn("nope.yaml", result.stderr)

    def test_missing_compiler_leaves_no_binary(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "lan.list"
            source.write_text("IP-CIDR,10.0.0.0/8\n", encoding="utf-8")

            result = self.run_script(str(source), "-v", "1", cwd=tmp_path)

            self.assertEqual(result.returncode, 1)
            self.assertTrue((tmp_path / "lan-ip-v1.json").exists())
            self.assertFalse((tmp_path / "lan-ip-v1.srs").exists())


if __name__ == "__main__":
    unittest.main()
