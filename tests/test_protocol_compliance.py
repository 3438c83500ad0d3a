"""协议合规性测试

验证 Read 工具各模式的响应是否严格遵循《通用工具响应协议》。

运行方式：
    python -m pytest tests/test_protocol_compliance.py -v
    python -m unittest tests.test_protocol_compliance -v
"""

import json
import unittest

from core.config import Config
from tests.utils.protocol_validator import ProtocolValidator
from tests.utils.test_helpers import CountingCounter, create_temp_project, numbered_lines, parse_response
from tools.builtin.read_file import ReadTool


class TestProtocolCompliance(unittest.TestCase):
    """协议合规性测试套件"""

    def _validate_and_assert(self, label: str, response_str: str):
        """验证响应并断言通过"""
        result = ProtocolValidator.validate(response_str, tool_type="read")
        if not result.passed:
            error_msg = f"\n{'=' * 60}\n{label} 协议验证失败\n{'=' * 60}\n"
            error_msg += str(result)
            error_msg += f"\n响应内容:\n{response_str[:1000]}\n"
            self.fail(error_msg)
        return parse_response(response_str)

    def _responses(self):
        """各模式、各状态的一组响应"""
        with create_temp_project() as project:
            project.create_file("long.txt", "\n".join(numbered_lines(300, "Line {}")))
            project.create_bytes("bad.txt", b"caf\xe9\n")
            tool = ReadTool(
                project_root=project.root,
                config=Config(context_window=100, max_output_tokens=0, read_chunk_lines=16),
                token_counter=CountingCounter(),
            )
            calls = {
                "slice success": {"path": "src/calculator.py"},
                "slice partial": {"path": "long.txt", "limit": 20},
                "slice fallback": {"path": "bad.txt"},
                "indentation success": {"path": "src/handler.ts", "mode": "indentation", "anchor_line": 21},
                "indentation partial": {"path": "src/handler.ts", "mode": "indentation",
                                        "anchor_line": 21, "include_siblings": True, "limit": 5},
                "budget partial": {"path": "long.txt", "mode": "budget"},
                "budget success": {"path": "README.md", "mode": "budget"},
                "error not found": {"path": "missing.txt"},
                "error access denied": {"path": "../outside.txt"},
                "error invalid param": {"path": "long.txt", "limit": 0},
            }
            return {label: tool.run(params) for label, params in calls.items()}

    def test_all_responses_are_compliant(self):
        for label, response in self._responses().items():
            with self.subTest(label=label):
                parsed = self._validate_and_assert(label, response)
                expected = label.split(" ")[1] if not label.startswith("error") else "error"
                if expected in ("fallback",):
                    expected = "partial"
                self.assertEqual(parsed["status"], expected)

    def test_all_responses_have_time_and_context(self):
        for label, response in self._responses().items():
            with self.subTest(label=label):
                parsed = parse_response(response)
                self.assertIsInstance(parsed["stats"]["time_ms"], int)
                self.assertIn("cwd", parsed["context"])
                self.assertIn("params_input", parsed["context"])

    def test_partial_responses_explain_themselves(self):
        for label, response in self._responses().items():
            parsed = parse_response(response)
            if parsed["status"] != "partial":
                continue
            with self.subTest(label=label):
                result = ProtocolValidator.validate(response)
                self.assertEqual(result.warnings, [])


class TestValidatorItself(unittest.TestCase):
    """验证器自身测试"""

    @staticmethod
    def _response(**overrides):
        payload = {
            "status": "success",
            "data": {"content": "1 | x", "truncated": False, "included_ranges": [[1, 1]]},
            "text": "Read 1 lines.",
            "stats": {"time_ms": 1},
            "context": {"cwd": ".", "params_input": {}},
        }
        payload.update(overrides)
        return json.dumps(payload)

    def test_valid_success_response(self):
        result = ProtocolValidator.validate(self._response())
        self.assertTrue(result.passed, f"应该通过: {result}")

    def test_valid_error_response(self):
        result = ProtocolValidator.validate(self._response(
            status="error",
            data={},
            text="File not found.",
            error={"code": "NOT_FOUND", "message": "File not found."},
        ))
        self.assertTrue(result.passed, f"应该通过: {result}")

    def test_invalid_json(self):
        result = ProtocolValidator.validate("not json")
        self.assertTrue(any("V001" in e for e in result.errors))

    def test_invalid_status(self):
        result = ProtocolValidator.validate(self._response(status="unknown"))
        self.assertTrue(any("V003" in e for e in result.errors))

    def test_invalid_extra_top_level_field(self):
        result = ProtocolValidator.validate(self._response(custom_field="forbidden"))
        self.assertTrue(any("V012" in e for e in result.errors))

    def test_error_without_error_field(self):
        result = ProtocolValidator.validate(self._response(status="error", data={}))
        self.assertTrue(any("S002" in e for e in result.errors))

    def test_truncated_but_not_partial(self):
        data = {"content": "", "truncated": True, "included_ranges": []}
        result = ProtocolValidator.validate(self._response(data=data))
        self.assertTrue(any("S005" in e for e in result.errors))

    def test_overlapping_ranges(self):
        data = {"content": "", "truncated": False, "included_ranges": [[1, 5], [4, 8]]}
        result = ProtocolValidator.validate(self._response(data=data))
        self.assertTrue(any("D003" in e for e in result.errors))


if __name__ == "__main__":
    unittest.main(verbosity=2)
