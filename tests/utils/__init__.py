"""测试工具模块"""

from .protocol_validator import ProtocolValidator, ValidationResult
from .test_helpers import CountingCounter, TempProject, create_temp_project, parse_response

__all__ = [
    "ProtocolValidator",
    "ValidationResult",
    "CountingCounter",
    "TempProject",
    "create_temp_project",
    "parse_response",
]
