"""工具基类与响应协议支持

遵循《通用工具响应协议》，所有工具返回必须使用标准信封结构：
顶层字段仅允许 status / data / text / error / stats / context。
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


# =============================================================================
# 响应协议枚举
# =============================================================================

class ToolStatus(str, Enum):
    """
    工具运行状态

    - SUCCESS: 完整返回，无截断、无回退
    - PARTIAL: 结果可用但有"折扣"（截断 / 编码回退 / 预算不足）
    - ERROR: 无法提供有效结果
    """
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class ErrorCode(str, Enum):
    """标准错误码"""
    NOT_FOUND = "NOT_FOUND"           # 文件/路径不存在
    ACCESS_DENIED = "ACCESS_DENIED"   # 路径不在 project root 内
    INVALID_PARAM = "INVALID_PARAM"   # 参数校验失败（含 offset/anchor_line 越界）
    TIMEOUT = "TIMEOUT"               # 预算读取计数超时
    INTERNAL_ERROR = "INTERNAL_ERROR" # 未分类的内部异常
    IS_DIRECTORY = "IS_DIRECTORY"     # 路径是目录而非文件
    BINARY_FILE = "BINARY_FILE"       # 文件是二进制格式


class ToolParameter(BaseModel):
    """工具参数定义"""
    name: str
    type: str
    description: str
    required: bool = True
    default: Any = None


# =============================================================================
# 工具基类
# =============================================================================

class Tool(ABC):
    """
    工具基类

    Attributes:
        name: 工具名称
        description: 工具描述（提示词）
        _project_root: 项目根目录（沙箱边界）
        _working_dir: 工作目录（用于填充 context.cwd）
    """

    def __init__(
        self,
        name: str,
        description: str,
        project_root: Optional[Path] = None,
        working_dir: Optional[Path] = None,
    ):
        self.name = name
        self.description = description
        self._project_root = Path(project_root).resolve() if project_root is not None else None

        if working_dir is not None:
            self._working_dir = Path(working_dir).resolve()
        else:
            self._working_dir = self._project_root

    @abstractmethod
    def run(self, parameters: Dict[str, Any]) -> str:
        """执行工具，返回协议 JSON 字符串"""

    @abstractmethod
    def get_parameters(self) -> List[ToolParameter]:
        """获取工具参数定义"""

    def get_cwd_rel(self) -> str:
        """工作目录相对项目根目录的路径（失败时返回 "."）"""
        if self._working_dir is None or self._project_root is None:
            return "."
        try:
            rel = self._working_dir.relative_to(self._project_root)
            return str(rel) if str(rel) != "." else "."
        except ValueError:
            return "."

    # -------------------------------------------------------------------------
    # 响应构建
    # -------------------------------------------------------------------------

    def create_success_response(self, data: Dict[str, Any], text: str, params_input: Dict[str, Any],
                                time_ms: int, **kwargs: Any) -> str:
        return self._build_response(ToolStatus.SUCCESS, data, text, params_input, time_ms, **kwargs)

    def create_partial_response(self, data: Dict[str, Any], text: str, params_input: Dict[str, Any],
                                time_ms: int, **kwargs: Any) -> str:
        """部分成功：data 中应带 truncated 等标记，text 说明原因和下一步"""
        return self._build_response(ToolStatus.PARTIAL, data, text, params_input, time_ms, **kwargs)

    def create_error_response(
        self,
        error_code: ErrorCode,
        message: str,
        params_input: Dict[str, Any],
        time_ms: int = 0,
        path_resolved: Optional[str] = None,
        extra_context: Optional[Dict[str, Any]] = None,
    ) -> str:
        """错误响应：data 为空对象，error 字段仅在此出现"""
        payload = {
            "status": ToolStatus.ERROR.value,
            "data": {},
            "text": message,
            "error": {"code": error_code.value, "message": message},
            "stats": {"time_ms": time_ms},
            "context": self._build_context(params_input, path_resolved, extra_context),
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)

    def _build_context(
        self,
        params_input: Dict[str, Any],
        path_resolved: Optional[str],
        extra_context: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        context: Dict[str, Any] = {
            "cwd": self.get_cwd_rel(),
            "params_input": params_input,
        }
        if path_resolved is not None:
            context["path_resolved"] = path_resolved
        if extra_context:
            context.update(extra_context)
        return context

    def _build_response(
        self,
        status: ToolStatus,
        data: Dict[str, Any],
        text: str,
        params_input: Dict[str, Any],
        time_ms: int,
        extra_stats: Optional[Dict[str, Any]] = None,
        path_resolved: Optional[str] = None,
        extra_context: Optional[Dict[str, Any]] = None,
    ) -> str:
        stats: Dict[str, Any] = {"time_ms": time_ms}
        if extra_stats:
            stats.update(extra_stats)

        payload = {
            "status": status.value,
            "data": data,
            "text": text,
            "stats": stats,
            "context": self._build_context(params_input, path_resolved, extra_context),
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [param.model_dump() for param in self.get_parameters()],
        }

    def __repr__(self) -> str:
        return f"Tool(name={self.name})"
