"""文件读取工具 (Read)

遵循《通用工具响应协议》，返回标准化结构。
读取逻辑由 core.read_engine 提供，本工具只负责编排：
参数校验、沙箱与文件类型检查、编码回退、模式分发与截断提示。
"""

import asyncio
import concurrent.futures
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from core.config import Config
from core.read_engine.budget_reader import TokenBudgetReader, compute_read_budget
from core.read_engine.errors import BudgetReadTimeoutError
from core.read_engine.indentation_reader import read_with_indentation
from core.read_engine.line_model import format_with_line_numbers, parse_lines
from core.read_engine.models import IndentationReadOptions, IndentationReadResult
from core.read_engine.slice_reader import read_with_slice
from core.read_engine.token_counter import TiktokenCounter, TokenCounter
from prompts.tools_prompts.read_prompt import read_prompt
from ..base import Tool, ToolParameter, ErrorCode

logger = logging.getLogger(__name__)

ENCODING_WARNING = "[Warning: Encoding issues detected. Some characters may be corrupted (using replacement).]"

T = TypeVar("T")


def _run_coroutine(coro: Awaitable[T]) -> T:
    """
    在同步上下文中运行协程

    已处于事件循环中（如异步宿主直接调用 run）时，asyncio.run 会报错，
    此时在独立线程的新事件循环中执行并等待结果。
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    with concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="read-budget") as executor:
        return executor.submit(asyncio.run, coro).result()


class ReadTool(Tool):
    """文件读取工具，支持 slice / indentation / budget 三种模式"""

    MODES = ("slice", "indentation", "budget")

    # 二进制检测的采样大小（读取前 8KB 检测是否包含 null byte）
    BINARY_CHECK_SIZE = 8192

    # limit 的硬上限
    MAX_LIMIT = 2000

    def __init__(
        self,
        name: str = "Read",
        project_root: Optional[Path] = None,
        working_dir: Optional[Path] = None,
        config: Optional[Config] = None,
        token_counter: Optional[TokenCounter] = None,
        context_usage: Optional[Callable[[], int]] = None,
    ):
        """
        初始化文件读取工具

        Args:
            name: 工具名称，默认为 "Read"
            project_root: 项目根目录（沙箱边界）
            working_dir: 工作目录
            config: 读取配置，默认 Config.from_env()
            token_counter: budget 模式使用的计数器，默认按配置的 tiktoken 编码
            context_usage: 返回当前上下文已用 token 数的回调，用于推导读取预算
        """
        if project_root is None:
            raise ValueError("project_root must be provided by the framework")

        super().__init__(
            name=name,
            description=read_prompt,
            project_root=project_root,
            working_dir=working_dir if working_dir else project_root,
        )
        self._root = self._project_root
        self._config = config or Config.from_env()
        self._token_counter = token_counter or TiktokenCounter(self._config.tokenizer_encoding)
        self._context_usage = context_usage or (lambda: 0)

    def run(self, parameters: Dict[str, Any]) -> str:
        """
        执行文件读取

        Args:
            parameters: path（必填）、mode、offset、limit、anchor_line、max_levels、
                include_siblings、include_header、max_lines

        Returns:
            JSON 格式的响应字符串
        """
        start_time = time.monotonic()
        params_input = dict(parameters)

        error = self._validate(parameters)
        if error:
            return self.create_error_response(
                error_code=ErrorCode.INVALID_PARAM,
                message=error,
                params_input=params_input,
            )

        path = parameters["path"]
        mode = parameters.get("mode", "slice")

        # =====================================================================
        # 路径解析与沙箱校验
        # =====================================================================
        try:
            input_path = Path(path)
            target = input_path.resolve() if input_path.is_absolute() else (self._root / input_path).resolve()
            target.relative_to(self._root)
        except ValueError:
            return self.create_error_response(
                error_code=ErrorCode.ACCESS_DENIED,
                message=f"Access denied. Path '{path}' is outside project root.",
                params_input=params_input,
            )
        except OSError as e:
            return self.create_error_response(
                error_code=ErrorCode.INTERNAL_ERROR,
                message=f"Path resolution failed: {e}",
                params_input=params_input,
            )

        rel_path = str(target.relative_to(self._root)) or "."

        # =====================================================================
        # 文件存在性与类型检查
        # =====================================================================
        if not target.exists():
            return self.create_error_response(
                error_code=ErrorCode.NOT_FOUND,
                message=f"File '{path}' does not exist.",
                params_input=params_input,
                path_resolved=rel_path,
            )
        if target.is_dir():
            return self.create_error_response(
                error_code=ErrorCode.IS_DIRECTORY,
                message=f"Path '{path}' is a directory, not a file.",
                params_input=params_input,
                path_resolved=rel_path,
            )

        try:
            file_size = target.stat().st_size
            is_binary = self._is_binary_file(target)
        except OSError as e:
            return self.create_error_response(
                error_code=ErrorCode.INTERNAL_ERROR,
                message=f"Cannot access file: {e}",
                params_input=params_input,
                path_resolved=rel_path,
            )
        if is_binary:
            return self.create_error_response(
                error_code=ErrorCode.BINARY_FILE,
                message=f"File '{path}' appears to be binary. Cannot read as text.",
                params_input=params_input,
                path_resolved=rel_path,
            )

        # =====================================================================
        # 模式分发
        # =====================================================================
        if mode == "budget":
            return self._run_budget(target, rel_path, file_size, params_input, start_time)

        try:
            text, encoding_used, fallback_used = self._load_text(target)
        except OSError as e:
            return self.create_error_response(
                error_code=ErrorCode.INTERNAL_ERROR,
                message=f"Failed to read file: {e}",
                params_input=params_input,
                time_ms=self._elapsed_ms(start_time),
                path_resolved=rel_path,
            )

        stats = {"file_size_bytes": file_size, "encoding": encoding_used}

        # 空文件：直接返回
        if not text:
            return self.create_success_response(
                data={"content": "", "truncated": False, "included_ranges": []},
                text=f"Read 0 lines from '{rel_path}' (file is empty).",
                params_input=params_input,
                time_ms=self._elapsed_ms(start_time),
                extra_stats={**stats, "lines_read": 0, "total_lines": 0},
                path_resolved=rel_path,
            )

        result = self._read_text(text, mode, parameters)
        time_ms = self._elapsed_ms(start_time)

        if result.returned_lines == 0:
            return self.create_error_response(
                error_code=ErrorCode.INVALID_PARAM,
                message=result.content,
                params_input=params_input,
                time_ms=time_ms,
                path_resolved=rel_path,
                extra_context={"total_lines": result.total_lines},
            )

        return self._format_response(
            result, mode, rel_path, stats, fallback_used, time_ms, params_input
        )

    # -------------------------------------------------------------------------
    # 参数校验
    # -------------------------------------------------------------------------

    @staticmethod
    def _is_int(value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)

    def _validate(self, parameters: Dict[str, Any]) -> Optional[str]:
        """返回错误消息；参数合法时返回 None"""
        if not parameters.get("path"):
            return "Parameter 'path' is required."

        mode = parameters.get("mode", "slice")
        if mode not in self.MODES:
            return f"mode must be one of {', '.join(self.MODES)}."

        offset = parameters.get("offset", 0)
        if not self._is_int(offset):
            return "offset must be an integer."

        limit = parameters.get("limit", self._default_limit)
        if not self._is_int(limit) or limit < 1 or limit > self.MAX_LIMIT:
            return f"limit must be an integer between 1 and {self.MAX_LIMIT}."

        if mode != "indentation":
            return None

        if "anchor_line" not in parameters:
            return "anchor_line is required for indentation mode."
        if not self._is_int(parameters["anchor_line"]):
            return "anchor_line must be an integer."
        max_levels = parameters.get("max_levels", 0)
        if not self._is_int(max_levels) or max_levels < 0:
            return "max_levels must be a non-negative integer."
        for flag in ("include_siblings", "include_header"):
            if flag in parameters and not isinstance(parameters[flag], bool):
                return f"{flag} must be a boolean."
        max_lines = parameters.get("max_lines")
        if max_lines is not None and (not self._is_int(max_lines) or max_lines < 1):
            return "max_lines must be a positive integer."
        return None

    @property
    def _default_limit(self) -> int:
        return min(self._config.read_default_limit, self.MAX_LIMIT)

    # -------------------------------------------------------------------------
    # 读取
    # -------------------------------------------------------------------------

    def _is_binary_file(self, path: Path) -> bool:
        """读取前 8KB，包含 null byte 则判定为二进制"""
        with open(path, "rb") as f:
            return b"\x00" in f.read(self.BINARY_CHECK_SIZE)

    @staticmethod
    def _load_text(path: Path) -> Tuple[str, str, bool]:
        """
        读取全文并归一化换行

        Returns:
            (text, encoding_used, fallback_used)；末尾换行不计为额外一行
        """
        encoding_used = "utf-8"
        fallback_used = False
        raw = path.read_bytes()
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            # 回退到 errors="replace"，部分字符会被替换为 �
            fallback_used = True
            encoding_used = "utf-8 (replace)"
            text = raw.decode("utf-8", errors="replace")

        text = text.replace("\r\n", "\n")
        if text.endswith("\n"):
            text = text[:-1]
        return text, encoding_used, fallback_used

    def _read_text(self, text: str, mode: str, parameters: Dict[str, Any]) -> IndentationReadResult:
        limit = parameters.get("limit", self._default_limit)
        max_line_length = self._config.read_max_line_length

        if mode == "indentation":
            options = IndentationReadOptions(
                anchor_line=parameters["anchor_line"],
                max_levels=parameters.get("max_levels", 0),
                include_siblings=parameters.get("include_siblings", False),
                include_header=parameters.get("include_header", True),
                limit=limit,
                max_lines=parameters.get("max_lines"),
            )
            return read_with_indentation(text, options, max_line_length)

        return read_with_slice(text, parameters.get("offset", 0), limit, max_line_length)

    def _run_budget(
        self,
        target: Path,
        rel_path: str,
        file_size: int,
        params_input: Dict[str, Any],
        start_time: float,
    ) -> str:
        """budget 模式：在剩余上下文预算内增量读取"""
        config = self._config
        budget = compute_read_budget(
            context_window=config.context_window,
            max_output_tokens=config.max_output_tokens,
            context_tokens=self._context_usage(),
            budget_percent=config.file_read_budget_percent,
        )
        stats: Dict[str, Any] = {"file_size_bytes": file_size, "budget_tokens": budget}

        if budget <= 0:
            return self.create_partial_response(
                data={"content": "", "truncated": True, "included_ranges": []},
                text="No available context budget for file reading.",
                params_input=params_input,
                time_ms=self._elapsed_ms(start_time),
                extra_stats={**stats, "lines_read": 0, "token_count": 0},
                path_resolved=rel_path,
            )

        reader = TokenBudgetReader(
            token_counter=self._token_counter,
            chunk_lines=config.read_chunk_lines,
            measure_timeout=config.read_measure_timeout,
        )
        try:
            result = _run_coroutine(reader.read(target, budget))
        except BudgetReadTimeoutError as e:
            return self.create_error_response(
                error_code=ErrorCode.TIMEOUT,
                message=f"Budgeted read of '{rel_path}' timed out: {e.message}",
                params_input=params_input,
                time_ms=self._elapsed_ms(start_time),
                path_resolved=rel_path,
            )
        except FileNotFoundError:
            return self.create_error_response(
                error_code=ErrorCode.NOT_FOUND,
                message=f"File '{rel_path}' does not exist.",
                params_input=params_input,
                time_ms=self._elapsed_ms(start_time),
                path_resolved=rel_path,
            )

        # 引擎返回原始文本，行号由调用方添加
        if result.line_count:
            content = format_with_line_numbers(parse_lines(result.content), config.read_max_line_length)
            included_ranges = [[1, result.line_count]]
        else:
            content, included_ranges = "", []

        data: Dict[str, Any] = {
            "content": content,
            "truncated": not result.complete,
            "included_ranges": included_ranges,
        }
        stats.update({
            "lines_read": result.line_count,
            "token_count": result.token_count,
            "encoding": "utf-8 (replace)" if result.decode_errors else "utf-8",
        })
        time_ms = self._elapsed_ms(start_time)

        if result.complete:
            text = f"Read {result.line_count} lines ({result.token_count} tokens) from '{rel_path}'.\n" \
                   f"(Took {time_ms}ms)"
        else:
            logger.info("Budgeted read of %s truncated at %d lines", rel_path, result.line_count)
            text = f"File truncated: showing {result.line_count} lines ({result.token_count} tokens) " \
                   f"due to context budget. Use mode=\"slice\" with offset={result.line_count} to read more.\n" \
                   f"(Took {time_ms}ms)"
        if result.decode_errors:
            data["fallback_encoding"] = "replace"
            text += "\n" + ENCODING_WARNING

        response = self.create_success_response if (result.complete and not result.decode_errors) \
            else self.create_partial_response
        return response(
            data=data,
            text=text,
            params_input=params_input,
            time_ms=time_ms,
            extra_stats=stats,
            path_resolved=rel_path,
        )

    # -------------------------------------------------------------------------
    # 响应
    # -------------------------------------------------------------------------

    def _format_response(
        self,
        result: IndentationReadResult,
        mode: str,
        rel_path: str,
        stats: Dict[str, Any],
        fallback_used: bool,
        time_ms: int,
        params_input: Dict[str, Any],
    ) -> str:
        """
        构建标准化响应

        截断或编码回退 → partial；其他 → success
        """
        data: Dict[str, Any] = {
            "content": result.content,
            "truncated": result.was_truncated,
            "included_ranges": [list(r) for r in result.included_ranges],
        }
        if fallback_used:
            data["fallback_encoding"] = "replace"

        ranges_text = ", ".join(f"{s}-{e}" for s, e in result.included_ranges)
        lines = [f"Read {result.returned_lines} lines from '{rel_path}' (Lines {ranges_text})."]
        lines.append(f"(Took {time_ms}ms)")

        if result.was_truncated:
            next_offset = result.last_included_line
            remaining = result.total_lines - next_offset
            if mode == "slice":
                lines.append(
                    f"[Truncated: Showing {result.returned_lines} of {result.total_lines} lines. "
                    f"Use offset={next_offset} to continue ({remaining} lines remaining).]"
                )
            else:
                lines.append(
                    f"[Truncated: Block shows {result.returned_lines} of {result.total_lines} lines. "
                    f"Raise limit, or use mode=\"slice\" with offset={next_offset} to continue.]"
                )
        if fallback_used:
            lines.append(ENCODING_WARNING)

        extra_stats = {
            **stats,
            "lines_read": result.returned_lines,
            "chars_read": len(result.content),
            "total_lines": result.total_lines,
        }
        response = self.create_partial_response if (result.was_truncated or fallback_used) \
            else self.create_success_response
        return response(
            data=data,
            text="\n".join(lines),
            params_input=params_input,
            time_ms=time_ms,
            extra_stats=extra_stats,
            path_resolved=rel_path,
        )

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)

    def get_parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(name="path", type="string",
                          description="Path to the file (relative to project root). Required."),
            ToolParameter(name="mode", type="string", required=False, default="slice",
                          description="Read mode: slice, indentation or budget."),
            ToolParameter(name="offset", type="integer", required=False, default=0,
                          description="0-based line offset for slice mode."),
            ToolParameter(name="limit", type="integer", required=False, default=self._default_limit,
                          description=f"Maximum lines to return. Hard limit is {self.MAX_LIMIT}."),
            ToolParameter(name="anchor_line", type="integer", required=False,
                          description="1-based anchor line for indentation mode."),
            ToolParameter(name="max_levels", type="integer", required=False, default=0,
                          description="Indentation levels above the anchor to include (0 = unlimited)."),
            ToolParameter(name="include_siblings", type="boolean", required=False, default=False,
                          description="Include sibling blocks at the same indentation."),
            ToolParameter(name="include_header", type="boolean", required=False, default=True,
                          description="Allow comment lines above the block."),
            ToolParameter(name="max_lines", type="integer", required=False,
                          description="Hard cap on lines for indentation mode."),
        ]
