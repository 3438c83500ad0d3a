"""Token 预算增量读取器

单次遍历文件，按固定行数分块计数 token，在预算耗尽时停止读取：

    ACCUMULATING ──(缓冲满 chunk_lines 行)──> CHUNK_READY ──> MEASURING
        ^                                                     │
        └──────────────(整块可容纳，提交并继续)───────────────┤
                                                              v
                                  BISECTING（二分查找块内截断行）──> DONE

- 同一时刻只有一个分块在计数；计数期间暂停读取行（背压）
- 分块溢出后立即关闭文件流，不再读取或计数后续分块
- 流结束时剩余的不满一块的行走同样的计数/二分逻辑
- 计数器失败回退到 ceil(字符数 / 2) 的保守估算，不中断读取
- 同步计数器在专用工作线程中执行，单次计数等待有上限，
  超时抛出 BudgetReadTimeoutError 而不是无限挂起
- 按行解码 UTF-8，无法解码的字节替换为 U+FFFD 并记录在结果中
"""

import asyncio
import concurrent.futures
import inspect
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import aiofiles

from .errors import BudgetReadTimeoutError
from .models import DEFAULT_CHUNK_LINES, ReadState, ReadWithBudgetResult
from .token_counter import TiktokenCounter, TokenCounter, estimate_tokens_by_chars

logger = logging.getLogger(__name__)


# 文件读取可使用的剩余上下文比例（其余留给模型输出与开销）
FILE_READ_BUDGET_PERCENT = 0.6

# 单次分块计数的最长等待（秒）
DEFAULT_MEASURE_TIMEOUT = 30.0


def compute_read_budget(
    context_window: int,
    max_output_tokens: int = 0,
    context_tokens: int = 0,
    budget_percent: float = FILE_READ_BUDGET_PERCENT,
) -> int:
    """由剩余上下文窗口推导文件读取的 token 预算（可能 <= 0，表示无预算）"""
    remaining = context_window - max_output_tokens - context_tokens
    return math.floor(remaining * budget_percent)


@dataclass
class _BudgetProgress:
    """单次读取的累计状态"""

    budget: int
    parts: List[str] = field(default_factory=list)
    token_count: int = 0
    line_count: int = 0
    complete: bool = True
    decode_errors: bool = False
    chunks_measured: int = 0
    state: ReadState = ReadState.ACCUMULATING

    def commit(self, lines: List[str], tokens: int) -> None:
        self.parts.append("\n".join(lines))
        self.token_count += tokens
        self.line_count += len(lines)

    def fits(self, tokens: int) -> bool:
        return self.token_count + tokens <= self.budget

    def to_result(self) -> ReadWithBudgetResult:
        return ReadWithBudgetResult(
            content="\n".join(self.parts),
            token_count=self.token_count,
            line_count=self.line_count,
            complete=self.complete,
            decode_errors=self.decode_errors,
        )


def _decode_line(raw_line: bytes, progress: _BudgetProgress) -> str:
    """去掉行尾 \\n / \\r\\n 并按 UTF-8 解码"""
    if raw_line.endswith(b"\n"):
        raw_line = raw_line[:-1]
    if raw_line.endswith(b"\r"):
        raw_line = raw_line[:-1]
    try:
        return raw_line.decode("utf-8")
    except UnicodeDecodeError:
        progress.decode_errors = True
        return raw_line.decode("utf-8", errors="replace")


def _is_async_counter(counter: TokenCounter) -> bool:
    return inspect.iscoroutinefunction(counter) or inspect.iscoroutinefunction(
        getattr(counter, "__call__", None)
    )


class TokenBudgetReader:
    """
    在 token 预算内增量读取文件

    Attributes:
        chunk_lines: 每个分块的行数
        measure_timeout: 单次计数的等待上限（秒），None 表示不限
    """

    def __init__(
        self,
        token_counter: Optional[TokenCounter] = None,
        chunk_lines: int = DEFAULT_CHUNK_LINES,
        measure_timeout: Optional[float] = DEFAULT_MEASURE_TIMEOUT,
    ):
        if chunk_lines < 1:
            raise ValueError("chunk_lines must be >= 1")
        self._counter: TokenCounter = token_counter or TiktokenCounter()
        self.chunk_lines = chunk_lines
        self.measure_timeout = measure_timeout

    async def read(self, path: Union[str, Path], budget_tokens: int) -> ReadWithBudgetResult:
        """
        读取文件，直到预算耗尽或文件结束

        Args:
            path: 文件路径（UTF-8 文本）
            budget_tokens: token 预算

        Returns:
            ReadWithBudgetResult；complete=False 表示文件还有未返回的行

        Raises:
            FileNotFoundError: 路径不存在或不是普通文件
            BudgetReadTimeoutError: 分块计数超过等待上限
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

        if budget_tokens <= 0:
            return ReadWithBudgetResult(content="", token_count=0, line_count=0, complete=False)

        progress = _BudgetProgress(budget=budget_tokens)
        buffer: List[str] = []

        # 超时后卡住的计数线程不应阻塞调用方，关闭时不等待
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="token-counter"
        )
        try:
            async with aiofiles.open(file_path, "rb") as handle:
                async for raw_line in handle:
                    buffer.append(_decode_line(raw_line, progress))
                    if len(buffer) < self.chunk_lines:
                        continue
                    progress.state = ReadState.CHUNK_READY
                    chunk, buffer = buffer, []
                    await self._process_chunk(chunk, progress, executor)
                    if progress.state is ReadState.DONE:
                        break

            # 文件流已关闭；剩余缓冲走同样的计数逻辑
            if progress.state is not ReadState.DONE and buffer:
                progress.state = ReadState.CHUNK_READY
                await self._process_chunk(buffer, progress, executor)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        progress.state = ReadState.DONE

        if not progress.complete:
            logger.info(
                "Budget read stopped early: %s (%d lines, %d/%d tokens, %d chunks measured)",
                file_path.name, progress.line_count, progress.token_count,
                budget_tokens, progress.chunks_measured,
            )
        return progress.to_result()

    # -------------------------------------------------------------------------
    # 分块处理
    # -------------------------------------------------------------------------

    async def _process_chunk(
        self,
        chunk: List[str],
        progress: _BudgetProgress,
        executor: concurrent.futures.Executor,
    ) -> None:
        """计数一个分块：整块可容纳则提交并回到 ACCUMULATING，否则二分后进入 DONE"""
        progress.state = ReadState.MEASURING
        chunk_tokens = await self._measure("\n".join(chunk), executor)
        progress.chunks_measured += 1
        logger.debug(
            "Measured chunk #%d: %d lines, %d tokens (running %d/%d)",
            progress.chunks_measured, len(chunk), chunk_tokens,
            progress.token_count, progress.budget,
        )

        if progress.fits(chunk_tokens):
            progress.commit(chunk, chunk_tokens)
            progress.state = ReadState.ACCUMULATING
            return

        progress.state = ReadState.BISECTING
        best_fit, best_tokens = await self._bisect(chunk, progress, executor)
        if best_fit > 0:
            progress.commit(chunk[:best_fit], best_tokens)
        logger.debug("Chunk overflow: admitted %d of %d lines", best_fit, len(chunk))
        progress.complete = False
        progress.state = ReadState.DONE

    async def _bisect(self, chunk: List[str], progress: _BudgetProgress, executor):
        """二分查找可容纳的最长前缀行数，返回 (行数, token 数)"""
        low, high = 0, len(chunk)
        best_fit, best_tokens = 0, 0
        while low < high:
            mid = (low + high + 1) // 2
            tokens = await self._measure("\n".join(chunk[:mid]), executor)
            if progress.fits(tokens):
                best_fit, best_tokens = mid, tokens
                low = mid
            else:
                high = mid - 1
        return best_fit, best_tokens

    async def _measure(self, text: str, executor: concurrent.futures.Executor) -> int:
        counting = self._count_or_estimate(text, executor)
        if self.measure_timeout is None:
            return await counting
        try:
            return await asyncio.wait_for(counting, timeout=self.measure_timeout)
        except asyncio.TimeoutError as exc:
            raise BudgetReadTimeoutError(
                f"Timeout waiting for token measurement ({self.measure_timeout}s)",
                timeout_s=self.measure_timeout,
            ) from exc

    async def _count_or_estimate(self, text: str, executor: concurrent.futures.Executor) -> int:
        try:
            if _is_async_counter(self._counter):
                result = await self._counter(text)
            else:
                # 同步计数器（如首次加载编码的 tiktoken）不能阻塞事件循环
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(executor, self._counter, text)
                if inspect.isawaitable(result):
                    result = await result
            return int(result)
        except Exception as exc:
            logger.debug("Token counter failed (%s); falling back to character estimate", exc)
            return estimate_tokens_by_chars(text)


async def read_file_with_token_budget(
    path: Union[str, Path],
    budget_tokens: int,
    chunk_lines: int = DEFAULT_CHUNK_LINES,
    token_counter: Optional[TokenCounter] = None,
    measure_timeout: Optional[float] = DEFAULT_MEASURE_TIMEOUT,
) -> ReadWithBudgetResult:
    """便捷函数：构造 TokenBudgetReader 并读取一次"""
    reader = TokenBudgetReader(
        token_counter=token_counter,
        chunk_lines=chunk_lines,
        measure_timeout=measure_timeout,
    )
    return await reader.read(path, budget_tokens)
