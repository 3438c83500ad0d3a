"""读取引擎数据模型

所有结果对象均为每次调用新建、按值返回，调用方完全拥有；引擎内部不缓存、不共享可变状态。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


# =============================================================================
# 默认值常量
# =============================================================================

# 单次读取默认返回的最大行数
DEFAULT_LINE_LIMIT = 2000

# 默认向上可跨越的缩进层级（0 = 不限制）
DEFAULT_MAX_LEVELS = 0

# 单行输出的最大字符数，超出部分以 "..." 截断
MAX_LINE_LENGTH = 500

# 增量读取时每个分块的行数
DEFAULT_CHUNK_LINES = 256


LineRange = Tuple[int, int]


@dataclass(frozen=True)
class LineRecord:
    """单个物理行（行号 1-based，content 不含换行符）"""

    line_number: int
    content: str
    indent_level: int
    is_blank: bool
    is_block_start: bool


@dataclass
class IndentationReadOptions:
    """
    缩进模式读取参数

    Attributes:
        anchor_line: 锚点行号（1-based），越界在读取时以结果值报错
        max_levels: 允许向上跨越的缩进层级数，0 表示不限制
        include_siblings: 是否包含与锚点块同级的兄弟块
        include_header: 向上扩展时允许最低缩进处的注释行绕过兄弟块限制
        limit: 返回行数的软上限
        max_lines: 可选的硬上限，与 limit 取较小值
    """

    anchor_line: int
    max_levels: int = DEFAULT_MAX_LEVELS
    include_siblings: bool = False
    include_header: bool = True
    limit: int = DEFAULT_LINE_LIMIT
    max_lines: Optional[int] = None


@dataclass
class IndentationReadResult:
    """切片/缩进读取的共享结果结构"""

    content: str
    included_ranges: List[LineRange] = field(default_factory=list)
    total_lines: int = 0
    returned_lines: int = 0
    was_truncated: bool = False

    @property
    def last_included_line(self) -> int:
        """最后一个返回的行号（未返回任何行时为 0）"""
        if not self.included_ranges:
            return 0
        return self.included_ranges[-1][1]

    def as_dict(self) -> dict:
        return {
            "content": self.content,
            "included_ranges": [list(r) for r in self.included_ranges],
            "total_lines": self.total_lines,
            "returned_lines": self.returned_lines,
            "was_truncated": self.was_truncated,
        }


# 切片读取与缩进读取共用同一结果形状
SliceReadResult = IndentationReadResult


@dataclass
class ReadWithBudgetResult:
    """Token 预算读取结果（content 为原始文本，不带行号）"""

    content: str
    token_count: int
    line_count: int
    complete: bool
    # 有无法按 UTF-8 解码的字节被替换为 U+FFFD
    decode_errors: bool = False

    def as_dict(self) -> dict:
        return {
            "content": self.content,
            "token_count": self.token_count,
            "line_count": self.line_count,
            "complete": self.complete,
            "decode_errors": self.decode_errors,
        }


class ReadState(str, Enum):
    """增量预算读取的状态机状态"""

    ACCUMULATING = "accumulating"
    CHUNK_READY = "chunk_ready"
    MEASURING = "measuring"
    BISECTING = "bisecting"
    DONE = "done"
