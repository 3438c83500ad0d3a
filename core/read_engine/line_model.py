"""行与缩进模型

将原始文本解析为 LineRecord 列表，计算缩进层级与有效缩进，
并提供切片/缩进读取共享的格式化与区间合并工具。

纯函数，无 I/O。
"""

import re
from typing import List, Sequence

from .models import LineRange, LineRecord, MAX_LINE_LENGTH


# =============================================================================
# 常量
# =============================================================================

# 缩进单位（空格数）
INDENT_SIZE = 4

# Tab 折算的空格数
TAB_WIDTH = 4

# 块起始行的结尾模式（忽略行尾空白）
BLOCK_START_PATTERNS = [
    re.compile(r":\s*$"),          # Python: def foo():
    re.compile(r"\{\s*$"),         # C 系: 左花括号
    re.compile(r"=>\s*\{?\s*$"),   # 箭头函数
    re.compile(r"\bthen\s*$"),     # Lua / shell
    re.compile(r"\bdo\s*$"),       # Ruby / Lua
]

# 注释行前缀（include_header 判定用）
COMMENT_PREFIXES = ("#", "//", "--", "/*", "*", "'''", '"""')

ELLIPSIS = "..."


# =============================================================================
# 解析
# =============================================================================

def _measure_indent(line: str) -> int:
    """计算行首缩进层级：tab 折算为 TAB_WIDTH 个空格，再按 INDENT_SIZE 向下取整"""
    stripped = line.lstrip()
    leading = len(line) - len(stripped)
    spaces = 0
    for ch in line[:leading]:
        spaces += TAB_WIDTH if ch == "\t" else 1
    return spaces // INDENT_SIZE


def parse_lines(text: str) -> List[LineRecord]:
    """
    将文本解析为 LineRecord 列表

    仅按 "\\n" 切分，不做 CRLF 归一化（调用方负责）。
    空字符串也会产生一条空白记录。
    """
    records: List[LineRecord] = []
    for index, line in enumerate(text.split("\n")):
        is_blank = not line.strip()
        records.append(
            LineRecord(
                line_number=index + 1,
                content=line,
                indent_level=_measure_indent(line),
                is_blank=is_blank,
                is_block_start=(not is_blank)
                and any(p.search(line) for p in BLOCK_START_PATTERNS),
            )
        )
    return records


def compute_effective_indents(records: Sequence[LineRecord]) -> List[int]:
    """计算有效缩进：空白行继承前一个非空白行的缩进，文件开头的空白行为 0"""
    effective: List[int] = []
    previous_indent = 0
    for record in records:
        if not record.is_blank:
            previous_indent = record.indent_level
        effective.append(previous_indent)
    return effective


def is_comment(record: LineRecord) -> bool:
    return record.content.strip().startswith(COMMENT_PREFIXES)


# =============================================================================
# 输出
# =============================================================================

def format_with_line_numbers(
    records: Sequence[LineRecord],
    max_line_length: int = MAX_LINE_LENGTH,
) -> str:
    """
    格式化为 "<行号> | <内容>"

    行号右对齐，宽度取最后一行行号的位数；超长行截断为
    max_line_length - 3 个字符并追加 "..."。
    """
    if not records:
        return ""
    width = len(str(records[-1].line_number))

    parts = []
    for record in records:
        content = record.content
        if len(content) > max_line_length:
            content = content[: max(0, max_line_length - len(ELLIPSIS))] + ELLIPSIS
        parts.append(f"{record.line_number:>{width}} | {content}")
    return "\n".join(parts)


def compute_included_ranges(records: Sequence[LineRecord]) -> List[LineRange]:
    """将连续行号合并为 (start, end) 区间（1-based，闭区间）"""
    if not records:
        return []

    ranges: List[LineRange] = []
    start = end = records[0].line_number
    for record in records[1:]:
        if record.line_number == end + 1:
            end = record.line_number
            continue
        ranges.append((start, end))
        start = end = record.line_number
    ranges.append((start, end))
    return ranges
