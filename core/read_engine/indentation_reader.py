"""缩进块提取器（indentation mode）

基于缩进层级而非任意行区间提取语义完整的代码块，与语言无关。

算法（从锚点行双向扩展）：
1. 解析每行缩进层级，计算有效缩进（空白行继承上一非空白行）
2. 根据 max_levels 计算最低缩进 min_indent
3. 每轮先向上扩展一行，再向下扩展一行，直到触达行数上限或两个方向都停止
4. 在 min_indent 处按方向各自只接纳一个块（兄弟块排除）；
   include_header 仅在向上时允许注释行绕过该限制
5. 去除首尾空白行，格式化并合并区间
"""

import logging
from collections import deque
from typing import Deque, List

from .line_model import (
    compute_effective_indents,
    compute_included_ranges,
    format_with_line_numbers,
    is_comment,
    parse_lines,
)
from .models import (
    IndentationReadOptions,
    IndentationReadResult,
    LineRecord,
    MAX_LINE_LENGTH,
)

logger = logging.getLogger(__name__)


def _trim_blank_edges(window: Deque[LineRecord]) -> None:
    while window and window[0].is_blank:
        window.popleft()
    while window and window[-1].is_blank:
        window.pop()


def read_with_indentation(
    text: str,
    options: IndentationReadOptions,
    max_line_length: int = MAX_LINE_LENGTH,
) -> IndentationReadResult:
    """
    以锚点行为中心提取缩进块

    Args:
        text: 已加载的文本（调用方负责 CRLF 归一化）
        options: 缩进读取参数
        max_line_length: 单行最大字符数

    Returns:
        IndentationReadResult；anchor_line 越界时返回 returned_lines=0 的错误结果
    """
    records = parse_lines(text)
    total_lines = len(records)
    anchor_line = options.anchor_line

    if anchor_line < 1 or anchor_line > total_lines:
        return IndentationReadResult(
            content=f"Error: anchor_line {anchor_line} is out of range (1-{total_lines})",
            included_ranges=[],
            total_lines=total_lines,
            returned_lines=0,
            was_truncated=False,
        )

    anchor_idx = anchor_line - 1
    effective = compute_effective_indents(records)
    anchor_indent = effective[anchor_idx]

    if options.max_levels == 0:
        min_indent = 0
    else:
        min_indent = max(0, anchor_indent - options.max_levels)

    guard_limit = options.max_lines if options.max_lines is not None else options.limit
    effective_limit = min(options.limit, guard_limit, total_lines)

    # limit 为 1：只返回锚点行
    if effective_limit <= 1:
        single = [records[anchor_idx]]
        return IndentationReadResult(
            content=format_with_line_numbers(single, max_line_length),
            included_ranges=[(anchor_line, anchor_line)],
            total_lines=total_lines,
            returned_lines=1,
            was_truncated=total_lines > 1,
        )

    # -------------------------------------------------------------------------
    # 双向扩展
    # -------------------------------------------------------------------------
    window: Deque[LineRecord] = deque([records[anchor_idx]])
    up = anchor_idx - 1
    down = anchor_idx + 1
    up_floor_taken = 0
    down_floor_taken = 0
    exclude_siblings = not options.include_siblings

    while len(window) < effective_limit:
        # 向上
        if up >= 0 and effective[up] >= min_indent:
            candidate = records[up]
            if effective[up] == min_indent and exclude_siblings:
                allow_header = options.include_header and is_comment(candidate)
                if allow_header or up_floor_taken == 0:
                    up_floor_taken += 1
                    window.appendleft(candidate)
                    up -= 1
                else:
                    up = -1
            else:
                window.appendleft(candidate)
                up -= 1
        else:
            up = -1

        if len(window) >= effective_limit:
            break

        # 向下（不允许 header 绕过）
        if down < total_lines and effective[down] >= min_indent:
            candidate = records[down]
            if effective[down] == min_indent and exclude_siblings:
                if down_floor_taken == 0:
                    down_floor_taken += 1
                    window.append(candidate)
                    down += 1
                else:
                    down = total_lines
            else:
                window.append(candidate)
                down += 1
        else:
            down = total_lines

        if up < 0 and down >= total_lines:
            break

    still_live = (up >= 0 and effective[up] >= min_indent) or (
        down < total_lines and effective[down] >= min_indent
    )

    _trim_blank_edges(window)
    selected: List[LineRecord] = list(window)
    # 以去除首尾空白后的窗口判断是否触达上限：只差空白行时不算截断
    hit_limit = len(selected) >= effective_limit

    logger.debug(
        "indentation read: anchor=%d min_indent=%d limit=%d returned=%d",
        anchor_line, min_indent, effective_limit, len(selected),
    )

    return IndentationReadResult(
        content=format_with_line_numbers(selected, max_line_length),
        included_ranges=compute_included_ranges(selected),
        total_lines=total_lines,
        returned_lines=len(selected),
        was_truncated=(hit_limit or still_live) and len(selected) < total_lines,
    )
