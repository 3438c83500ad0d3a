"""切片读取：按 offset/limit 截取连续行"""

from .line_model import format_with_line_numbers, parse_lines
from .models import DEFAULT_LINE_LIMIT, MAX_LINE_LENGTH, SliceReadResult


def read_with_slice(
    text: str,
    offset: int = 0,
    limit: int = DEFAULT_LINE_LIMIT,
    max_line_length: int = MAX_LINE_LENGTH,
) -> SliceReadResult:
    """
    读取 lines[offset : offset + limit]

    Args:
        text: 已加载的文本（调用方负责 CRLF 归一化）
        offset: 0-based 起始偏移，负数按 0 处理
        limit: 最大返回行数
        max_line_length: 单行最大字符数

    Returns:
        SliceReadResult；offset 超出文件末尾时返回 returned_lines=0 的错误结果
    """
    records = parse_lines(text)
    total_lines = len(records)

    offset = max(0, offset)
    if offset >= total_lines:
        return SliceReadResult(
            content=f"Error: offset {offset} is beyond file end ({total_lines} lines)",
            included_ranges=[],
            total_lines=total_lines,
            returned_lines=0,
            was_truncated=False,
        )

    end = min(offset + max(1, limit), total_lines)
    selected = records[offset:end]

    return SliceReadResult(
        content=format_with_line_numbers(selected, max_line_length),
        included_ranges=[(offset + 1, end)],
        total_lines=total_lines,
        returned_lines=len(selected),
        was_truncated=end < total_lines,
    )
