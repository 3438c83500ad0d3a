"""Read 工具提示词

提供给 LLM 的工具描述，遵循《通用工具响应协议》。
"""

read_prompt = """
Tool name: Read
Tool description:
Reads a text file from the project with line numbers. Three modes:
- slice: a contiguous window (offset/limit).
- indentation: a syntactically coherent block around anchor_line, found by
  indentation (works for any language).
- budget: as much of the file as fits the remaining context budget, cut on
  line boundaries.
Follows the Universal Tool Response Protocol (top-level fields only: status/data/text/error/stats/context).

Parameters (JSON object)
- path (string, required)
  Path to the file (relative to project root).
- mode (string, optional, default "slice")
  One of "slice", "indentation", "budget".
- offset (integer, optional, default 0)
  0-based line offset for slice mode.
- limit (integer, optional, default 2000, max 2000)
  Maximum lines to return (slice and indentation modes).
- anchor_line (integer, required for indentation mode)
  1-based line to center the block on.
- max_levels (integer, optional, default 0)
  Indentation levels the block may rise above the anchor (0 = unlimited).
- include_siblings (boolean, optional, default false)
  Also include sibling blocks at the same indentation.
- include_header (boolean, optional, default true)
  Allow comment lines above the block to be included.
- max_lines (integer, optional)
  Hard cap on returned lines for indentation mode.

Response Structure
- status: "success" | "partial" | "error"
  - "success": the requested range was returned without truncation
  - "partial": truncated, encoding fallback used, or no context budget left
  - "error": not found, access denied, binary, directory, invalid parameters, timeout
- data.content: string
  Lines formatted as "<line> | <text>" (line numbers right-aligned).
- data.truncated: boolean
- data.included_ranges: [[start, end], ...] (1-based, inclusive)
- text: Human-readable summary with the next offset to continue.
- stats: {time_ms, lines_read, total_lines, file_size_bytes, encoding, ...}
- context: {cwd, params_input, path_resolved}

Examples
1) Read the start of a file
Read[{"path": "src/main.py"}]

2) Continue after a truncated read (lines 2001-2100)
Read[{"path": "src/main.py", "offset": 2000, "limit": 100}]

3) Show the function containing line 120
Read[{"path": "src/main.py", "mode": "indentation", "anchor_line": 120}]

4) Read as much as fits in context
Read[{"path": "logs/build.log", "mode": "budget"}]
"""
