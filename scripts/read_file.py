"""命令行读取文件：对指定项目根目录运行 Read 工具并打印结果

示例：
    python scripts/read_file.py src/app.py
    python scripts/read_file.py src/app.py --mode indentation --anchor-line 42 --max-levels 1
    python scripts/read_file.py logs/big.log --mode budget --context-used 90000
    python scripts/read_file.py src/app.py --offset 100 --limit 50 --show-raw
"""

import argparse
import json
import os
import sys
from typing import Any, Dict, List, Optional

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from core.config import Config
from core.env import load_env
from tools.builtin.read_file import ReadTool

STATUS_STYLES = {
    "success": "bold bright_green",
    "partial": "bold bright_yellow",
    "error": "bold bright_red",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Read a file with the budget-aware Read tool")
    parser.add_argument("path", help="file path (relative to --root)")
    parser.add_argument("--root", default=os.getcwd(), help="project root (sandbox boundary)")
    parser.add_argument("--mode", choices=list(ReadTool.MODES), default="slice", help="read mode")
    parser.add_argument("--offset", type=int, default=None, help="0-based line offset (slice mode)")
    parser.add_argument("--limit", type=int, default=None, help="maximum lines to return")
    parser.add_argument("--anchor-line", type=int, default=None, help="1-based anchor (indentation mode)")
    parser.add_argument("--max-levels", type=int, default=None, help="levels above the anchor (0 = unlimited)")
    parser.add_argument("--include-siblings", action="store_true", help="keep sibling blocks")
    parser.add_argument("--no-header", action="store_true", help="do not admit comment headers above the block")
    parser.add_argument("--max-lines", type=int, default=None, help="hard cap on block lines")
    parser.add_argument("--context-used", type=int, default=0,
                        help="tokens already used in the context window (budget mode)")
    parser.add_argument("--show-raw", action="store_true", help="print raw response JSON")
    return parser


def build_parameters(args: argparse.Namespace) -> Dict[str, Any]:
    """命令行参数 -> 工具参数（只传用户显式给出的项）"""
    params: Dict[str, Any] = {"path": args.path, "mode": args.mode}
    optional = {
        "offset": args.offset,
        "limit": args.limit,
        "anchor_line": args.anchor_line,
        "max_levels": args.max_levels,
        "max_lines": args.max_lines,
    }
    params.update({k: v for k, v in optional.items() if v is not None})
    if args.mode == "indentation":
        params["include_siblings"] = args.include_siblings
        params["include_header"] = not args.no_header
    return params


def render(console: Console, response: Dict[str, Any], show_raw: bool = False) -> None:
    status = response["status"]
    style = STATUS_STYLES.get(status, "bold")
    console.print(Panel(Text(response["text"]), title=status.upper(), border_style=style))

    content = response["data"].get("content")
    if content:
        console.print(content, highlight=False, markup=False)

    if show_raw:
        console.print(Syntax(json.dumps(response, ensure_ascii=False, indent=2), "json"))


def main(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    args = build_parser().parse_args(argv)
    console = console or Console()

    # 被读取项目自己的 .env 优先于当前目录
    load_env(args.root)
    config = Config.from_env()
    config.configure_logging()

    tool = ReadTool(
        project_root=args.root,
        config=config,
        context_usage=lambda: args.context_used,
    )
    response = json.loads(tool.run(build_parameters(args)))
    render(console, response, show_raw=args.show_raw)
    return 1 if response["status"] == "error" else 0


if __name__ == "__main__":
    sys.exit(main())
