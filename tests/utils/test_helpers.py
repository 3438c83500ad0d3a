"""测试辅助工具

提供测试所需的临时项目创建、响应解析、样例源码与计数器等复用函数。
"""

import json
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class TempProject:
    """临时测试项目"""
    root: Path

    def __post_init__(self):
        self.root = Path(self.root)

    def path(self, *parts: str) -> Path:
        """获取项目内路径"""
        return self.root.joinpath(*parts)

    def create_file(self, rel_path: str, content: str = "") -> Path:
        """创建文件（按原样写入，不做换行转换）"""
        file_path = self.path(rel_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        return file_path

    def create_bytes(self, rel_path: str, content: bytes) -> Path:
        file_path = self.path(rel_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content)
        return file_path

    def create_dir(self, rel_path: str) -> Path:
        dir_path = self.path(rel_path)
        dir_path.mkdir(parents=True, exist_ok=True)
        return dir_path

    def cleanup(self):
        """清理临时目录"""
        if self.root.exists():
            shutil.rmtree(self.root)


@contextmanager
def create_temp_project(structure: Optional[Dict[str, Any]] = None):
    """
    创建临时测试项目（上下文管理器）

    Args:
        structure: 项目结构字典，"dir/" 结尾表示空目录，默认为 DEFAULT_PROJECT_STRUCTURE

    Example:
        with create_temp_project({"src/main.py": "..."}) as project:
            tool = ReadTool(project_root=project.root)
            response = tool.run({"path": "src/main.py"})
    """
    temp_dir = Path(tempfile.mkdtemp(prefix="test_project_"))
    project = TempProject(root=temp_dir)

    try:
        if structure is None:
            structure = DEFAULT_PROJECT_STRUCTURE

        for path, content in structure.items():
            if path.endswith("/"):
                project.create_dir(path.rstrip("/"))
            else:
                project.create_file(path, content or "")

        yield project
    finally:
        project.cleanup()


def numbered_lines(count: int, template: str = "line {}") -> List[str]:
    """生成 ["line 1", "line 2", ...]"""
    return [template.format(i) for i in range(1, count + 1)]


class CountingCounter:
    """确定性计数器：按空白切分计数，并记录调用次数与每次的文本"""

    def __init__(self):
        self.calls: List[str] = []

    def __call__(self, text: str) -> int:
        self.calls.append(text)
        return len(text.split())


# =============================================================================
# 样例源码
# =============================================================================

PYTHON_CODE = '''#!/usr/bin/env python3
"""Module docstring."""
import os
import sys
from typing import List

class Calculator:
    """A simple calculator class."""

    def __init__(self, value: int = 0):
        self.value = value

    def add(self, n: int) -> int:
        """Add a number."""
        self.value += n
        return self.value

    def subtract(self, n: int) -> int:
        """Subtract a number."""
        self.value -= n
        return self.value

    def reset(self):
        """Reset to zero."""
        self.value = 0

def main():
    calc = Calculator()
    calc.add(5)
    print(calc.value)

if __name__ == "__main__":
    main()
'''

TYPESCRIPT_CODE = '''import { something } from "./module"
import type { SomeType } from "./types"

// Constants
const MAX_VALUE = 100

interface Config {
    name: string
    value: number
}

class Handler {
    private config: Config

    constructor(config: Config) {
        this.config = config
    }

    process(input: string): string {
        // Process the input
        const result = input.toUpperCase()
        if (result.length > MAX_VALUE) {
            return result.slice(0, MAX_VALUE)
        }
        return result
    }

    validate(data: unknown): boolean {
        if (typeof data !== "string") {
            return false
        }
        return data.length > 0
    }
}

export function createHandler(config: Config): Handler {
    return new Handler(config)
}
'''

SIMPLE_CODE = '''function outer() {
    function inner() {
        console.log("hello")
    }
    inner()
}
'''

CODE_WITH_BLANKS = '''class Example:
    def method_one(self):
        x = 1

        y = 2

        return x + y

    def method_two(self):
        return 42
'''


DEFAULT_PROJECT_STRUCTURE = {
    "src/": None,
    "src/calculator.py": PYTHON_CODE,
    "src/handler.ts": TYPESCRIPT_CODE,
    "README.md": "# 测试项目\n\n用于读取工具测试的临时项目。\n",
}


def parse_response(response_str: str) -> Dict[str, Any]:
    """
    解析工具响应 JSON

    Raises:
        ValueError: JSON 解析失败
    """
    try:
        return json.loads(response_str)
    except json.JSONDecodeError as e:
        raise ValueError(f"响应不是有效的 JSON: {e}")
