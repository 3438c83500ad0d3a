"""配置管理"""

import logging
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel

from core.env import load_env
from core.read_engine.budget_reader import DEFAULT_MEASURE_TIMEOUT, FILE_READ_BUDGET_PERCENT
from core.read_engine.models import DEFAULT_CHUNK_LINES, DEFAULT_LINE_LIMIT, MAX_LINE_LENGTH
from core.read_engine.token_counter import DEFAULT_ENCODING

load_env()


class Config(BaseModel):
    """读取引擎配置类"""

    # 系统配置
    debug: bool = False
    log_level: str = "INFO"

    # 上下文预算配置
    context_window: int = 128000  # 默认 128K tokens
    max_output_tokens: int = 8192
    file_read_budget_percent: float = FILE_READ_BUDGET_PERCENT  # 60% 给文件，其余留给响应

    # 读取配置
    read_default_limit: int = DEFAULT_LINE_LIMIT
    read_max_line_length: int = MAX_LINE_LENGTH
    read_chunk_lines: int = DEFAULT_CHUNK_LINES
    read_measure_timeout: Optional[float] = DEFAULT_MEASURE_TIMEOUT  # 单次计数等待上限（秒）

    # tiktoken 编码名
    tokenizer_encoding: str = DEFAULT_ENCODING

    @classmethod
    def from_env(cls) -> "Config":
        """从环境变量创建配置"""
        timeout_raw = os.getenv("READ_MEASURE_TIMEOUT", str(DEFAULT_MEASURE_TIMEOUT))
        return cls(
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            context_window=int(os.getenv("CONTEXT_WINDOW", "128000")),
            max_output_tokens=int(os.getenv("MAX_OUTPUT_TOKENS", "8192")),
            file_read_budget_percent=float(
                os.getenv("FILE_READ_BUDGET_PERCENT", str(FILE_READ_BUDGET_PERCENT))
            ),
            read_default_limit=int(os.getenv("READ_DEFAULT_LIMIT", str(DEFAULT_LINE_LIMIT))),
            read_max_line_length=int(os.getenv("READ_MAX_LINE_LENGTH", str(MAX_LINE_LENGTH))),
            read_chunk_lines=int(os.getenv("READ_CHUNK_LINES", str(DEFAULT_CHUNK_LINES))),
            # 0 或负数表示不设等待上限
            read_measure_timeout=float(timeout_raw) if float(timeout_raw) > 0 else None,
            tokenizer_encoding=os.getenv("TOKENIZER_ENCODING", DEFAULT_ENCODING),
        )

    def configure_logging(self) -> None:
        """按配置初始化根日志级别（debug=True 时强制 DEBUG）"""
        level = logging.DEBUG if self.debug else getattr(logging, self.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return self.model_dump()
