"""Token 计数器

Token 计数作为可注入的能力而非硬依赖：任何 ``text -> int`` 或
``text -> Awaitable[int]`` 的可调用对象都可以作为计数器。
计数器允许失败，失败时由预算读取器回退到按字符数的保守估算。
"""

import logging
import math
import threading
from typing import Awaitable, Callable, Optional, Union

import tiktoken

logger = logging.getLogger(__name__)

# 计数器签名：同步或异步返回 token 数
TokenCounter = Callable[[str], Union[int, Awaitable[int]]]

DEFAULT_ENCODING = "cl100k_base"

# 保守估算：每 2 个字符算 1 个 token
FALLBACK_CHARS_PER_TOKEN = 2


def estimate_tokens_by_chars(text: str) -> int:
    """字符数回退估算：ceil(len / 2)"""
    return math.ceil(len(text) / FALLBACK_CHARS_PER_TOKEN)


class TiktokenCounter:
    """
    基于 tiktoken 的默认计数器

    编码在首次调用时加载并缓存；加载失败（如编码文件无法获取）时异常直接抛出，
    由调用方决定是否回退。失败同样被缓存，之后的调用立即重新抛出，不再重试加载。
    """

    def __init__(self, encoding_name: str = DEFAULT_ENCODING):
        self.encoding_name = encoding_name
        self._encoding: Optional["tiktoken.Encoding"] = None
        self._load_error: Optional[Exception] = None
        self._lock = threading.Lock()

    def _get_encoding(self) -> "tiktoken.Encoding":
        if self._encoding is None:
            with self._lock:
                if self._load_error is not None:
                    raise self._load_error
                if self._encoding is None:
                    try:
                        self._encoding = tiktoken.get_encoding(self.encoding_name)
                    except Exception as e:
                        logger.warning("Failed to load tiktoken encoding %s: %s", self.encoding_name, e)
                        self._load_error = e
                        raise
                    logger.debug("Loaded tiktoken encoding %s", self.encoding_name)
        return self._encoding

    def __call__(self, text: str) -> int:
        if not text:
            return 0
        return len(self._get_encoding().encode(text, disallowed_special=()))

    def __repr__(self) -> str:
        return f"TiktokenCounter(encoding={self.encoding_name})"
