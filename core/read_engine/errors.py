"""Shared errors for the read engine."""

from __future__ import annotations


class ReadEngineError(Exception):
    """Typed error carrying a stable code for tool-level mapping."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = str(code or "INTERNAL_ERROR")
        self.message = str(message or "")


class BudgetReadTimeoutError(ReadEngineError):
    """A chunk measurement did not finish within the allowed wait."""

    def __init__(self, message: str, timeout_s: float):
        super().__init__("TIMEOUT", message)
        self.timeout_s = timeout_s
