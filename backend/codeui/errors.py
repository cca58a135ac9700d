"""Exception types raised by the editor core."""

from typing import Optional


class CodeUIError(Exception):
    """Base class for all editor errors"""


class ConfigurationError(CodeUIError):
    """Raised when a required setting (e.g. the OpenRouter key) is missing"""


class GenerationError(CodeUIError):
    """A session-fatal failure while sending or streaming a generation"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StyleApplicationError(CodeUIError):
    """Raised when a style batch targets an element missing from the document"""

    def __init__(self, selector: str):
        super().__init__(f"No element matches selector: {selector}")
        self.selector = selector
