#!/usr/bin/env python
"""
Error types for Task Master
Every failure the AI pipeline can surface derives from TaskMasterError
"""

from typing import Optional


class TaskMasterError(Exception):
    """Base class for all Task Master errors"""


class MissingCredential(TaskMasterError):
    """A provider API key is not configured"""

    def __init__(self, env_var: str, purpose: str = ""):
        self.env_var = env_var
        message = f"{env_var} environment variable is missing."
        if purpose:
            message += f" Set it to use {purpose}."
        super().__init__(message)


class TransportError(TaskMasterError):
    """A provider call failed at the network or API level"""

    RETRYABLE_KINDS = ("overloaded", "rate_limit", "timeout", "network")

    def __init__(self, message: str, kind: str = "unknown", original: Optional[BaseException] = None):
        super().__init__(message)
        self.kind = kind
        self.original = original

    @property
    def retryable(self) -> bool:
        return self.kind in self.RETRYABLE_KINDS


class NoJsonFound(TaskMasterError):
    """The model response contains no JSON value of the expected kind"""


class MalformedJson(TaskMasterError):
    """A JSON candidate was found but could not be decoded"""


class ShapeMismatch(TaskMasterError):
    """Decoded JSON is missing required fields or has the wrong type"""


class GenerationFailed(TaskMasterError):
    """All retry and repair budgets are exhausted; carries the user-facing message"""
