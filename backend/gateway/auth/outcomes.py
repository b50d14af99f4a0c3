"""
Tagged result types shared by token verification and the remote order check.

A result is either a ``VerificationSuccess`` or a ``VerificationFailure``,
never an object with both fields populated.
"""
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class VerificationSuccess:
    payload: Any


@dataclass(frozen=True)
class VerificationFailure:
    message: str
    status_code: int = 401


VerificationOutcome = Union[VerificationSuccess, VerificationFailure]
