#!/usr/bin/env python3
"""Typed pipeline results.

Every pipeline stage returns a Result instead of raising, so the orchestrator
can stop at the first failure and report exactly which stage produced it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    CLASSIFICATION = "CLASSIFICATION"
    SPECIFICITY = "SPECIFICITY"
    VERSION_FORMAT = "VERSION_FORMAT"
    VERSION_INCREMENT = "VERSION_INCREMENT"
    COLLABORATOR = "COLLABORATOR"


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    details: List[str] = field(default_factory=list)

    def describe(self) -> str:
        lines = [f"[{self.kind.value}] {self.message}"]
        lines.extend(f"  - {d}" for d in self.details)
        return "\n".join(lines)


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    failure: Optional[Failure] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def err(cls, kind: FailureKind, message: str, details: Optional[List[str]] = None) -> "Result[T]":
        return cls(failure=Failure(kind=kind, message=message, details=list(details or [])))

    @property
    def is_ok(self) -> bool:
        return self.failure is None
