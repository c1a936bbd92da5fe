"""Models for analysis outcomes."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

type SuppressedReason = Literal["timeout", "transport", "multistep"]


@dataclass(frozen=True, kw_only=True)
class AssembledResult:
    """Everything collected for one tested URL."""

    data: dict[str, Any]
    request_log: dict[str, Any] | None = None
    traces: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class Completed:
    """The test ran and its artifacts were collected."""

    url: str
    result: AssembledResult


@dataclass(frozen=True, kw_only=True)
class Suppressed:
    """The test produced no result, without this being a fault."""

    url: str
    reason: SuppressedReason
    message: str | None = None


type Outcome = Completed | Suppressed
