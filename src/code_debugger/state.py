"""
Session state and result types.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Any, Tuple


RUN_FAILURE_MESSAGE = "Runtime Error: Could not execute the code."


class ExecutionStatus(str, Enum):
    """Terminal status shown for the last Run/Repair."""

    IDLE = "idle"
    SUCCESS = "success"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Error classification reported by the execution service."""

    NONE = "NONE"
    RUNTIME = "RUNTIME"
    SYNTAX = "SYNTAX"
    TIMEOUT = "TIMEOUT"
    TRANSPORT = "TRANSPORT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ErrorKind":
        """Map service text onto a known kind; anything unrecognised is UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        normalized = value.strip().upper()
        if normalized.endswith("ERROR") and normalized != "ERROR":
            normalized = normalized[: -len("ERROR")].rstrip("_ ")
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN


class ChangeType(str, Enum):
    """Line-level change direction."""

    ADDED = "added"
    REMOVED = "removed"


class NotificationLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


class FailureKind(str, Enum):
    """Why a triggered action did not produce a successful result."""

    VALIDATION = "validation"
    TRANSPORT = "transport"
    SERVICE_REPORTED = "service_reported"


@dataclass
class Session:
    """Code shown to the user and the last text they authored themselves."""

    current_code: str = ""
    original_code: str = ""
    is_showing_repaired_code: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of one Run or Repair. Replaced as a whole, never merged."""

    output: str = ""
    status: ExecutionStatus = ExecutionStatus.IDLE
    error_kind: ErrorKind = ErrorKind.NONE
    stdout: str = ""
    stderr: str = ""
    latency_ms: Optional[int] = None

    @classmethod
    def idle(cls) -> "ExecutionOutcome":
        return cls()

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["error_kind"] = self.error_kind.value
        return data


@dataclass(frozen=True)
class Patch:
    """One line-level change made during a repair iteration."""

    iteration: int
    fix_method: str
    error_type: str
    change_type: ChangeType
    line_old: Optional[int]
    line_new: Optional[int]
    old_text: str = ""
    new_text: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        if self.iteration < 1:
            raise ValueError(f"Patch iteration must be >= 1, got {self.iteration}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Patch":
        """
        Create from the service's wire representation.

        Raises:
            ValueError/KeyError/TypeError: If the payload is malformed
        """
        return cls(
            iteration=int(data["iteration"]),
            fix_method=str(data.get("fix_method") or ""),
            error_type=str(data.get("error_type") or ""),
            change_type=ChangeType(str(data["change_type"]).lower()),
            line_old=_optional_int(data.get("line_old")),
            line_new=_optional_int(data.get("line_new")),
            old_text=str(data.get("old_text") or ""),
            new_text=str(data.get("new_text") or ""),
            reason=str(data.get("reason") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["change_type"] = self.change_type.value
        return data


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


@dataclass(frozen=True)
class RepairSession:
    """Everything one completed Repair call produced."""

    budget: int
    final_code: str
    patch_set: Tuple[Patch, ...] = field(default_factory=tuple)
    pre_repair_code: str = ""

    @property
    def patch_count(self) -> int:
        return len(self.patch_set)


@dataclass(frozen=True)
class Notification:
    """User-visible message (toast) produced by an orchestrator operation."""

    title: str
    description: str
    level: NotificationLevel = NotificationLevel.INFO


@dataclass(frozen=True)
class RepairAttempt:
    """What trigger_repair reports back to its caller."""

    accepted: bool
    failure: Optional[FailureKind] = None
    repair_session: Optional[RepairSession] = None
    notification: Optional[Notification] = None
    stale: bool = False

    @property
    def succeeded(self) -> bool:
        return self.accepted and self.failure is None
