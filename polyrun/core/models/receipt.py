"""
Receipt model — the outcome of running one command on one target.

Target.execute() raises on skips and failures; the runner catches those
and records them here so a multi-target run can be reported as a whole.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


ReceiptStatus = Literal["ok", "skipped", "failed", "canceled"]


class TargetReceipt(BaseModel):
    """Result of executing a command on a target."""

    target: str
    command: str
    status: ReceiptStatus = "ok"

    started_at: str = Field(default_factory=now_iso)
    ended_at: str = Field(default_factory=now_iso)
    duration_ms: int = 0

    error: str | None = None
    skip_reason: str | None = None
    detail: str = ""
    exit_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def canceled(self) -> bool:
        return self.status == "canceled"

    @classmethod
    def success(cls, target: str, command: str, **kwargs: Any) -> TargetReceipt:
        """Create a success receipt."""
        return cls(target=target, command=command, status="ok", **kwargs)

    @classmethod
    def failure(
        cls,
        target: str,
        command: str,
        error: str,
        **kwargs: Any,
    ) -> TargetReceipt:
        """Create a failure receipt."""
        return cls(target=target, command=command, status="failed", error=error, **kwargs)

    @classmethod
    def skip(
        cls,
        target: str,
        command: str,
        reason: str,
        detail: str = "",
        **kwargs: Any,
    ) -> TargetReceipt:
        """Create a skip receipt."""
        return cls(
            target=target,
            command=command,
            status="skipped",
            skip_reason=reason,
            detail=detail,
            **kwargs,
        )

    @classmethod
    def cancel(cls, target: str, command: str, error: str = "", **kwargs: Any) -> TargetReceipt:
        """Create a cancellation receipt."""
        return cls(
            target=target,
            command=command,
            status="canceled",
            error=error or "canceled",
            **kwargs,
        )
