"""Result type shared by command runners."""

from __future__ import annotations

from dataclasses import dataclass, asdict


@dataclass
class CommandResult:
    """Outcome of one shell command."""

    command: str
    success: bool
    output: str = ""
    error: str | None = None
    exit_code: int | None = None
    duration_ms: int = 0
    truncated: bool = False

    def to_dict(self) -> dict:
        d = asdict(self)
        if d["error"] is None:
            d.pop("error")
        if not d["truncated"]:
            d.pop("truncated")
        return d
