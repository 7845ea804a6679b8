from dataclasses import dataclass


@dataclass(frozen=True)
class Notice:
    kind: str  # "success" | "error"
    message: str
    duration_ms: int = 1000
