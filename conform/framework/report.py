from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ComplianceReport:
    """Outcome of one policy evaluation; valid iff no errors were collected."""

    errors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        normalized: list[str] = []
        for idx, error in enumerate(self.errors):
            if not isinstance(error, str) or not error.strip():
                raise ValueError(f"ComplianceReport.errors[{idx}] must be a non-empty string")
            normalized.append(error.strip())
        object.__setattr__(self, "errors", tuple(normalized))

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass
class ReportBuilder:
    """Accumulates violations while a policy runs every one of its checks."""

    errors: list[str] = field(default_factory=list)

    def add(self, message: str) -> None:
        self.errors.append(message)

    def check(self, condition: bool, message: str) -> bool:
        if not condition:
            self.add(message)
        return condition

    def build(self) -> ComplianceReport:
        return ComplianceReport(errors=tuple(self.errors))
