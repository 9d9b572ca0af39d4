"""Counters for one transition pass and the result reported when it ends."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

from phaser.domain import Phase, sort_phases


# Keys used when results are exported as a flat mapping
RET_CERTS_PHASED = "certifications_phased"
RET_CERT_ITEMS_PHASED = "certification_items_phased"


@dataclass
class PhaserStatistics:
    """Mutable counters updated while the scanner runs."""

    certifications_due: int = 0
    certifications_phased: int = 0
    certifications_locked_out: int = 0
    items_due: int = 0
    items_phased: int = 0
    items_locked_out: int = 0

    @property
    def anything_phased(self) -> bool:
        return self.certifications_phased > 0 or self.items_phased > 0


class PhaserRunResult(BaseModel):
    """Snapshot of a finished run."""

    model_config = ConfigDict(frozen=True)

    certifications_due: int
    certifications_phased: int
    certifications_locked_out: int
    items_due: int
    items_phased: int
    items_locked_out: int
    skipped_phases: tuple[Phase, ...] = ()
    terminated: bool = False

    @classmethod
    def from_statistics(
        cls,
        stats: PhaserStatistics,
        skipped: set[Phase] | None = None,
        terminated: bool = False,
    ) -> PhaserRunResult:
        return cls(
            certifications_due=stats.certifications_due,
            certifications_phased=stats.certifications_phased,
            certifications_locked_out=stats.certifications_locked_out,
            items_due=stats.items_due,
            items_phased=stats.items_phased,
            items_locked_out=stats.items_locked_out,
            skipped_phases=tuple(sort_phases(skipped or set())),
            terminated=terminated,
        )

    def as_results(self) -> dict[str, int]:
        """Flat mapping of the phased counters."""
        return {
            RET_CERTS_PHASED: self.certifications_phased,
            RET_CERT_ITEMS_PHASED: self.items_phased,
        }

    def trace(self) -> str:
        """Human-readable summary, one counter per line."""
        lines = [
            f"Certifications due: {self.certifications_due}",
            f"Certifications phased: {self.certifications_phased}",
            f"Certifications locked out: {self.certifications_locked_out}",
            f"Certification items due: {self.items_due}",
            f"Certification items phased: {self.items_phased}",
            f"Certification items locked out: {self.items_locked_out}",
        ]
        if self.skipped_phases:
            names = ", ".join(p.value for p in self.skipped_phases)
            lines.append(f"Skipped phases: {names}")
        if self.terminated:
            lines.append("Run terminated before completion")
        return "\n".join(lines)
