"""Certification repository for phaser.

Handles persistence of certifications and their phase configuration.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from phaser.domain import Certification, CertificationId, Phase, PhaseConfig

from .base import BaseRepository


class CertificationRepository(BaseRepository):
    """Repository for certifications.

    Phase configs are stored as a JSON array of
    ``{"phase": ..., "duration_seconds": ...}`` objects.
    """

    # --- CRUD ---

    async def get_certification(self, cert_id: CertificationId) -> Certification | None:
        """Get a certification by id.

        Returns:
            Certification if found, None otherwise
        """
        row = await self.db.fetch_one(
            "SELECT * FROM certifications WHERE id = ?",
            (str(cert_id),),
        )
        if row is None:
            return None

        return Certification(
            id=CertificationId(row["id"]),
            name=row["name"],
            phase=self._decode_phase(row["phase"]),
            next_phase_transition=self._decode_datetime(row["next_phase_transition"]),
            use_rolling_phases=bool(row["use_rolling_phases"]),
            signed=bool(row["signed"]),
            phase_configs=self._json_to_phase_configs(row["phase_configs"]),
        )

    async def save_certification(self, cert: Certification) -> None:
        """Insert or update a certification. Does not commit."""
        await self.db.execute(
            """
            INSERT INTO certifications (
                id, name, phase, next_phase_transition,
                use_rolling_phases, signed, phase_configs
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                phase = excluded.phase,
                next_phase_transition = excluded.next_phase_transition,
                use_rolling_phases = excluded.use_rolling_phases,
                signed = excluded.signed,
                phase_configs = excluded.phase_configs
            """,
            (
                str(cert.id),
                cert.name,
                self._encode_phase(cert.phase),
                self._encode_datetime(cert.next_phase_transition),
                int(cert.use_rolling_phases),
                int(cert.signed),
                self._phase_configs_to_json(cert.phase_configs),
            ),
        )

    async def delete_certification(self, cert_id: CertificationId) -> None:
        """Delete a certification. Its items are removed by cascade."""
        await self.db.execute(
            "DELETE FROM certifications WHERE id = ?",
            (str(cert_id),),
        )

    # --- Due Queries ---

    async def get_due_ids(self, now: datetime) -> list[CertificationId]:
        """Ids of certifications whose next transition is before ``now``."""
        ids = await self.db.fetch_column(
            """
            SELECT id FROM certifications
            WHERE next_phase_transition IS NOT NULL AND next_phase_transition < ?
            ORDER BY id
            """,
            (self._encode_datetime(now),),
        )
        return [CertificationId(i) for i in ids]

    async def count_due(self, now: datetime) -> int:
        return await self.db.fetch_scalar(
            """
            SELECT COUNT(*) FROM certifications
            WHERE next_phase_transition IS NOT NULL AND next_phase_transition < ?
            """,
            (self._encode_datetime(now),),
        )

    async def count_by_phase(self) -> dict[Phase | None, int]:
        """Number of certifications in each phase (None = not started)."""
        rows = await self.db.fetch_all(
            "SELECT phase, COUNT(*) AS n FROM certifications GROUP BY phase"
        )
        return {self._decode_phase(row["phase"]): int(row["n"]) for row in rows}

    # --- Phase Config Helpers ---

    def _phase_configs_to_json(self, configs: tuple[PhaseConfig, ...]) -> str:
        return self._encode_json([
            {
                "phase": config.phase.value,
                "duration_seconds": (
                    config.duration.total_seconds() if config.duration is not None else None
                ),
            }
            for config in configs
        ])

    def _json_to_phase_configs(self, s: str) -> tuple[PhaseConfig, ...]:
        values = self._decode_json(s) or []
        return tuple(
            PhaseConfig(
                phase=Phase(v["phase"]),
                duration=(
                    timedelta(seconds=v["duration_seconds"])
                    if v.get("duration_seconds") is not None
                    else None
                ),
            )
            for v in values
        )
