"""Certification item repository for phaser."""

from __future__ import annotations

from datetime import datetime

from phaser.domain import CertificationId, CertificationItem, EntityId, ItemId

from .base import BaseRepository


class ItemRepository(BaseRepository):
    """Repository for certification items."""

    async def get_item(self, item_id: ItemId) -> CertificationItem | None:
        """Get an item by id.

        Returns:
            Item if found, None otherwise
        """
        row = await self.db.fetch_one(
            "SELECT * FROM certification_items WHERE id = ?",
            (str(item_id),),
        )
        if row is None:
            return None

        return CertificationItem(
            id=ItemId(row["id"]),
            owner_id=CertificationId(row["owner_id"]),
            entity_id=EntityId(row["entity_id"]) if row["entity_id"] is not None else None,
            phase=self._decode_phase(row["phase"]),
            next_phase_transition=self._decode_datetime(row["next_phase_transition"]),
            needs_refresh=bool(row["needs_refresh"]),
        )

    async def save_item(self, item: CertificationItem) -> None:
        """Insert or update an item. Does not commit."""
        await self.db.execute(
            """
            INSERT INTO certification_items (
                id, owner_id, entity_id, phase, next_phase_transition, needs_refresh
            )
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                owner_id = excluded.owner_id,
                entity_id = excluded.entity_id,
                phase = excluded.phase,
                next_phase_transition = excluded.next_phase_transition,
                needs_refresh = excluded.needs_refresh
            """,
            (
                str(item.id),
                str(item.owner_id),
                str(item.entity_id) if item.entity_id is not None else None,
                self._encode_phase(item.phase),
                self._encode_datetime(item.next_phase_transition),
                int(item.needs_refresh),
            ),
        )

    async def get_item_ids(
        self,
        cert_id: CertificationId,
        only_needing_refresh: bool = False,
        entity_id: EntityId | None = None,
    ) -> list[ItemId]:
        """Ids of a certification's items, optionally filtered.

        Args:
            cert_id: Owning certification
            only_needing_refresh: Only items flagged ``needs_refresh``
            entity_id: Only items of this reviewed identity
        """
        sql = "SELECT id FROM certification_items WHERE owner_id = ?"
        params: list[str] = [str(cert_id)]
        if only_needing_refresh:
            sql += " AND needs_refresh = 1"
        if entity_id is not None:
            sql += " AND entity_id = ?"
            params.append(str(entity_id))
        sql += " ORDER BY id"

        return [ItemId(i) for i in await self.db.fetch_column(sql, params)]

    # --- Due Queries ---

    async def get_due_ids(self, now: datetime) -> list[ItemId]:
        """Ids of due items ordered by owning certification, then item id.

        Grouping by owner depends on this order.
        """
        ids = await self.db.fetch_column(
            """
            SELECT id FROM certification_items
            WHERE next_phase_transition IS NOT NULL AND next_phase_transition < ?
            ORDER BY owner_id, id
            """,
            (self._encode_datetime(now),),
        )
        return [ItemId(i) for i in ids]

    async def count_due(self, now: datetime) -> int:
        return await self.db.fetch_scalar(
            """
            SELECT COUNT(*) FROM certification_items
            WHERE next_phase_transition IS NOT NULL AND next_phase_transition < ?
            """,
            (self._encode_datetime(now),),
        )
