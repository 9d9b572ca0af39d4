"""Certification lock handle."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .types import CertificationId, LockOwner


class CertificationLock(BaseModel):
    """A held, named lock scoped to one certification.

    Returned by the store when acquisition succeeds and handed back to
    release it. Locks past ``expires_at`` may be taken over by another owner.
    """

    model_config = ConfigDict(frozen=True)

    certification_id: CertificationId
    owner: LockOwner
    acquired_at: datetime
    expires_at: datetime
