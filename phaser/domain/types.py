"""Identifier types for the phaser domain."""

from __future__ import annotations

from typing import NewType

CertificationId = NewType("CertificationId", str)
ItemId = NewType("ItemId", str)
EntityId = NewType("EntityId", str)
LockOwner = NewType("LockOwner", str)
