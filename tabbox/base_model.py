"""
Shared Pydantic base models.

- StrictModel: immutable messages (live snapshots, events, commands, results)
- RecordModel: mutable durable records, edited in place by the reconciler
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Base model with strict validation settings."""

    model_config = ConfigDict(
        extra='forbid',  # Raise error on unexpected fields
        strict=True,  # Strict type validation
        frozen=True,  # Immutable (cannot modify after creation)
    )


class RecordModel(BaseModel):
    """Base model for persisted records (mutated in place during reconcile)."""

    model_config = ConfigDict(
        extra='forbid',
        strict=True,
        frozen=False,
    )
