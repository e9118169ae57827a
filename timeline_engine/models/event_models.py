"""Payload models for timeline change notifications."""

from __future__ import annotations

from pydantic import BaseModel

from timeline_engine.models.timeline_models import Effect


class EffectEvent(BaseModel):
    """Payload of effectAdded / effectRemoved / effectUpdated.

    Exactly one of ``segment_id`` / ``track_id`` names the effect's owner.
    """
    segment_id: str | None = None
    track_id: str | None = None
    effect: Effect


class InOutPoints(BaseModel):
    in_point: float | None = None
    out_point: float | None = None
