"""Pydantic models for the JSON snapshot envelope.

`digrams.utils.envelope.validate_envelope` validates exported snapshots
against these models before they are written out.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class SnapshotMetadataModel(BaseModel):
    source: str
    context: Optional[str] = None
    total: int = Field(ge=0)
    order: str
    threshold: int
    generated_at: str


class DigramRecordModel(BaseModel):
    predecessor: str
    event: str
    count: int = Field(gt=0)
    percentage: float = Field(ge=0.0, le=100.0)


class EnvelopeModel(BaseModel):
    metadata: SnapshotMetadataModel
    records: List[DigramRecordModel]
    status: Optional[str] = "SUCCESS"
    error: Optional[str] = None
