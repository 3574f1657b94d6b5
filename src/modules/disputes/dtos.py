"""Dispute DTOs for the Service Layer (Pydantic v2, immutable)."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.disputes.constants import (
    REASON_MAX_LENGTH,
    TEXT_MAX_LENGTH,
    DisputeType,
    Resolution,
    Ruling,
)


class OpenDisputeDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    dispute_type: DisputeType
    reason: str = Field(max_length=REASON_MAX_LENGTH)
    proof_images: List[str] = Field(default_factory=list)
    proof_description: str = Field(default="", max_length=TEXT_MAX_LENGTH)
    seller_id: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def reason_must_be_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Dispute reason is required.")
        return v


class RespondDisputeDTO(BaseModel):
    """Seller evidence (image/document URLs) and proposal."""

    model_config = ConfigDict(frozen=True)

    evidence: List[str]
    proposal: str = Field(max_length=TEXT_MAX_LENGTH)

    @field_validator("evidence")
    @classmethod
    def evidence_must_not_be_empty(cls, v: List[str]) -> List[str]:
        v = [url.strip() for url in v if url and url.strip()]
        if not v:
            raise ValueError("Evidence (list of image URLs) is required.")
        return v

    @field_validator("proposal")
    @classmethod
    def proposal_must_be_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Proposal is required.")
        return v


class ResolveDisputeDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Resolution


class RuleDisputeDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: Ruling
    notes: str = Field(default="", max_length=TEXT_MAX_LENGTH)
