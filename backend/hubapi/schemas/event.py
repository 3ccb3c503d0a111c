from __future__ import annotations
from pydantic import BaseModel, Field, model_validator
from uuid import UUID
from datetime import datetime
from hubapi.config import settings
from hubapi.enums import PublicVotingScope, RegistrationStatus, VoteQuotaMode


class VotingConfig(BaseModel):
    """Per-event public voting policy, stored as JSON on the event row."""
    allow_public_voting: bool = True
    scope: PublicVotingScope = PublicVotingScope.PARTICIPANTS
    mode: VoteQuotaMode = VoteQuotaMode.FIXED_QUOTA
    quota: int = Field(default_factory=lambda: settings.default_vote_quota, ge=1, le=100)

    @property
    def is_unlimited(self) -> bool:
        return self.mode is VoteQuotaMode.PER_PROJECT_LIKE

    def remaining(self, used: int) -> int | None:
        if self.is_unlimited:
            return None
        return max(0, self.quota - used)


class EventCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str | None = None
    organization_id: UUID | None = None
    starts_at: datetime
    ends_at: datetime
    voting_open: bool = False
    voting_starts_at: datetime | None = None
    voting_ends_at: datetime | None = None
    voting: VotingConfig = Field(default_factory=VotingConfig)

    @model_validator(mode="after")
    def check_ranges(self):
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        if self.voting_starts_at and self.voting_ends_at and self.voting_ends_at <= self.voting_starts_at:
            raise ValueError("voting_ends_at must be after voting_starts_at")
        return self


class VotingSettingsUpdate(BaseModel):
    voting_open: bool | None = None
    voting_starts_at: datetime | None = None
    voting_ends_at: datetime | None = None
    voting: VotingConfig | None = None


class EventPublic(BaseModel):
    id: UUID
    organization_id: UUID | None
    organizer_id: UUID
    title: str
    description: str | None
    starts_at: datetime
    ends_at: datetime
    voting_open: bool
    voting_starts_at: datetime | None
    voting_ends_at: datetime | None
    voting: VotingConfig
    created_at: datetime


class RegistrationPublic(BaseModel):
    id: UUID
    event_id: UUID
    user_id: UUID
    status: RegistrationStatus
    created_at: datetime
