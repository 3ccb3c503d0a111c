from __future__ import annotations
from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from hubapi.enums import SubmissionStatus

MAX_TEAM_MEMBERS = 10


class SubmissionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=5000)
    team_member_ids: list[UUID] = Field(default_factory=list, max_length=MAX_TEAM_MEMBERS)

    @field_validator("team_member_ids")
    @classmethod
    def unique_members(cls, v: list[UUID]):
        if len(set(v)) != len(v):
            raise ValueError("Duplicate team member ids are not allowed")
        return v


class SubmissionReview(BaseModel):
    status: SubmissionStatus | None = None
    # Admins set the displayed total; the difference to the counted votes is stored as adjustment
    vote_count: int | None = Field(default=None, ge=0)


class SubmissionPublic(BaseModel):
    id: UUID
    event_id: UUID
    leader_id: UUID
    team_member_ids: list[UUID] = Field(default_factory=list)
    title: str
    description: str | None = None
    status: SubmissionStatus
    vote_count: int
    created_at: datetime


class SubmissionListing(BaseModel):
    submissions: list[SubmissionPublic]
    total: int
    user_votes: list[UUID] = Field(default_factory=list)
    remaining_votes: int | None = None
