from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID

class VoteResult(BaseModel):
    remaining_votes: int | None  # None = unlimited (PER_PROJECT_LIKE)
    vote_count: int

class RemainingVotes(BaseModel):
    remaining_votes: int | None

class TopSubmission(BaseModel):
    id: UUID
    title: str
    vote_count: int
    rank: int

class VotingStats(BaseModel):
    event_id: UUID
    total_votes: int
    total_participants: int
    unique_voters: int
    top_submissions: list[TopSubmission]
