from __future__ import annotations
from datetime import datetime
from uuid import UUID
import structlog
from sqlalchemy import select, func, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hubapi.enums import RegistrationStatus
from hubapi.errors import (
    DomainError, EventNotFound, SubmissionNotFound,
    VotingClosed, VotingNotEnabled, RegistrationRequired,
    SelfVoteForbidden, QuotaExhausted, AlreadyVoted, NotVoted,
)
from hubapi.models.event import Event, EventRegistration
from hubapi.models.submission import Submission, SubmissionMember
from hubapi.models.vote import Vote
from hubapi.schemas.event import VotingConfig
from hubapi.schemas.voting import VoteResult, VotingStats, TopSubmission
from hubapi.services.clock import utcnow, as_utc

log = structlog.get_logger()

ACTIVE_REGISTRATION_STATUSES = tuple(s.value for s in RegistrationStatus if s.is_active)
TOP_SUBMISSIONS = 10

# ---------- policy ----------

def voting_config_for(event: Event) -> VotingConfig:
    return VotingConfig.model_validate(event.voting_config_json or {})

def voting_window_open(event: Event, now: datetime) -> bool:
    if not event.voting_open:
        return False
    if event.voting_starts_at and now < as_utc(event.voting_starts_at):
        return False
    if event.voting_ends_at and now > as_utc(event.voting_ends_at):
        return False
    return True

# ---------- reads ----------

async def count_user_votes(session: AsyncSession, user_id: UUID, event_id: UUID) -> int:
    total = await session.scalar(
        select(func.count()).select_from(Vote).where(Vote.user_id == user_id, Vote.event_id == event_id)
    )
    return int(total or 0)

async def has_active_registration(session: AsyncSession, event_id: UUID, user_id: UUID) -> bool:
    found = await session.scalar(
        select(exists().where(
            EventRegistration.event_id == event_id,
            EventRegistration.user_id == user_id,
            EventRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES),
        ))
    )
    return bool(found)

async def is_team_member(session: AsyncSession, submission: Submission, user_id: UUID) -> bool:
    if submission.leader_id == user_id:
        return True
    found = await session.scalar(
        select(exists().where(SubmissionMember.submission_id == submission.id, SubmissionMember.user_id == user_id))
    )
    return bool(found)

async def submission_vote_count(session: AsyncSession, submission: Submission) -> int:
    counted = await session.scalar(
        select(func.count()).select_from(Vote).where(Vote.submission_id == submission.id)
    )
    return max(0, int(submission.base_vote_count or 0) + int(submission.manual_vote_adjustment or 0) + int(counted or 0))

async def vote_counts_for(session: AsyncSession, submissions: list[Submission]) -> dict[UUID, int]:
    """Derived vote count per submission with a single grouped query."""
    if not submissions:
        return {}
    rows = (await session.execute(
        select(Vote.submission_id, func.count())
        .where(Vote.submission_id.in_([s.id for s in submissions]))
        .group_by(Vote.submission_id)
    )).all()
    counted = {sid: int(n) for (sid, n) in rows}
    return {
        s.id: max(0, int(s.base_vote_count or 0) + int(s.manual_vote_adjustment or 0) + counted.get(s.id, 0))
        for s in submissions
    }

async def voted_submission_ids(session: AsyncSession, user_id: UUID, event_id: UUID) -> list[UUID]:
    rows = (await session.execute(
        select(Vote.submission_id).where(Vote.user_id == user_id, Vote.event_id == event_id)
    )).scalars().all()
    return list(rows)

async def get_remaining_votes(session: AsyncSession, user_id: UUID, event_id: UUID) -> int | None:
    event = await session.get(Event, event_id)
    if not event:
        raise EventNotFound()
    config = voting_config_for(event)
    if config.is_unlimited:
        return None
    return config.remaining(await count_user_votes(session, user_id, event.id))

# ---------- rule checks ----------

async def _load_target(session: AsyncSession, submission_id: UUID, event_id: UUID) -> tuple[Submission, Event]:
    submission = await session.get(Submission, submission_id)
    if not submission or submission.event_id != event_id:
        raise SubmissionNotFound()
    event = await session.get(Event, event_id)
    if not event:
        raise EventNotFound()
    return submission, event

async def _check_eligibility(session: AsyncSession, event: Event, config: VotingConfig, user_id: UUID, now: datetime) -> None:
    if not voting_window_open(event, now):
        raise VotingClosed()
    if not config.allow_public_voting:
        raise VotingNotEnabled()
    if config.scope.requires_registration and not await has_active_registration(session, event.id, user_id):
        raise RegistrationRequired()

async def _find_vote(session: AsyncSession, user_id: UUID, submission_id: UUID) -> Vote | None:
    return await session.scalar(
        select(Vote).where(Vote.user_id == user_id, Vote.submission_id == submission_id)
    )

# ---------- writes ----------

async def cast_vote(
    session: AsyncSession,
    *,
    user_id: UUID,
    submission_id: UUID,
    event_id: UUID,
    now: datetime | None = None,
) -> VoteResult:
    try:
        result = await _cast(session, user_id, submission_id, event_id, now or utcnow())
    except DomainError as exc:
        log.info("vote_rejected", reason=str(exc.kind), user_id=str(user_id), submission_id=str(submission_id))
        raise
    log.info("vote_cast", user_id=str(user_id), submission_id=str(submission_id), event_id=str(event_id),
             remaining_votes=result.remaining_votes)
    return result

async def _cast(session: AsyncSession, user_id: UUID, submission_id: UUID, event_id: UUID, now: datetime) -> VoteResult:
    submission, event = await _load_target(session, submission_id, event_id)
    config = voting_config_for(event)

    await _check_eligibility(session, event, config, user_id, now)
    if await is_team_member(session, submission, user_id):
        raise SelfVoteForbidden()

    # Pre-checks are a fast path; the unique constraint decides double votes
    if await _find_vote(session, user_id, submission.id):
        raise AlreadyVoted()
    if not config.is_unlimited and await count_user_votes(session, user_id, event.id) >= config.quota:
        raise QuotaExhausted(f"You have used all available votes ({config.quota} per person)")

    session.add(Vote(user_id=user_id, submission_id=submission.id, event_id=event.id))
    try:
        await session.flush()
    except IntegrityError:
        # a concurrent request for the same (user, submission) won
        await session.rollback()
        raise AlreadyVoted()

    # Best effort: under READ COMMITTED two concurrent inserts each see only their own row
    used = await count_user_votes(session, user_id, event.id)
    if not config.is_unlimited and used > config.quota:
        await session.rollback()
        raise QuotaExhausted(f"You have used all available votes ({config.quota} per person)")

    await session.commit()
    return VoteResult(
        remaining_votes=config.remaining(used),
        vote_count=await submission_vote_count(session, submission),
    )

async def revoke_vote(
    session: AsyncSession,
    *,
    user_id: UUID,
    submission_id: UUID,
    event_id: UUID,
    now: datetime | None = None,
) -> VoteResult:
    submission, event = await _load_target(session, submission_id, event_id)
    config = voting_config_for(event)

    existing = await _find_vote(session, user_id, submission.id)
    if not existing:
        log.info("vote_rejected", reason=str(NotVoted.kind), user_id=str(user_id), submission_id=str(submission_id))
        raise NotVoted()
    try:
        await _check_eligibility(session, event, config, user_id, now or utcnow())
    except DomainError as exc:
        log.info("vote_rejected", reason=str(exc.kind), user_id=str(user_id), submission_id=str(submission_id))
        raise

    await session.delete(existing)
    await session.commit()

    used = await count_user_votes(session, user_id, event.id)
    log.info("vote_revoked", user_id=str(user_id), submission_id=str(submission_id), event_id=str(event_id))
    return VoteResult(
        remaining_votes=config.remaining(used),
        vote_count=await submission_vote_count(session, submission),
    )

async def override_vote_count(session: AsyncSession, submission: Submission, target: int) -> None:
    """Admin sets the displayed total; stored as the difference to base + counted votes."""
    counted = await session.scalar(
        select(func.count()).select_from(Vote).where(Vote.submission_id == submission.id)
    )
    submission.manual_vote_adjustment = max(0, target) - int(submission.base_vote_count or 0) - int(counted or 0)

# ---------- stats ----------

async def voting_stats(session: AsyncSession, event_id: UUID) -> VotingStats:
    event = await session.get(Event, event_id)
    if not event:
        raise EventNotFound()

    total_votes = await session.scalar(
        select(func.count()).select_from(Vote).where(Vote.event_id == event.id)
    ) or 0
    total_participants = await session.scalar(
        select(func.count()).select_from(EventRegistration)
        .where(EventRegistration.event_id == event.id)
        .where(EventRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES))
    ) or 0
    unique_voters = await session.scalar(
        select(func.count(func.distinct(Vote.user_id))).where(Vote.event_id == event.id)
    ) or 0

    submissions = (await session.execute(
        select(Submission).where(Submission.event_id == event.id)
    )).scalars().all()
    counts = await vote_counts_for(session, list(submissions))
    ranked = sorted(submissions, key=lambda s: (-counts[s.id], as_utc(s.created_at)))[:TOP_SUBMISSIONS]

    return VotingStats(
        event_id=event.id,
        total_votes=int(total_votes),
        total_participants=int(total_participants),
        unique_voters=int(unique_voters),
        top_submissions=[
            TopSubmission(id=s.id, title=s.title, vote_count=counts[s.id], rank=i + 1)
            for i, s in enumerate(ranked)
        ],
    )
