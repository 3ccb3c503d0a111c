from __future__ import annotations
import uuid
from fastapi import APIRouter, Depends, Response
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from hubapi.auth_deps import get_current_user
from hubapi.db import get_session
from hubapi.errors import EventNotFound, Forbidden, SubmissionNotFound, UserNotFound
from hubapi.models.event import Event
from hubapi.models.submission import Submission, SubmissionMember
from hubapi.models.user import User
from hubapi.models.vote import Vote
from hubapi.schemas.submission import SubmissionCreate, SubmissionListing, SubmissionPublic, SubmissionReview
from hubapi.schemas.voting import VoteResult
from hubapi.services.membership import can_manage_event
from hubapi.services import voting

router = APIRouter(prefix="/events/{event_id}/submissions", tags=["submissions"])
log = structlog.get_logger()

async def team_member_ids(session: AsyncSession, submission_id: uuid.UUID) -> list[uuid.UUID]:
    rows = (await session.execute(
        select(SubmissionMember.user_id).where(SubmissionMember.submission_id == submission_id)
    )).scalars().all()
    return list(rows)

async def hydrate_public(session: AsyncSession, s: Submission, vote_count: int | None = None) -> SubmissionPublic:
    if vote_count is None:
        vote_count = await voting.submission_vote_count(session, s)
    return SubmissionPublic(
        id=s.id, event_id=s.event_id, leader_id=s.leader_id,
        team_member_ids=await team_member_ids(session, s.id),
        title=s.title, description=s.description, status=s.status,
        vote_count=vote_count, created_at=s.created_at,
    )

async def _event(session: AsyncSession, event_id: uuid.UUID) -> Event:
    ev = await session.get(Event, event_id)
    if not ev:
        raise EventNotFound()
    return ev

async def _submission(session: AsyncSession, event_id: uuid.UUID, submission_id: uuid.UUID) -> Submission:
    s = await session.get(Submission, submission_id)
    if not s or s.event_id != event_id:
        raise SubmissionNotFound()
    return s

@router.post("", response_model=SubmissionPublic, status_code=201)
async def create_submission(
    event_id: uuid.UUID,
    payload: SubmissionCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    ev = await _event(session, event_id)
    member_ids = [uid for uid in payload.team_member_ids if uid != user.id]
    if member_ids:
        found = set((await session.execute(select(User.id).where(User.id.in_(member_ids)))).scalars().all())
        missing = [str(uid) for uid in member_ids if uid not in found]
        if missing:
            raise UserNotFound(f"Unknown team members: {', '.join(missing)}")

    s = Submission(id=uuid.uuid4(), event_id=ev.id, leader_id=user.id, title=payload.title, description=payload.description)
    session.add(s)
    await session.flush()
    for uid in member_ids:
        session.add(SubmissionMember(submission_id=s.id, user_id=uid))
    await session.commit()
    await session.refresh(s)
    log.info("submission_created", submission_id=str(s.id), event_id=str(ev.id), leader_id=str(user.id))
    return await hydrate_public(session, s)

@router.get("", response_model=SubmissionListing)
async def list_submissions(event_id: uuid.UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    ev = await _event(session, event_id)
    rows = list((await session.execute(
        select(Submission).where(Submission.event_id == ev.id).order_by(Submission.created_at)
    )).scalars().all())
    counts = await voting.vote_counts_for(session, rows)
    return SubmissionListing(
        submissions=[await hydrate_public(session, s, counts[s.id]) for s in rows],
        total=len(rows),
        user_votes=await voting.voted_submission_ids(session, user.id, ev.id),
        remaining_votes=await voting.get_remaining_votes(session, user.id, ev.id),
    )

@router.get("/{submission_id}", response_model=SubmissionPublic)
async def get_submission(
    event_id: uuid.UUID,
    submission_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    return await hydrate_public(session, await _submission(session, event_id, submission_id))

@router.patch("/{submission_id}", response_model=SubmissionPublic)
async def review_submission(
    event_id: uuid.UUID,
    submission_id: uuid.UUID,
    payload: SubmissionReview,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    ev = await _event(session, event_id)
    s = await _submission(session, ev.id, submission_id)
    if not await can_manage_event(session, ev, user.id):
        raise Forbidden("Only the organizer or an organization admin can review submissions")
    if payload.status is not None:
        s.status = payload.status.value
    if payload.vote_count is not None:
        await voting.override_vote_count(session, s, payload.vote_count)
    await session.commit()
    log.info("submission_reviewed", submission_id=str(s.id), status=s.status, vote_count=payload.vote_count)
    return await hydrate_public(session, s)

@router.delete("/{submission_id}", status_code=204)
async def delete_submission(
    event_id: uuid.UUID,
    submission_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    ev = await _event(session, event_id)
    s = await _submission(session, ev.id, submission_id)
    if not await can_manage_event(session, ev, user.id):
        raise Forbidden("Only the organizer or an organization admin can delete submissions")
    # Explicit so SQLite (no FK enforcement by default) behaves like Postgres cascades
    await session.execute(delete(Vote).where(Vote.submission_id == s.id))
    await session.execute(delete(SubmissionMember).where(SubmissionMember.submission_id == s.id))
    await session.delete(s)
    await session.commit()
    log.info("submission_deleted", submission_id=str(submission_id), by=str(user.id))
    return Response(status_code=204)

@router.post("/{submission_id}/vote", response_model=VoteResult)
async def vote(
    event_id: uuid.UUID,
    submission_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    return await voting.cast_vote(session, user_id=user.id, submission_id=submission_id, event_id=event_id)

@router.delete("/{submission_id}/vote", response_model=VoteResult)
async def unvote(
    event_id: uuid.UUID,
    submission_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    return await voting.revoke_vote(session, user_id=user.id, submission_id=submission_id, event_id=event_id)
