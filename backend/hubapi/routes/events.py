from __future__ import annotations
import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from hubapi.auth_deps import get_current_user
from hubapi.db import get_session
from hubapi.enums import RegistrationStatus
from hubapi.errors import EventNotFound, Forbidden
from hubapi.models.event import Event, EventRegistration
from hubapi.schemas.event import EventCreate, EventPublic, RegistrationPublic, VotingSettingsUpdate
from hubapi.schemas.voting import RemainingVotes, VotingStats
from hubapi.services.membership import can_manage_event, require_org_admin
from hubapi.services import voting
from hubapi.services.clock import as_utc

router = APIRouter(prefix="/events", tags=["events"])
log = structlog.get_logger()

def to_public(ev: Event) -> EventPublic:
    return EventPublic(
        id=ev.id, organization_id=ev.organization_id, organizer_id=ev.organizer_id,
        title=ev.title, description=ev.description,
        starts_at=ev.starts_at, ends_at=ev.ends_at,
        voting_open=ev.voting_open, voting_starts_at=ev.voting_starts_at, voting_ends_at=ev.voting_ends_at,
        voting=voting.voting_config_for(ev),
        created_at=ev.created_at,
    )

def registration_public(reg: EventRegistration) -> RegistrationPublic:
    return RegistrationPublic(id=reg.id, event_id=reg.event_id, user_id=reg.user_id, status=reg.status, created_at=reg.created_at)

async def get_event_or_404(session: AsyncSession, event_id: uuid.UUID) -> Event:
    ev = await session.get(Event, event_id)
    if not ev:
        raise EventNotFound()
    return ev

@router.post("", response_model=EventPublic, status_code=201)
async def create_event(
    payload: EventCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    if payload.organization_id:
        await require_org_admin(session, payload.organization_id, user.id)
    ev = Event(
        organization_id=payload.organization_id,
        organizer_id=user.id,
        title=payload.title,
        description=payload.description,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        voting_open=payload.voting_open,
        voting_starts_at=payload.voting_starts_at,
        voting_ends_at=payload.voting_ends_at,
        voting_config_json=payload.voting.model_dump(mode="json"),
    )
    session.add(ev)
    await session.commit()
    await session.refresh(ev)
    log.info("event_created", event_id=str(ev.id), organizer_id=str(user.id))
    return to_public(ev)

@router.get("/{event_id}", response_model=EventPublic)
async def get_event(event_id: uuid.UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return to_public(await get_event_or_404(session, event_id))

@router.patch("/{event_id}/voting", response_model=EventPublic)
async def update_voting_settings(
    event_id: uuid.UUID,
    payload: VotingSettingsUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    ev = await get_event_or_404(session, event_id)
    if not await can_manage_event(session, ev, user.id):
        raise Forbidden("Only the organizer or an organization admin can change voting settings")
    changes = payload.model_dump(exclude_unset=True)
    for field in ("voting_open", "voting_starts_at", "voting_ends_at"):
        if field in changes:
            setattr(ev, field, changes[field])
    if payload.voting is not None:
        ev.voting_config_json = payload.voting.model_dump(mode="json")
    if ev.voting_starts_at and ev.voting_ends_at and as_utc(ev.voting_ends_at) <= as_utc(ev.voting_starts_at):
        raise HTTPException(status_code=422, detail="voting_ends_at must be after voting_starts_at")
    await session.commit()
    log.info("voting_settings_updated", event_id=str(ev.id), voting_open=ev.voting_open)
    return to_public(ev)

@router.post("/{event_id}/registrations", response_model=RegistrationPublic, status_code=201)
async def register(event_id: uuid.UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    ev = await get_event_or_404(session, event_id)
    reg = await session.scalar(
        select(EventRegistration).where(EventRegistration.event_id == ev.id, EventRegistration.user_id == user.id)
    )
    if reg and RegistrationStatus(reg.status).is_active:
        raise HTTPException(status_code=409, detail="Already registered")
    if reg:
        reg.status = RegistrationStatus.APPROVED.value
    else:
        reg = EventRegistration(event_id=ev.id, user_id=user.id, status=RegistrationStatus.APPROVED.value)
        session.add(reg)
    await session.commit()
    await session.refresh(reg)
    return registration_public(reg)

@router.delete("/{event_id}/registrations", response_model=RegistrationPublic)
async def cancel_registration(event_id: uuid.UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    ev = await get_event_or_404(session, event_id)
    reg = await session.scalar(
        select(EventRegistration).where(EventRegistration.event_id == ev.id, EventRegistration.user_id == user.id)
    )
    if not reg or not RegistrationStatus(reg.status).is_active:
        raise HTTPException(status_code=404, detail="Not registered")
    reg.status = RegistrationStatus.CANCELLED.value
    await session.commit()
    return registration_public(reg)

@router.get("/{event_id}/votes/remaining", response_model=RemainingVotes)
async def remaining_votes(event_id: uuid.UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return RemainingVotes(remaining_votes=await voting.get_remaining_votes(session, user.id, event_id))

@router.get("/{event_id}/votes/stats", response_model=VotingStats)
async def vote_stats(event_id: uuid.UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return await voting.voting_stats(session, event_id)
