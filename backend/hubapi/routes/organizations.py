from __future__ import annotations
import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from hubapi.auth_deps import get_current_user
from hubapi.db import get_session
from hubapi.enums import MemberRole
from hubapi.models.organization import Member, Organization
from hubapi.schemas.invitation import OrganizationCreate, OrganizationPublic, MemberPublic
from hubapi.services.invite_code import generate_slug
from hubapi.services.membership import get_membership, get_organization_or_404
from hubapi.errors import NotAMember

router = APIRouter(prefix="/organizations", tags=["organizations"])
log = structlog.get_logger()

def to_public(org: Organization) -> OrganizationPublic:
    return OrganizationPublic(id=org.id, name=org.name, slug=org.slug, created_at=org.created_at)

@router.post("", response_model=OrganizationPublic, status_code=201)
async def create_organization(
    payload: OrganizationCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    user_id = user.id
    # Retry on slug collision only when we picked the slug
    for _ in range(1 if payload.slug else 5):
        org_id = uuid.uuid4()
        slug = payload.slug or generate_slug()
        org = Organization(id=org_id, name=payload.name, slug=slug)
        session.add(org)
        try:
            await session.flush()
            session.add(Member(organization_id=org_id, user_id=user_id, role=MemberRole.OWNER.value))
            await session.commit()
        except IntegrityError:
            await session.rollback()
            continue
        await session.refresh(org)
        log.info("organization_created", organization_id=str(org_id), owner_id=str(user_id))
        return to_public(org)
    raise HTTPException(status_code=409, detail="Organization slug already taken")

@router.get("/{organization_id}", response_model=OrganizationPublic)
async def get_organization(
    organization_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    return to_public(await get_organization_or_404(session, organization_id))

@router.get("/{organization_id}/members", response_model=list[MemberPublic])
async def list_members(
    organization_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    await get_organization_or_404(session, organization_id)
    if not await get_membership(session, organization_id, user.id):
        raise NotAMember("Only organization members can see the member list")
    rows = (await session.execute(
        select(Member).where(Member.organization_id == organization_id).order_by(Member.joined_at)
    )).scalars().all()
    return [
        MemberPublic(id=m.id, organization_id=m.organization_id, user_id=m.user_id, role=m.role, joined_at=m.joined_at)
        for m in rows
    ]
