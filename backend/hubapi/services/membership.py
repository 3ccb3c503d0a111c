from __future__ import annotations
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from hubapi.enums import MemberRole
from hubapi.errors import Forbidden, OrganizationNotFound
from hubapi.models.event import Event
from hubapi.models.organization import Member, Organization


async def get_membership(session: AsyncSession, organization_id: UUID, user_id: UUID) -> Member | None:
    return await session.scalar(
        select(Member).where(Member.organization_id == organization_id, Member.user_id == user_id)
    )

def is_admin_member(member: Member | None) -> bool:
    return member is not None and MemberRole(member.role).is_admin

async def get_organization_or_404(session: AsyncSession, organization_id: UUID) -> Organization:
    org = await session.get(Organization, organization_id)
    if not org:
        raise OrganizationNotFound()
    return org

async def require_org_admin(session: AsyncSession, organization_id: UUID, user_id: UUID) -> Member:
    await get_organization_or_404(session, organization_id)
    member = await get_membership(session, organization_id, user_id)
    if not is_admin_member(member):
        raise Forbidden("Organization admin permission required")
    return member

async def can_manage_event(session: AsyncSession, event: Event, user_id: UUID) -> bool:
    """Organizer, or an admin of the hosting organization."""
    if event.organizer_id == user_id:
        return True
    if event.organization_id is None:
        return False
    return is_admin_member(await get_membership(session, event.organization_id, user_id))
