from __future__ import annotations
import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from hubapi.auth_deps import get_current_user
from hubapi.db import get_session
from hubapi.enums import ApplicationStatus
from hubapi.models.organization import OrganizationApplication
from hubapi.schemas.invitation import (
    AcceptResult, ApplicationPublic, InvitationCreate, InvitationIssued, InvitationPublic,
)
from hubapi.services import invitations as svc

router = APIRouter(tags=["invitations"])

def application_public(app: OrganizationApplication) -> ApplicationPublic:
    return ApplicationPublic(
        id=app.id, organization_id=app.organization_id, user_id=app.user_id,
        invitation_id=app.invitation_id, reason=app.reason, status=app.status,
        reviewed_by_id=app.reviewed_by_id, reviewed_at=app.reviewed_at, created_at=app.created_at,
    )

@router.post("/organizations/{organization_id}/invitations", response_model=InvitationIssued, status_code=201)
async def create_invitation(
    organization_id: uuid.UUID,
    payload: InvitationCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    return await svc.create_invitation(
        session, organization_id=organization_id, issuer_user_id=user.id, payload=payload,
    )

@router.get("/organizations/{organization_id}/invitations", response_model=list[InvitationPublic])
async def list_invitations(
    organization_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    return await svc.list_invitations(session, organization_id, user.id)

# Anyone holding the code may look at it; no auth so the landing page can render before sign-in
@router.get("/invitations/{code}", response_model=InvitationPublic)
async def get_invitation(code: str, session: AsyncSession = Depends(get_session)):
    inv = await svc.resolve_invitation(session, code)
    return await svc.to_public(session, inv)

@router.post("/invitations/{code}/accept", response_model=AcceptResult)
async def accept_invitation(code: str, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return await svc.accept_invitation(session, code, user)

@router.post("/invitations/{code}/reject", response_model=InvitationPublic)
async def reject_invitation(code: str, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    inv = await svc.reject_invitation(session, code, user)
    return await svc.to_public(session, inv)

@router.post("/invitations/{code}/cancel", response_model=InvitationPublic)
async def cancel_invitation(code: str, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    inv = await svc.cancel_invitation(session, code, user.id)
    return await svc.to_public(session, inv)

@router.get("/organizations/{organization_id}/applications", response_model=list[ApplicationPublic])
async def list_applications(
    organization_id: uuid.UUID,
    status: ApplicationStatus | None = None,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    rows = await svc.list_applications(session, organization_id, user.id, status.value if status else None)
    return [application_public(a) for a in rows]

@router.post("/organizations/{organization_id}/applications/{application_id}/approve", response_model=ApplicationPublic)
async def approve_application(
    organization_id: uuid.UUID,
    application_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    app = await svc.review_application(
        session, organization_id=organization_id, application_id=application_id, reviewer_id=user.id, approve=True,
    )
    return application_public(app)

@router.post("/organizations/{organization_id}/applications/{application_id}/reject", response_model=ApplicationPublic)
async def reject_application(
    organization_id: uuid.UUID,
    application_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    app = await svc.review_application(
        session, organization_id=organization_id, application_id=application_id, reviewer_id=user.id, approve=False,
    )
    return application_public(app)
