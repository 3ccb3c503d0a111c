from __future__ import annotations
from pydantic import BaseModel, EmailStr, Field
from uuid import UUID
from datetime import datetime
from hubapi.enums import InvitationMode, InvitationRole, InvitationStatus, ApplicationStatus

QUESTIONNAIRE_MIN = 10
QUESTIONNAIRE_MAX = 500


class Questionnaire(BaseModel):
    # Bounds are enforced by the issuer so the failure surfaces as ValidationFailed
    invitee_name: str | None = None
    invitation_reason: str | None = None
    eligibility_details: str | None = None


class InvitationCreate(BaseModel):
    email: EmailStr | None = None
    target_user_id: UUID | None = None
    role: InvitationRole = InvitationRole.MEMBER
    questionnaire: Questionnaire | None = None


class InvitationIssued(BaseModel):
    invitation_url: str
    code: str
    mode: InvitationMode
    expires_at: datetime


class InvitationPublic(BaseModel):
    id: UUID
    code: str
    organization_id: UUID
    organization_name: str
    organization_slug: str
    issuer_id: UUID
    mode: InvitationMode
    role: InvitationRole
    status: InvitationStatus
    target_email: str | None = None
    target_user_id: UUID | None = None
    questionnaire: Questionnaire | None = None
    expires_at: datetime
    is_expired: bool
    invitation_url: str
    created_at: datetime


class AcceptResult(BaseModel):
    mode: InvitationMode
    organization_id: UUID
    member_id: UUID | None = None        # direct
    application_id: UUID | None = None   # referral


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    slug: str | None = Field(default=None, min_length=3, max_length=64, pattern=r"^[a-z0-9-]+$")


class OrganizationPublic(BaseModel):
    id: UUID
    name: str
    slug: str
    created_at: datetime


class MemberPublic(BaseModel):
    id: UUID
    organization_id: UUID
    user_id: UUID
    role: str
    joined_at: datetime


class ApplicationPublic(BaseModel):
    id: UUID
    organization_id: UUID
    user_id: UUID
    invitation_id: UUID | None = None
    reason: str | None = None
    status: ApplicationStatus
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
