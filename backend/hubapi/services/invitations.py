from __future__ import annotations
import uuid
from datetime import datetime, timedelta
from uuid import UUID
import structlog
from sqlalchemy import select, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hubapi.config import settings
from hubapi.enums import ApplicationStatus, InvitationMode, InvitationRole, InvitationStatus, MemberRole
from hubapi.errors import (
    AlreadyAMember, ApplicationNotFound, ApplicationNotPending, Forbidden,
    InvitationAlreadyActive, InvitationExpired, InvitationNotFound, InvitationNotPending,
    NotAMember, UserNotFound, ValidationFailed,
)
from hubapi.models.invitation import Invitation
from hubapi.models.organization import Member, Organization, OrganizationApplication
from hubapi.models.user import User
from hubapi.schemas.invitation import (
    AcceptResult, InvitationCreate, InvitationIssued, InvitationPublic, Questionnaire,
    QUESTIONNAIRE_MAX, QUESTIONNAIRE_MIN,
)
from hubapi.services.clock import utcnow, as_utc
from hubapi.services.invite_code import generate_code
from hubapi.services.membership import get_membership, get_organization_or_404, is_admin_member, require_org_admin

log = structlog.get_logger()

QUESTIONNAIRE_FIELDS = ("invitee_name", "invitation_reason", "eligibility_details")
CODE_ATTEMPTS = 5

# ---------- helpers ----------

def build_invitation_url(code: str, mode: str, org_slug: str) -> str:
    if mode == InvitationMode.DIRECT:
        return f"{settings.public_base_url}/invitations/{code}"
    # referral links land on the application form with the code prefilled
    return f"{settings.public_base_url}/orgs/{org_slug}/apply?invited-code={code}"

def is_expired(inv: Invitation, now: datetime) -> bool:
    return now > as_utc(inv.expires_at)

def validate_questionnaire(q: Questionnaire | None) -> dict[str, str]:
    raw = q.model_dump() if q else {}
    cleaned: dict[str, str] = {}
    problems: list[dict[str, str]] = []
    for field in QUESTIONNAIRE_FIELDS:
        value = (raw.get(field) or "").strip()
        if not value:
            problems.append({"field": field, "reason": "required"})
        elif len(value) < QUESTIONNAIRE_MIN:
            problems.append({"field": field, "reason": f"must be at least {QUESTIONNAIRE_MIN} characters"})
        elif len(value) > QUESTIONNAIRE_MAX:
            problems.append({"field": field, "reason": f"must be at most {QUESTIONNAIRE_MAX} characters"})
        else:
            cleaned[field] = value
    if problems:
        raise ValidationFailed("Referral invitations need a complete questionnaire", details=problems)
    return cleaned

async def _active_invitation_exists(session: AsyncSession, organization_id: UUID, condition, now: datetime) -> bool:
    found = await session.scalar(
        select(exists().where(
            Invitation.organization_id == organization_id,
            condition,
            Invitation.status == InvitationStatus.PENDING.value,
            Invitation.expires_at > now,
        ))
    )
    return bool(found)

async def _guard_targets(session: AsyncSession, organization_id: UUID, email: str | None, target_user_id: UUID | None, now: datetime) -> None:
    # Only targeted invitations are deduplicated; bare share links may be issued freely
    if target_user_id:
        if not await session.get(User, target_user_id):
            raise UserNotFound("Target user not found")
        if await get_membership(session, organization_id, target_user_id):
            raise AlreadyAMember()
        if await _active_invitation_exists(session, organization_id, Invitation.target_user_id == target_user_id, now):
            raise InvitationAlreadyActive("An active invitation already exists for this user")
    if email:
        invitee = await session.scalar(select(User).where(User.email == email))
        if invitee and await get_membership(session, organization_id, invitee.id):
            raise AlreadyAMember()
        if await _active_invitation_exists(session, organization_id, Invitation.target_email == email, now):
            raise InvitationAlreadyActive("An active invitation already exists for this email")

async def _by_code(session: AsyncSession, code: str) -> Invitation:
    inv = await session.scalar(select(Invitation).where(Invitation.code == code))
    if not inv:
        raise InvitationNotFound()
    return inv

async def to_public(session: AsyncSession, inv: Invitation, now: datetime | None = None) -> InvitationPublic:
    org = await session.get(Organization, inv.organization_id)
    return InvitationPublic(
        id=inv.id,
        code=inv.code,
        organization_id=inv.organization_id,
        organization_name=org.name if org else "",
        organization_slug=org.slug if org else "",
        issuer_id=inv.issuer_id,
        mode=inv.mode,
        role=inv.role,
        status=inv.status,
        target_email=inv.target_email,
        target_user_id=inv.target_user_id,
        questionnaire=Questionnaire.model_validate(inv.questionnaire_json) if inv.questionnaire_json else None,
        expires_at=as_utc(inv.expires_at),
        is_expired=is_expired(inv, now or utcnow()),
        invitation_url=build_invitation_url(inv.code, inv.mode, org.slug if org else ""),
        created_at=inv.created_at,
    )

# ---------- issue / resolve ----------

async def create_invitation(
    session: AsyncSession,
    *,
    organization_id: UUID,
    issuer_user_id: UUID,
    payload: InvitationCreate,
    now: datetime | None = None,
) -> InvitationIssued:
    """
    Admins (owner/admin/manager) issue direct invitations; any other member issues a
    referral that needs the questionnaire and ends up as an application on acceptance.
    """
    now = now or utcnow()
    org = await get_organization_or_404(session, organization_id)
    org_id, org_slug = org.id, org.slug

    membership = await get_membership(session, org_id, issuer_user_id)
    if membership is None:
        raise NotAMember()

    if is_admin_member(membership):
        mode = InvitationMode.DIRECT
        questionnaire = None
        if payload.questionnaire is not None:
            questionnaire = payload.questionnaire.model_dump(exclude_none=True) or None
    else:
        mode = InvitationMode.REFERRAL
        if payload.role is not InvitationRole.MEMBER:
            raise ValidationFailed(
                "Only organization admins can offer the admin role",
                details=[{"field": "role", "reason": "referrals can only offer membership"}],
            )
        questionnaire = validate_questionnaire(payload.questionnaire)

    email = str(payload.email).lower() if payload.email else None
    await _guard_targets(session, org_id, email, payload.target_user_id, now)

    expires_at = now + timedelta(days=settings.invitation_ttl_days)
    # Retry on code collision (unique index on code)
    for _ in range(CODE_ATTEMPTS):
        code = generate_code()
        session.add(Invitation(
            code=code,
            organization_id=org_id,
            issuer_id=issuer_user_id,
            mode=mode.value,
            role=payload.role.value,
            status=InvitationStatus.PENDING.value,
            target_email=email,
            target_user_id=payload.target_user_id,
            questionnaire_json=questionnaire,
            expires_at=expires_at,
        ))
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            continue
        log.info("invitation_created", organization_id=str(org_id), issuer_id=str(issuer_user_id), mode=mode.value)
        return InvitationIssued(
            invitation_url=build_invitation_url(code, mode, org_slug),
            code=code,
            mode=mode,
            expires_at=expires_at,
        )
    raise RuntimeError("Failed to generate unique invitation code")

async def resolve_invitation(session: AsyncSession, code: str, now: datetime | None = None) -> Invitation:
    inv = await _by_code(session, code)
    # Expiry wins over status: a stale 'pending' row is still unusable
    if is_expired(inv, now or utcnow()):
        raise InvitationExpired()
    return inv

# ---------- state transitions ----------

def _is_recipient(inv: Invitation, user: User) -> bool:
    if inv.target_user_id and inv.target_user_id == user.id:
        return True
    return bool(inv.target_email and inv.target_email == user.email.lower())

async def accept_invitation(session: AsyncSession, code: str, user: User, now: datetime | None = None) -> AcceptResult:
    now = now or utcnow()
    inv = await resolve_invitation(session, code, now)
    if inv.status != InvitationStatus.PENDING:
        raise InvitationNotPending()
    if (inv.target_user_id or inv.target_email) and not _is_recipient(inv, user):
        raise Forbidden("This invitation is addressed to another user")
    if await get_membership(session, inv.organization_id, user.id):
        raise AlreadyAMember()

    inv.status = InvitationStatus.ACCEPTED.value
    inv.accepted_by_id = user.id
    inv.responded_at = now
    result = AcceptResult(mode=inv.mode, organization_id=inv.organization_id)

    if inv.mode == InvitationMode.DIRECT:
        member = Member(id=uuid.uuid4(), organization_id=inv.organization_id, user_id=user.id, role=inv.role)
        session.add(member)
        result.member_id = member.id
    else:
        application = await session.scalar(
            select(OrganizationApplication).where(
                OrganizationApplication.organization_id == inv.organization_id,
                OrganizationApplication.user_id == user.id,
                OrganizationApplication.status == ApplicationStatus.PENDING.value,
            )
        )
        if application is None:
            application = OrganizationApplication(
                id=uuid.uuid4(),
                organization_id=inv.organization_id,
                user_id=user.id,
                reason=(inv.questionnaire_json or {}).get("invitation_reason"),
                status=ApplicationStatus.PENDING.value,
            )
            session.add(application)
        application.invitation_id = inv.id
        result.application_id = application.id

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise AlreadyAMember()
    log.info("invitation_accepted", code=code, user_id=str(user.id), mode=str(result.mode))
    return result

async def reject_invitation(session: AsyncSession, code: str, user: User, now: datetime | None = None) -> Invitation:
    now = now or utcnow()
    inv = await resolve_invitation(session, code, now)
    if inv.status != InvitationStatus.PENDING:
        raise InvitationNotPending()
    if not _is_recipient(inv, user):
        raise Forbidden("Only the invited user can decline this invitation")
    inv.status = InvitationStatus.REJECTED.value
    inv.responded_at = now
    await session.commit()
    log.info("invitation_rejected", code=code, user_id=str(user.id))
    return inv

async def cancel_invitation(session: AsyncSession, code: str, user_id: UUID, now: datetime | None = None) -> Invitation:
    inv = await _by_code(session, code)
    if inv.status != InvitationStatus.PENDING:
        raise InvitationNotPending()
    if inv.issuer_id != user_id and not is_admin_member(await get_membership(session, inv.organization_id, user_id)):
        raise Forbidden("Only the issuer or an organization admin can cancel this invitation")
    inv.status = InvitationStatus.CANCELED.value
    inv.responded_at = now or utcnow()
    await session.commit()
    log.info("invitation_canceled", code=code, user_id=str(user_id))
    return inv

async def list_invitations(session: AsyncSession, organization_id: UUID, user_id: UUID, now: datetime | None = None) -> list[InvitationPublic]:
    await require_org_admin(session, organization_id, user_id)
    rows = (await session.execute(
        select(Invitation).where(Invitation.organization_id == organization_id).order_by(Invitation.created_at.desc())
    )).scalars().all()
    now = now or utcnow()
    return [await to_public(session, inv, now) for inv in rows]

# ---------- applications (referral follow-up) ----------

async def list_applications(session: AsyncSession, organization_id: UUID, user_id: UUID, status: str | None = None) -> list[OrganizationApplication]:
    await require_org_admin(session, organization_id, user_id)
    q = select(OrganizationApplication).where(OrganizationApplication.organization_id == organization_id)
    if status:
        q = q.where(OrganizationApplication.status == status)
    return list((await session.execute(q.order_by(OrganizationApplication.created_at.desc()))).scalars().all())

async def review_application(
    session: AsyncSession,
    *,
    organization_id: UUID,
    application_id: UUID,
    reviewer_id: UUID,
    approve: bool,
    now: datetime | None = None,
) -> OrganizationApplication:
    await require_org_admin(session, organization_id, reviewer_id)
    application = await session.get(OrganizationApplication, application_id)
    if not application or application.organization_id != organization_id:
        raise ApplicationNotFound()
    if application.status != ApplicationStatus.PENDING:
        raise ApplicationNotPending()

    application.status = (ApplicationStatus.APPROVED if approve else ApplicationStatus.REJECTED).value
    application.reviewed_by_id = reviewer_id
    application.reviewed_at = now or utcnow()
    if approve and not await get_membership(session, organization_id, application.user_id):
        session.add(Member(organization_id=organization_id, user_id=application.user_id, role=MemberRole.MEMBER.value))
    await session.commit()
    await session.refresh(application)
    log.info("application_reviewed", application_id=str(application_id), approved=approve)
    return application
