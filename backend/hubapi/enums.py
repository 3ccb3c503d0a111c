from __future__ import annotations
import enum


class MemberRole(enum.StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"

    @property
    def is_admin(self) -> bool:
        return self in (MemberRole.OWNER, MemberRole.ADMIN, MemberRole.MANAGER)


class RegistrationStatus(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in (RegistrationStatus.PENDING, RegistrationStatus.APPROVED)


class SubmissionStatus(enum.StrEnum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    AWARDED = "awarded"


class VoteQuotaMode(enum.StrEnum):
    FIXED_QUOTA = "FIXED_QUOTA"
    PER_PROJECT_LIKE = "PER_PROJECT_LIKE"


class PublicVotingScope(enum.StrEnum):
    ALL = "ALL"
    REGISTERED = "REGISTERED"  # any signed-in user
    PARTICIPANTS = "PARTICIPANTS"  # active event registration

    @property
    def requires_registration(self) -> bool:
        return self is PublicVotingScope.PARTICIPANTS


class InvitationMode(enum.StrEnum):
    DIRECT = "direct"
    REFERRAL = "referral"


class InvitationRole(enum.StrEnum):
    MEMBER = "member"
    ADMIN = "admin"


class InvitationStatus(enum.StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELED = "canceled"


class ApplicationStatus(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
