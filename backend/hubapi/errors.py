"""
Domain error taxonomy.

Services raise these; the app-level exception handler turns them into
``{"error": <kind>, "detail": <message>}`` with the status carried by the class.
"""
from __future__ import annotations
import enum
from typing import Any


class ErrorKind(enum.StrEnum):
    # voting
    VOTING_CLOSED = "VotingClosed"
    VOTING_NOT_ENABLED = "VotingNotEnabled"
    REGISTRATION_REQUIRED = "RegistrationRequired"
    SELF_VOTE_FORBIDDEN = "SelfVoteForbidden"
    QUOTA_EXHAUSTED = "QuotaExhausted"
    ALREADY_VOTED = "AlreadyVoted"
    NOT_VOTED = "NotVoted"
    # invitations
    NOT_A_MEMBER = "NotAMember"
    VALIDATION_FAILED = "ValidationFailed"
    INVITATION_NOT_FOUND = "InvitationNotFound"
    INVITATION_EXPIRED = "InvitationExpired"
    INVITATION_NOT_PENDING = "InvitationNotPending"
    INVITATION_ALREADY_ACTIVE = "InvitationAlreadyActive"
    ALREADY_A_MEMBER = "AlreadyAMember"
    APPLICATION_NOT_PENDING = "ApplicationNotPending"
    # lookups / permissions
    EVENT_NOT_FOUND = "EventNotFound"
    SUBMISSION_NOT_FOUND = "SubmissionNotFound"
    ORGANIZATION_NOT_FOUND = "OrganizationNotFound"
    APPLICATION_NOT_FOUND = "ApplicationNotFound"
    USER_NOT_FOUND = "UserNotFound"
    FORBIDDEN = "Forbidden"


class DomainError(Exception):
    kind: ErrorKind
    status_code: int = 400
    message: str = "Request rejected"

    def __init__(self, message: str | None = None, *, details: Any = None):
        self.message = message or type(self).message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": str(self.kind), "detail": self.message}
        if self.details is not None:
            body["errors"] = self.details
        return body


# --- voting ---

class VotingClosed(DomainError):
    kind = ErrorKind.VOTING_CLOSED
    status_code = 403
    message = "Voting is closed for this event"

class VotingNotEnabled(DomainError):
    kind = ErrorKind.VOTING_NOT_ENABLED
    status_code = 403
    message = "Public voting is disabled for this event"

class RegistrationRequired(DomainError):
    kind = ErrorKind.REGISTRATION_REQUIRED
    status_code = 403
    message = "You need to register for this event to vote"

class SelfVoteForbidden(DomainError):
    kind = ErrorKind.SELF_VOTE_FORBIDDEN
    status_code = 400
    message = "You cannot vote for your own team's submission"

class QuotaExhausted(DomainError):
    kind = ErrorKind.QUOTA_EXHAUSTED
    status_code = 400
    message = "You have used all available votes"

class AlreadyVoted(DomainError):
    kind = ErrorKind.ALREADY_VOTED
    status_code = 409
    message = "You have already voted for this submission"

class NotVoted(DomainError):
    kind = ErrorKind.NOT_VOTED
    status_code = 400
    message = "You have not voted for this submission"


# --- invitations / organizations ---

class NotAMember(DomainError):
    kind = ErrorKind.NOT_A_MEMBER
    status_code = 403
    message = "Only organization members can invite new members"

class ValidationFailed(DomainError):
    kind = ErrorKind.VALIDATION_FAILED
    status_code = 422
    message = "Validation failed"

class InvitationNotFound(DomainError):
    kind = ErrorKind.INVITATION_NOT_FOUND
    status_code = 404
    message = "Invitation not found"

class InvitationExpired(DomainError):
    kind = ErrorKind.INVITATION_EXPIRED
    status_code = 410
    message = "Invitation has expired"

class InvitationNotPending(DomainError):
    kind = ErrorKind.INVITATION_NOT_PENDING
    status_code = 409
    message = "Invitation has already been handled"

class InvitationAlreadyActive(DomainError):
    kind = ErrorKind.INVITATION_ALREADY_ACTIVE
    status_code = 409
    message = "An active invitation already exists for this recipient"

class AlreadyAMember(DomainError):
    kind = ErrorKind.ALREADY_A_MEMBER
    status_code = 409
    message = "User is already a member of this organization"

class ApplicationNotPending(DomainError):
    kind = ErrorKind.APPLICATION_NOT_PENDING
    status_code = 409
    message = "Application has already been reviewed"


# --- lookups / permissions ---

class EventNotFound(DomainError):
    kind = ErrorKind.EVENT_NOT_FOUND
    status_code = 404
    message = "Event not found"

class SubmissionNotFound(DomainError):
    kind = ErrorKind.SUBMISSION_NOT_FOUND
    status_code = 404
    message = "Submission not found"

class OrganizationNotFound(DomainError):
    kind = ErrorKind.ORGANIZATION_NOT_FOUND
    status_code = 404
    message = "Organization not found"

class ApplicationNotFound(DomainError):
    kind = ErrorKind.APPLICATION_NOT_FOUND
    status_code = 404
    message = "Application not found"

class UserNotFound(DomainError):
    kind = ErrorKind.USER_NOT_FOUND
    status_code = 404
    message = "User not found"

class Forbidden(DomainError):
    kind = ErrorKind.FORBIDDEN
    status_code = 403
    message = "You don't have permission to do this"
