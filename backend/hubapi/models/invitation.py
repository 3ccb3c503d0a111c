from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime, ForeignKey, Uuid, func
from hubapi.db import Base, JSONType

class Invitation(Base):
    """
    Offer to join an organization.
      - direct   => accepting adds the member immediately
      - referral => accepting files an OrganizationApplication for admin review
    Expiry is checked at read time; a row can stay 'pending' long after expires_at.
    """
    __tablename__ = "invitations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    issuer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    mode: Mapped[str] = mapped_column(String(16), nullable=False)  # direct|referral
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="member")  # member|admin
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # pending|accepted|rejected|canceled

    target_email: Mapped[str | None] = mapped_column(String(320), index=True, nullable=True)
    target_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
    )

    # {invitee_name, invitation_reason, eligibility_details}; required for referral mode
    questionnaire_json: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
