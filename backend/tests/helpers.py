"""Row builders shared by the service and API tests."""
from __future__ import annotations
import uuid
from datetime import datetime, timedelta, timezone

import httpx
from httpx import AsyncClient

from hubapi.enums import MemberRole, RegistrationStatus
from hubapi.models.event import Event, EventRegistration
from hubapi.models.organization import Member, Organization
from hubapi.models.submission import Submission, SubmissionMember
from hubapi.models.user import User
from hubapi.main import app


def now() -> datetime:
    return datetime.now(timezone.utc)

def client() -> AsyncClient:
    return AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

async def make_user(session, name: str | None = None) -> User:
    tag = uuid.uuid4().hex[:8]
    user = User(email=f"{name or 'user'}-{tag}@example.com", username=f"{name or 'user'}_{tag}", name=name, password_hash="x")
    session.add(user)
    await session.commit()
    return user

async def make_org(session, owner: User, *, slug: str | None = None) -> Organization:
    org = Organization(id=uuid.uuid4(), name="Builders Guild", slug=slug or f"guild-{uuid.uuid4().hex[:6]}")
    session.add(org)
    await session.flush()
    session.add(Member(organization_id=org.id, user_id=owner.id, role=MemberRole.OWNER.value))
    await session.commit()
    return org

async def add_member(session, org: Organization, user: User, role: MemberRole = MemberRole.MEMBER) -> Member:
    member = Member(organization_id=org.id, user_id=user.id, role=role.value)
    session.add(member)
    await session.commit()
    return member

async def make_event(session, organizer: User, *, voting: dict | None = None, voting_open: bool = True, **fields) -> Event:
    ev = Event(
        organizer_id=organizer.id,
        title="Spring Hackathon",
        starts_at=now() - timedelta(days=1),
        ends_at=now() + timedelta(days=1),
        voting_open=voting_open,
        voting_config_json=voting if voting is not None else {"quota": 3},
        **fields,
    )
    session.add(ev)
    await session.commit()
    return ev

async def register(session, event: Event, user: User, status: RegistrationStatus = RegistrationStatus.APPROVED) -> None:
    session.add(EventRegistration(event_id=event.id, user_id=user.id, status=status.value))
    await session.commit()

async def make_submission(session, event: Event, leader: User, *, members: tuple[User, ...] = (), title: str = "Project", **fields) -> Submission:
    s = Submission(id=uuid.uuid4(), event_id=event.id, leader_id=leader.id, title=title, **fields)
    session.add(s)
    await session.flush()
    for m in members:
        session.add(SubmissionMember(submission_id=s.id, user_id=m.id))
    await session.commit()
    return s

async def signup(ac: AsyncClient, name: str = "user") -> tuple[dict[str, str], str]:
    """Register + login through the API; returns (auth headers, user id)."""
    tag = uuid.uuid4().hex[:8]
    email = f"{name}-{tag}@example.com"
    r = await ac.post("/auth/register", json={"email": email, "username": f"{name}_{tag}", "password": "supersecret"})
    assert r.status_code == 201, r.text
    user_id = r.json()["id"]
    r = await ac.post("/auth/login", json={"email": email, "password": "supersecret"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['access']}"}, user_id
