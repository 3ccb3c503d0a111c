from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from hubapi.auth_deps import get_current_user
from hubapi.db import get_session
from hubapi.models.user import User
from hubapi.schemas.auth import RegisterRequest, LoginRequest, UserPublic, TokenPair
from hubapi.security import hash_password, verify_password, issue_token_pair, read_token, TokenError

router = APIRouter(prefix="/auth", tags=["auth"])
log = structlog.get_logger()

def to_public(user: User) -> UserPublic:
    return UserPublic(id=user.id, email=user.email, username=user.username, name=user.name, created_at=user.created_at)

@router.post("/register", status_code=201, response_model=UserPublic)
async def register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    email = payload.email.lower()
    taken = await session.scalar(select(User).where(or_(User.email == email, User.username == payload.username)))
    if taken:
        detail = "Email already registered" if taken.email == email else "Username already taken"
        raise HTTPException(status_code=409, detail=detail)
    user = User(email=email, username=payload.username, name=payload.name, password_hash=hash_password(payload.password))
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Email or username already registered")
    await session.refresh(user)
    log.info("user_registered", user_id=str(user.id))
    return to_public(user)

@router.post("/login", response_model=TokenPair)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    user = await session.scalar(select(User).where(User.email == payload.email.lower()))
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    access, refresh_token = issue_token_pair(user.id)
    return TokenPair(access=access, refresh=refresh_token)

@router.post("/refresh", response_model=TokenPair)
async def refresh(authorization: str | None = Header(None), session: AsyncSession = Depends(get_session)):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing refresh token")
    try:
        user_id = read_token(authorization.split(" ", 1)[1], "refresh")
    except TokenError as exc:
        raise HTTPException(status_code=401, detail=str(exc))
    if not await session.get(User, user_id):
        raise HTTPException(status_code=401, detail="User not found")
    access, refresh_token = issue_token_pair(user_id)
    return TokenPair(access=access, refresh=refresh_token)

@router.get("/me", response_model=UserPublic)
async def me(user: User = Depends(get_current_user)):
    return to_public(user)
