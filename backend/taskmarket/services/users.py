"""
Users and role profiles.

``upsert_user`` inserts a row keyed by the external identity or refreshes the
mutable fields of an existing one; omitted fields are left untouched.
``select_role`` sets the user's role and creates the matching profile once.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.models import Enterprise, Individual, User, UserRole

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = ("union_id", "name", "email", "phone", "avatar_url", "login_method")


async def get_user(session: AsyncSession, user_id: int) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_open_id(session: AsyncSession, open_id: str) -> User | None:
    res = await session.execute(select(User).where(User.open_id == open_id).limit(1))
    return res.scalar_one_or_none()


async def get_enterprise_by_user_id(session: AsyncSession, user_id: int) -> Enterprise | None:
    res = await session.execute(select(Enterprise).where(Enterprise.user_id == user_id).limit(1))
    return res.scalar_one_or_none()


async def get_individual_by_user_id(session: AsyncSession, user_id: int) -> Individual | None:
    res = await session.execute(select(Individual).where(Individual.user_id == user_id).limit(1))
    return res.scalar_one_or_none()


def _apply_fields(user: User, fields: dict) -> None:
    for field in MUTABLE_FIELDS:
        value = fields.get(field)
        if value is not None:
            setattr(user, field, value)


async def upsert_user(
    session: AsyncSession,
    open_id: str,
    owner_open_id: str | None = None,
    role: str | None = None,
    **fields,
) -> User:
    """Insert or refresh the user keyed by ``open_id`` and commit."""
    now = datetime.now(timezone.utc)
    if owner_open_id and open_id == owner_open_id:
        role = UserRole.admin.value

    user = await get_user_by_open_id(session, open_id)
    if user is None:
        user = User(open_id=open_id, role=role, last_signed_in=now)
        _apply_fields(user, fields)
        session.add(user)
        try:
            await session.commit()
        except IntegrityError:
            # Another request inserted the same identity first.
            await session.rollback()
            user = await get_user_by_open_id(session, open_id)
            if user is None:
                raise
        else:
            await session.refresh(user)
            logger.info(f"[users] created user {user.id} ({user.login_method or 'unknown'})")
            return user

    _apply_fields(user, fields)
    if role is not None:
        user.role = role
    user.last_signed_in = now
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def _ensure_profile(session: AsyncSession, model: type[Enterprise] | type[Individual], user_id: int) -> bool:
    res = await session.execute(select(model.id).where(model.user_id == user_id).limit(1))
    if res.scalar_one_or_none() is not None:
        return False
    session.add(model(user_id=user_id))
    try:
        await session.flush()
    except IntegrityError:
        # Concurrent double submission; the unique user_id already holds one row.
        await session.rollback()
        return False
    return True


async def select_role(session: AsyncSession, user: User, role: str) -> User:
    """Set the role and lazily create its profile. Safe to call repeatedly."""
    if role == UserRole.enterprise.value:
        created = await _ensure_profile(session, Enterprise, user.id)
    elif role == UserRole.individual.value:
        created = await _ensure_profile(session, Individual, user.id)
    else:
        raise ValueError(f"Unsupported role: {role}")
    if not created:
        await session.refresh(user)

    # Admins keep their role; the profile lets them act in either capacity.
    if user.role != UserRole.admin.value:
        user.role = role
        session.add(user)
    await session.commit()
    await session.refresh(user)
    if created:
        logger.info(f"[users] user {user.id} onboarded as {role}")
    return user


async def update_enterprise_profile(session: AsyncSession, enterprise: Enterprise, **fields) -> Enterprise:
    for field in ("company_name", "license", "contact"):
        value = fields.get(field)
        if value is not None:
            setattr(enterprise, field, value)
    session.add(enterprise)
    await session.commit()
    await session.refresh(enterprise)
    return enterprise


async def update_individual_profile(session: AsyncSession, individual: Individual, **fields) -> Individual:
    for field in ("real_name", "skills", "experience", "portfolio"):
        value = fields.get(field)
        if value is not None:
            setattr(individual, field, value)
    session.add(individual)
    await session.commit()
    await session.refresh(individual)
    return individual
