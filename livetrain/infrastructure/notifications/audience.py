# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Broadcast audiences.

An audience is one of three variants and is resolved once per broadcast
into a concrete, duplicate-free list of recipient ids:

- AllUsers: every user account
- RoleAudience: every user with the given role
- ExplicitAudience: the given ids, in the given order

Explicit ids are not checked for existence here; unknown ids fail
individually at send time so the broadcast can report them.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.infrastructure.database.models import User
from livetrain.models.common import UserRole


@dataclass(frozen=True)
class AllUsers:
    """Every registered user."""


@dataclass(frozen=True)
class RoleAudience:
    """Every user holding a role."""

    role: UserRole


@dataclass(frozen=True)
class ExplicitAudience:
    """A fixed set of recipient ids."""

    user_ids: tuple[str, ...]


Audience = AllUsers | RoleAudience | ExplicitAudience


def build_audience(role: UserRole | None = None, user_ids: list[str] | None = None) -> Audience:
    """Build an audience from loosely typed request fields.

    Explicit ids win over a role; neither means everyone.
    """
    if user_ids:
        return ExplicitAudience(tuple(user_ids))
    if role is not None:
        return RoleAudience(role)
    return AllUsers()


def _dedupe(ids: list[str]) -> list[str]:
    seen_ids: set[str] = set()
    unique: list[str] = []
    for user_id in ids:
        if user_id not in seen_ids:
            unique.append(user_id)
            seen_ids.add(user_id)
    return unique


async def resolve_audience(db: AsyncSession, audience: Audience) -> list[str]:
    """Resolve an audience into recipient ids.

    Args:
        db: Database session.
        audience: Audience variant.

    Returns:
        Ordered list of unique user ids.
    """
    if isinstance(audience, ExplicitAudience):
        return _dedupe(list(audience.user_ids))

    stmt = select(User.id).order_by(User.created_at, User.id)
    if isinstance(audience, RoleAudience):
        stmt = stmt.where(User.role == UserRole(audience.role).value)

    result = await db.execute(stmt)
    return _dedupe(list(result.scalars().all()))
