"""
User management service for admins.
"""

import logging
from typing import List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from courier_backend.app.core.exceptions import BadRequestError, ResourceNotFoundError
from courier_backend.app.db.session import id_in_range
from courier_backend.app.models.package import Package
from courier_backend.app.models.user import User
from courier_backend.app.schemas.auth import Principal

logger = logging.getLogger(__name__)


async def list_users(db: AsyncSession, page: int = 1, page_size: int = 50) -> Tuple[List[User], int]:
    """Return one page of users (newest first) and the total count."""
    total_result = await db.execute(select(func.count(User.id)))
    total = total_result.scalar()
    
    offset = (page - 1) * page_size
    result = await db.execute(
        select(User).order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total


async def delete_user(db: AsyncSession, user_id: int, actor: Principal) -> User:
    """
    Delete a user account.
    
    Packages assigned to the deleted user go back to the unassigned pool.
    
    Raises:
        ResourceNotFoundError: no such user
        BadRequestError: the caller tried to delete their own account
    """
    user = await db.get(User, user_id) if id_in_range(user_id) else None
    if user is None:
        raise ResourceNotFoundError("User", user_id)
    
    if user.id == actor.id:
        raise BadRequestError("You cannot delete your own account")
    
    await db.execute(
        update(Package)
        .where(Package.assigned_courier_id == user.id)
        .values(assigned_courier_id=None)
    )
    await db.delete(user)
    await db.commit()
    
    logger.info("User %s deleted by %s", user.username, actor.username)
    return user
