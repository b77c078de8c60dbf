# backend/marketplace/api/dependencies/auth.py
"""
Resolve the bearer token to an ``Actor``.
"""

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...core.actor import Actor
from ...core.enums import RoleName
from ...core.request_context import bind_actor_id
from ...repositories import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)


def get_current_actor(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> Actor:
    """Load the token's user; unknown or deactivated users are rejected with 401."""
    user = RepositoryFactory.create_user_repository(db).get_by_id(user_id)
    if user is None or not user.is_active:
        logger.warning("Token for unknown or inactive user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    bind_actor_id(user.id)
    return Actor(id=user.id, role=RoleName(user.role))


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return actor
