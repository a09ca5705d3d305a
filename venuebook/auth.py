"""
Request identity for the scheduling API

Authentication happens upstream: the gateway verifies the session and
forwards the caller as ``X-Actor-Id`` / ``X-Actor-Role`` headers. For
ARTIST callers the actor id is the artist id.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException

logger = logging.getLogger(__name__)

ROLE_ADMIN = "ADMIN"
ROLE_VENUE = "VENUE"
ROLE_ARTIST = "ARTIST"
ROLES = (ROLE_ADMIN, ROLE_VENUE, ROLE_ARTIST)


class Actor:
    """The authenticated caller"""

    def __init__(self, actor_id: int, role: str):
        self.id = actor_id
        self.role = role

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self):
        return f"<Actor {self.role}:{self.id}>"


async def get_current_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    """Get the current actor from gateway headers"""
    if not x_actor_id or not x_actor_role:
        logger.warning("⚠️ Request without actor headers")
        raise HTTPException(status_code=401, detail="Not authenticated")

    role = x_actor_role.strip().upper()
    if role not in ROLES:
        logger.warning(f"⚠️ Unknown actor role: {x_actor_role}")
        raise HTTPException(status_code=401, detail="Invalid actor role")

    try:
        actor_id = int(x_actor_id)
    except ValueError as e:
        logger.warning(f"⚠️ Malformed actor id: {x_actor_id}")
        raise HTTPException(status_code=401, detail="Invalid actor id") from e

    return Actor(actor_id, role)


def require_roles(*roles: str):
    """Dependency factory: allow only the given roles"""

    async def checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            logger.warning(f"⚠️ {actor} denied, requires one of {roles}")
            raise HTTPException(status_code=403, detail="Not allowed")
        return actor

    return checker


def ensure_artist_access(actor: Actor, artist_id: int) -> None:
    """Artists may only touch their own availability; admins may touch any"""
    if actor.is_admin:
        return
    if actor.role == ROLE_ARTIST and actor.id == artist_id:
        return
    logger.warning(f"⚠️ {actor} denied access to artist {artist_id} availability")
    raise HTTPException(status_code=403, detail="Not allowed to manage this artist's availability")
