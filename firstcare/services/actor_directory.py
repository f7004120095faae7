"""Actor lookups backed by the users table."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from firstcare.core.exceptions import UnauthorizedException
from firstcare.core.redis_client import CacheManager
from firstcare.models.users import users
from firstcare.schemas.appointments import ActorRole, District


class UserActorDirectory:
    """Resolves an actor's registered district and roles."""

    # Cache TTL in seconds
    ACTOR_CACHE_TTL = 300  # 5 minutes

    def __init__(self, db: AsyncSession, cache_manager: CacheManager | None = None):
        """Initialize directory with database session and optional cache."""
        self.db = db
        self.cache = cache_manager

    @staticmethod
    def _get_actor_cache_key(actor_id: str) -> str:
        """Generate cache key for an actor."""
        return f"actor:{actor_id}"

    async def _load(self, actor_id: str) -> dict:
        if self.cache:
            cached = self.cache.get_json(self._get_actor_cache_key(actor_id))
            if cached:
                return cached

        stmt = select(users.c.health_district, users.c.roles, users.c.is_active).where(
            users.c.id == actor_id
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if row is None or not row["is_active"]:
            raise UnauthorizedException("User not found")

        actor = {
            "health_district": row["health_district"],
            "roles": list(row["roles"] or []),
        }

        if self.cache:
            self.cache.set_json(self._get_actor_cache_key(actor_id), actor, ttl=self.ACTOR_CACHE_TTL)

        return actor

    async def get_actor_district(self, actor_id: str) -> District | None:
        """Registered health district of the actor, if the profile has one."""
        district = (await self._load(actor_id))["health_district"]
        return District(district) if district else None

    async def get_actor_roles(self, actor_id: str) -> frozenset[ActorRole]:
        """Roles held by the actor; unknown role names are ignored."""
        roles = set()
        for name in (await self._load(actor_id))["roles"]:
            try:
                roles.add(ActorRole(name))
            except ValueError:
                continue
        return frozenset(roles or {ActorRole.PATIENT})
