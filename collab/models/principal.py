from __future__ import annotations

from dataclasses import dataclass

GUIDE = "guide"
APPRENTICE = "apprentice"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system and
    handed to the lifecycle controller as the acting party.

        user_id: subject from JWT
        roles: platform roles (guide, apprentice)
    """

    user_id: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_guide(self) -> bool:
        return GUIDE in self.roles

    @property
    def is_apprentice(self) -> bool:
        return APPRENTICE in self.roles
