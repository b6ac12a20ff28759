from collections.abc import Iterable

from app.studiodesk.core.config import settings


def _normalize_role(role: str | None) -> str:
    return (role or "").strip().lower()


def is_elevated(role: str | None, elevated_roles: Iterable[str] | None = None) -> bool:
    roles = elevated_roles if elevated_roles is not None else settings.ELEVATED_ROLES
    return _normalize_role(role) in {_normalize_role(item) for item in roles}
