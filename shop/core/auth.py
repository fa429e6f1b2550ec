from typing import Any, Iterable, Optional, Set
from shop.core.errors import AuthorizationError, UnauthenticatedError

def role_names(roles: Iterable[Any]) -> Set[str]:
    return {getattr(r, 'value', r) for r in roles or ()}

def authorize(principal: Optional[Any], required_roles: Iterable[Any] = ()) -> Optional[Any]:
    """Single role gate shared by every route.

    An empty allow-list lets anyone through, authenticated or not. Otherwise the
    principal's roles must intersect the allow-list.
    """
    required = role_names(required_roles)
    if not required:
        return principal
    if principal is None:
        raise UnauthenticatedError('Not authenticated')
    if not role_names(principal.roles) & required:
        raise AuthorizationError('Access denied, you are not authorized')
    return principal
