from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from typing import Optional
import jwt
from shop.core.auth import authorize
from shop.core.errors import UnauthenticatedError
from shop.core.security import decode_token
from shop.db.models import Role, User
from shop.db.session import SessionLocal
from shop.db.store import Store
from shop.services.storage import MediaHost

security = HTTPBearer(auto_error=False)

def get_db():
    db = SessionLocal()
    try: yield db
    finally: db.close()

def get_store(db: Session = Depends(get_db)) -> Store:
    return Store(db)

def get_media() -> MediaHost:
    return MediaHost()

def get_optional_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
                      store: Store = Depends(get_store)) -> Optional[User]:
    if not creds: return None
    try:
        payload = decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise UnauthenticatedError('Invalid token')
    if payload.get('type') != 'access' or not isinstance(payload.get('id'), int):
        raise UnauthenticatedError('Invalid access token')
    user = store.find_by_id(User, payload['id'])
    if not user: raise UnauthenticatedError('User not found')
    return user

def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None: raise UnauthenticatedError('Not authenticated')
    return user

def require_roles(*roles: Role):
    """Dependency declaring the roles a route is restricted to; no roles means open."""
    def _checker(user: Optional[User] = Depends(get_optional_user)) -> Optional[User]:
        return authorize(user, roles)
    return _checker

require_admin = require_roles(Role.ADMIN)
