import logging
from typing import Iterable, List, Optional
from shop.core.errors import ConflictError, NotFoundError, UnauthenticatedError, wrap_unexpected
from shop.core.security import create_access_token, hash_password, now_utc, verify_password
from shop.db.models import Role, User
from shop.db.store import Store
from shop.schemas import PasswordUpdate, SignInPayload, UserCreate

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid Credentials'

@wrap_unexpected('Failed to register user')
def register_user(store: Store, payload: UserCreate, roles: Optional[Iterable[Role]] = None) -> User:
    if store.find_by(User, email=str(payload.email)):
        raise ConflictError('user already exists')
    roles = [getattr(r, 'value', r) for r in (roles or [Role.USER])]
    with store.transaction(conflict='user already exists'):
        user = store.save(store.create(
            User,
            fullname=payload.fullname,
            email=str(payload.email),
            password_hash=hash_password(payload.password),
            roles=roles,
        ))
    logger.info('Registered user %s with roles %s', user.id, roles)
    return user

@wrap_unexpected('Failed to sign in')
def sign_in(store: Store, payload: SignInPayload) -> dict:
    # same error for unknown email and wrong password
    user = store.find_by(User, email=str(payload.email))
    if not user:
        raise NotFoundError(INVALID_CREDENTIALS)
    if not verify_password(payload.password, user.password_hash):
        raise NotFoundError(INVALID_CREDENTIALS)
    access, _ = create_access_token(user.id, user.email, user.roles)
    return {'access_token': access, 'token_type': 'bearer', 'user': user}

@wrap_unexpected('Failed to list users')
def list_users(store: Store) -> List[User]:
    return store.find_all(User, User.id)

@wrap_unexpected('Failed to get user')
def get_user(store: Store, user_id: int) -> User:
    user = store.find_by_id(User, user_id)
    if not user:
        raise NotFoundError('User not found')
    return user

@wrap_unexpected('Failed to update password')
def update_password(store: Store, user: User, payload: PasswordUpdate) -> User:
    found = get_user(store, user.id)
    if not verify_password(payload.current_password, found.password_hash):
        raise UnauthenticatedError('your current password is invalid')
    with store.transaction():
        found.password_hash = hash_password(payload.new_password)
        found.updated_at = now_utc()
        store.save(found)
    return found
