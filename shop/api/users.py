from fastapi import APIRouter, Depends, status
from typing import List
from shop.api.deps import get_current_user, get_store, require_admin
from shop.db.models import User
from shop.db.store import Store
from shop.schemas import PasswordUpdate, SignInPayload, SignInResponse, UserCreate, UserRead
from shop.services import users

router = APIRouter()  # main.py mounts at /users

@router.post('', response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, store: Store = Depends(get_store)):
    return users.register_user(store, payload)

@router.post('/sign-in', response_model=SignInResponse)
def sign_in(payload: SignInPayload, store: Store = Depends(get_store)):
    return users.sign_in(store, payload)

@router.get('', response_model=List[UserRead], dependencies=[Depends(require_admin)])
def list_users(store: Store = Depends(get_store)):
    return users.list_users(store)

@router.get('/me', response_model=UserRead)
def me(user: User = Depends(get_current_user)):
    return user

@router.get('/{user_id}', response_model=UserRead)
def get_user(user_id: int, store: Store = Depends(get_store)):
    return users.get_user(store, user_id)

@router.put('', response_model=UserRead)
def update_password(payload: PasswordUpdate, user: User = Depends(get_current_user), store: Store = Depends(get_store)):
    return users.update_password(store, user, payload)
