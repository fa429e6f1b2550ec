from fastapi import APIRouter, Depends
from typing import List
from shop.api.deps import get_media, get_store, require_admin
from shop.db.store import Store
from shop.schemas import CategoryCreate, CategoryRead, CategoryUpdate
from shop.services import categories
from shop.services.storage import MediaHost

router = APIRouter()

@router.get('', response_model=List[CategoryRead])
def list_categories(store: Store = Depends(get_store)):
    return categories.list_categories(store)

@router.get('/{category_id}', response_model=CategoryRead)
def get_category(category_id: int, store: Store = Depends(get_store)):
    return categories.get_category(store, category_id)

@router.post('', response_model=CategoryRead, status_code=201, dependencies=[Depends(require_admin)])
def create_category(payload: CategoryCreate, store: Store = Depends(get_store)):
    return categories.create_category(store, payload)

@router.patch('/{category_id}', response_model=CategoryRead, dependencies=[Depends(require_admin)])
def update_category(category_id: int, payload: CategoryUpdate, store: Store = Depends(get_store)):
    return categories.update_category(store, category_id, payload)

@router.delete('/{category_id}', dependencies=[Depends(require_admin)])
def delete_category(category_id: int, store: Store = Depends(get_store), media: MediaHost = Depends(get_media)):
    return categories.delete_category(store, category_id, media)
