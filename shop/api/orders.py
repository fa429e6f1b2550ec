from fastapi import APIRouter, Depends
from typing import List
from shop.api.deps import get_current_user, get_store, require_admin
from shop.db.models import User
from shop.db.store import Store
from shop.schemas import OrderCreate, OrderRead, OrderStatusUpdate
from shop.services import orders

router = APIRouter()

@router.post('', response_model=OrderRead, status_code=201)
def place_order(payload: OrderCreate, user: User = Depends(get_current_user), store: Store = Depends(get_store)):
    return orders.place_order(store, user, payload)

@router.get('', response_model=List[OrderRead])
def list_orders(user: User = Depends(get_current_user), store: Store = Depends(get_store)):
    return orders.list_orders(store, user)

@router.get('/{order_id}', response_model=OrderRead)
def get_order(order_id: int, user: User = Depends(get_current_user), store: Store = Depends(get_store)):
    return orders.get_order(store, order_id, user)

@router.put('/{order_id}', response_model=OrderRead, dependencies=[Depends(require_admin)])
def update_order_status(order_id: int, payload: OrderStatusUpdate, store: Store = Depends(get_store)):
    return orders.update_order_status(store, order_id, payload)

@router.delete('/{order_id}', dependencies=[Depends(require_admin)])
def delete_order(order_id: int, store: Store = Depends(get_store)):
    return orders.delete_order(store, order_id)
