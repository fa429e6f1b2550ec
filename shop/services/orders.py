"""Order placement and lifecycle.

``place_order`` is the one multi-row write in the shop: every stock decrement,
the order, its items and its shipping address commit together or not at all.
Products are read with a row lock so two concurrent orders cannot both pass
the stock check for the last units.
"""
import logging
from typing import List
from shop.core.auth import authorize, role_names
from shop.core.errors import ConflictError, NotFoundError, ValidationError, wrap_unexpected
from shop.db.models import Order, OrderItem, Product, Role, ShippingAddress, User
from shop.db.store import Store
from shop.schemas import OrderCreate, OrderStatusUpdate

logger = logging.getLogger(__name__)

@wrap_unexpected('Failed to place order')
def place_order(store: Store, user: User, payload: OrderCreate) -> Order:
    if not payload.items:
        raise ValidationError('Order should have at least one item')

    with store.transaction():
        total_price = 0
        lines = []
        for item in payload.items:
            product = store.find_by_id(Product, item.product_id, lock=True)
            if product is None:
                raise NotFoundError(f'{item.product_name} is not available')
            # strict: the last unit in stock is never sold
            if product.stock <= item.quantity:
                raise ConflictError('Sorry, the product is out of stock')
            total_price += item.quantity * product.price
            product.stock -= item.quantity
            store.save(product)
            lines.append((product, item))

        order = store.create(Order, user=user, total_price=total_price, is_delivered=False)
        for product, item in lines:
            store.create(OrderItem, order=order, product=product, product_name=item.product_name,
                         purchase_at=item.purchase_at, quantity=item.quantity)
        store.create(ShippingAddress, order=order, user=user, **payload.shipping_address.model_dump())
        store.save(order)

    logger.info('Order %s placed by user %s: %d items, total %d', order.id, user.id, len(lines), total_price)
    return order

@wrap_unexpected('Failed to get order')
def get_order(store: Store, order_id: int, user: User) -> Order:
    order = store.find_by_id(Order, order_id)
    if not order:
        raise NotFoundError('order not found')
    if order.user_id != user.id:
        authorize(user, [Role.ADMIN])
    return order

@wrap_unexpected('Failed to list orders')
def list_orders(store: Store, user: User) -> List[Order]:
    if Role.ADMIN.value in role_names(user.roles):
        return store.find_all(Order, Order.id.desc())
    return store.find_all(Order, Order.id.desc(), user_id=user.id)

@wrap_unexpected('Failed to update order status')
def update_order_status(store: Store, order_id: int, payload: OrderStatusUpdate) -> Order:
    with store.transaction():
        order = store.find_by_id(Order, order_id, lock=True)
        if not order:
            raise NotFoundError('order not found')
        # delivered is terminal
        if order.delivered_at is not None:
            raise ConflictError('order has been delivered already')
        order.is_delivered = payload.is_delivered
        order.delivered_at = payload.delivered_at
        store.save(order)
    logger.info('Order %s marked delivered=%s at %s', order_id, payload.is_delivered, payload.delivered_at)
    return order

@wrap_unexpected('Failed to delete order')
def delete_order(store: Store, order_id: int) -> dict:
    with store.transaction():
        order = store.find_by_id(Order, order_id, lock=True)
        if not order:
            raise NotFoundError('order not found')
        owned = list(order.items)
        if order.shipping_address is not None:
            owned.append(order.shipping_address)
        store.remove(*owned, order)
    return {'message': f'order {order_id} deleted successfully'}
