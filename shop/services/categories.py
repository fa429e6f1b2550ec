import logging
from typing import List
from shop.core.config import settings
from shop.core.errors import ConflictError, NotFoundError, wrap_unexpected
from shop.db.models import Category, OrderItem, Product
from shop.db.store import Store
from shop.schemas import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)

@wrap_unexpected('Failed to create category')
def create_category(store: Store, payload: CategoryCreate) -> Category:
    if store.find_by(Category, name=payload.name):
        raise ConflictError('category already exist')
    with store.transaction(conflict='category already exist'):
        category = store.create(Category, **payload.model_dump())
    return category

@wrap_unexpected('Failed to list categories')
def list_categories(store: Store) -> List[Category]:
    return store.find_all(Category, Category.name)

@wrap_unexpected('Failed to get category')
def get_category(store: Store, category_id: int) -> Category:
    category = store.find_by_id(Category, category_id)
    if not category:
        raise NotFoundError('category not found')
    return category

@wrap_unexpected('Failed to update category')
def update_category(store: Store, category_id: int, payload: CategoryUpdate) -> Category:
    category = get_category(store, category_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if 'name' in changes and changes['name'] != category.name and store.find_by(Category, name=changes['name']):
        raise ConflictError('category already exist')
    with store.transaction(conflict='category already exist'):
        for k, v in changes.items(): setattr(category, k, v)
        store.save(category)
    return category

@wrap_unexpected('Failed to delete category')
def delete_category(store: Store, category_id: int, media=None) -> dict:
    category = get_category(store, category_id)
    products = store.find_all(Product, category_id=category.id)
    if products and settings.CATEGORY_DELETE_POLICY != 'cascade':
        raise ConflictError('category has products')
    if products and store.count(OrderItem, OrderItem.product_id.in_([p.id for p in products])):
        raise ConflictError('category has products that have been ordered')
    images = [url for p in products for url in (p.images or [])]
    with store.transaction():
        store.remove(*products, category)
    if products:
        logger.info('Deleted category %s together with %d products', category_id, len(products))
    if images and media is not None:
        media.delete_many(images)
    return {'message': f'{category_id} has been deleted successfully'}
