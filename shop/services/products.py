import logging, math
from typing import List, Optional, Sequence
from sqlalchemy import func, or_, select
from shop.core.config import settings
from shop.core.errors import ConflictError, NotFoundError, ValidationError, wrap_unexpected
from shop.db.models import Category, OrderItem, Product, User
from shop.db.store import Store
from shop.schemas import ProductCreate, ProductQuery, ProductSummary, ProductUpdate
from shop.services.categories import get_category
from shop.services.storage import ImageFile, MediaHost

logger = logging.getLogger(__name__)

@wrap_unexpected('Failed to create product')
def create_product(store: Store, media: MediaHost, payload: ProductCreate, seller: User,
                   images: Optional[Sequence[ImageFile]] = None) -> Product:
    uploaded: List[str] = []
    try:
        if store.find_by(Product, title=payload.title):
            raise ConflictError(f'product {payload.title} already exists')
        get_category(store, payload.category_id)
        if images:
            uploaded = media.upload_many(images, folder=settings.MEDIA_FOLDER)
        with store.transaction(conflict=f'product {payload.title} already exists'):
            product = store.save(store.create(Product, **payload.model_dump(), images=uploaded, seller=seller))
    except Exception:
        # the images are useless without the row that points at them
        if uploaded:
            media.delete_many(uploaded)
        raise
    logger.info('Product %s created by user %s with %d images', product.id, seller.id, len(uploaded))
    return product

def _escape_like(term: str) -> str:
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')

def _conditions(query: ProductQuery) -> list:
    conditions = []
    if query.categories:
        try:
            ids = [int(c) for c in query.categories.split(',') if c.strip()]
        except ValueError:
            raise ValidationError('categories must be a comma separated list of ids')
        conditions.append(Product.category_id.in_(ids))
    if query.search:
        like = '%' + _escape_like(query.search) + '%'
        conditions.append(or_(Product.title.ilike(like, escape='\\'), Product.description.ilike(like, escape='\\')))
    if query.max_price is not None: conditions.append(Product.price <= query.max_price)
    if query.min_price is not None: conditions.append(Product.price >= query.min_price)
    return conditions

@wrap_unexpected('Failed to list products')
def list_products(store: Store, query: ProductQuery) -> dict:
    conditions = _conditions(query)
    total = store.count(Product, *conditions)

    total_sold = func.coalesce(func.sum(OrderItem.quantity), 0).label('total_sold')
    stmt = (select(Product, total_sold)
            .outerjoin(OrderItem, OrderItem.product_id == Product.id)
            .where(*conditions)
            .group_by(Product.id)
            .order_by(Product.created_at.desc(), Product.id.desc())
            .offset((query.page - 1) * query.limit)
            .limit(query.limit))
    products = [ProductSummary.model_validate(p).model_copy(update={'total_sold': int(sold)})
                for p, sold in store.query(stmt)]
    return {
        'current_page': query.page,
        'total_pages': math.ceil(total / query.limit),
        'total_products': total,
        'result': len(products),
        'products': products,
    }

@wrap_unexpected('Failed to get product')
def get_product(store: Store, product_id: int) -> Product:
    product = store.find_by_id(Product, product_id)
    if not product:
        raise NotFoundError('Product not found')
    return product

@wrap_unexpected('Failed to update product')
def update_product(store: Store, media: MediaHost, product_id: int, payload: ProductUpdate,
                   images: Optional[Sequence[ImageFile]] = None) -> Product:
    uploaded: List[str] = []
    try:
        product = get_product(store, product_id)
        old_images = list(product.images or [])
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if 'title' in changes and changes['title'] != product.title and store.find_by(Product, title=changes['title']):
            raise ConflictError(f"product {changes['title']} already exists")
        if 'category_id' in changes and not store.find_by_id(Category, changes['category_id']):
            raise ConflictError('Invalid category')
        if images:
            uploaded = media.upload_many(images, folder=settings.MEDIA_FOLDER)
        with store.transaction(conflict=f"product {changes.get('title', product.title)} already exists"):
            for k, v in changes.items(): setattr(product, k, v)
            if uploaded:
                product.images = uploaded
            store.save(product)
    except Exception:
        if uploaded:
            media.delete_many(uploaded)
        raise
    # old images only go once the new ones are committed
    if uploaded and old_images:
        media.delete_many(old_images)
    return product

@wrap_unexpected('Failed to delete product')
def delete_product(store: Store, media: MediaHost, product_id: int) -> dict:
    product = get_product(store, product_id)
    if store.count(OrderItem, OrderItem.product_id == product.id):
        raise ConflictError('product has been ordered and cannot be deleted')
    images = list(product.images or [])
    with store.transaction():
        store.remove(product)
    media.delete_many(images)
    return {'message': 'product deleted successfully'}
