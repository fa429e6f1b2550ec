import pytest

from shop.core.errors import ConflictError, InternalError, NotFoundError, ValidationError
from shop.db.models import Product
from shop.schemas import CategoryCreate, OrderCreate, OrderItemCreate, ProductCreate, ProductQuery, ProductUpdate
from shop.services import products
from shop.services.categories import create_category
from shop.services.orders import place_order
from shop.services.storage import ImageFile


def image(name='shoe.png', content_type='image/png'):
    return ImageFile(filename=name, content_type=content_type, data=b'\x89PNG fake')


def payload(category, **overrides):
    values = dict(title='Runner', description='Light running shoe', price=120, stock=4, category_id=category.id)
    values.update(overrides)
    return ProductCreate(**values)


def test_create_product_with_images(store, media, admin, category):
    product = products.create_product(store, media, payload(category), admin, [image('a.png'), image('b.png')])

    assert product.id is not None
    assert product.seller_id == admin.id
    assert product.category.name == 'Shoes'
    assert product.images == media.uploaded
    assert len(product.images) == 2


def test_create_product_without_images(store, media, admin, category):
    product = products.create_product(store, media, payload(category), admin)
    assert product.images == []
    assert media.uploaded == []


def test_duplicate_title_is_a_conflict(store, media, admin, category):
    products.create_product(store, media, payload(category), admin)
    with pytest.raises(ConflictError, match='already exists'):
        products.create_product(store, media, payload(category), admin, [image()])
    # rejected before anything was uploaded
    assert media.uploaded == []


def test_unknown_category(store, media, admin, category):
    with pytest.raises(NotFoundError, match='category not found'):
        products.create_product(store, media, payload(category, category_id=999), admin, [image()])
    assert media.uploaded == []


def test_images_deleted_when_save_fails(store, media, admin, category, monkeypatch):
    def boom(model, **values):
        raise RuntimeError('disk full')
    monkeypatch.setattr(store, 'create', boom)

    with pytest.raises(InternalError, match='Failed to create product'):
        products.create_product(store, media, payload(category), admin, [image('a.png'), image('b.png')])

    assert len(media.uploaded) == 2
    assert media.deleted == media.uploaded
    monkeypatch.undo()
    assert store.count(Product) == 0


def test_upload_failure_creates_nothing(store, media, admin, category):
    media.fail_upload = True
    with pytest.raises(InternalError, match='Failed to upload images'):
        products.create_product(store, media, payload(category), admin, [image()])
    assert store.count(Product) == 0


def test_get_product(store, make_product):
    p = make_product()
    assert products.get_product(store, p.id).id == p.id
    assert products.get_product(store, p.id).title == products.get_product(store, p.id).title
    with pytest.raises(NotFoundError, match='Product not found'):
        products.get_product(store, 999)


def test_update_product_fields(store, media, make_product):
    p = make_product(price=10, stock=3)
    updated = products.update_product(store, media, p.id, ProductUpdate(price=15, stock=7))
    assert (updated.price, updated.stock) == (15, 7)
    assert updated.title == p.title
    assert media.deleted == []


def test_update_replaces_images_and_deletes_old(store, media, make_product):
    p = make_product(images=[image('old.png')])
    old = list(p.images)

    updated = products.update_product(store, media, p.id, ProductUpdate(), [image('new.png')])

    assert updated.images != old
    assert updated.images == media.uploaded[-1:]
    assert media.deleted == old


def test_update_failure_deletes_new_uploads_and_keeps_old(store, media, make_product, monkeypatch):
    p = make_product(images=[image('old.png')])
    old = list(p.images)

    def boom(obj):
        raise RuntimeError('lost connection')
    monkeypatch.setattr(store, 'save', boom)

    with pytest.raises(InternalError):
        products.update_product(store, media, p.id, ProductUpdate(price=99), [image('new.png')])

    new = media.uploaded[-1]
    assert media.deleted == [new]
    monkeypatch.undo()
    reloaded = products.get_product(store, p.id)
    assert reloaded.images == old
    assert reloaded.price == 10


def test_update_title_conflict(store, media, make_product):
    make_product(title='Taken')
    p = make_product()
    with pytest.raises(ConflictError):
        products.update_product(store, media, p.id, ProductUpdate(title='Taken'))


def test_update_to_unknown_category(store, media, make_product):
    p = make_product()
    with pytest.raises(ConflictError, match='Invalid category'):
        products.update_product(store, media, p.id, ProductUpdate(category_id=999))


def test_update_missing_product(store, media):
    with pytest.raises(NotFoundError):
        products.update_product(store, media, 999, ProductUpdate(price=1))


def test_list_products_pagination(store, make_product):
    for i in range(5):
        make_product(title=f'Item {i}')

    first = products.list_products(store, ProductQuery(page=1, limit=2))
    last = products.list_products(store, ProductQuery(page=3, limit=2))

    assert first['total_products'] == 5
    assert first['total_pages'] == 3
    assert first['current_page'] == 1
    assert first['result'] == 2
    # newest first
    assert [p.title for p in first['products']] == ['Item 4', 'Item 3']
    assert [p.title for p in last['products']] == ['Item 0']


def test_list_products_filters(store, make_product, category):
    boots = create_category(store, CategoryCreate(name='Boots'))
    make_product(title='Red runner', price=50)
    make_product(title='Blue runner', price=150)
    make_product(title='Hiking boot', price=200, category_id=boots.id)

    def titles(**kw):
        page = products.list_products(store, ProductQuery(limit=50, **kw))
        return sorted(p.title for p in page['products'])

    assert titles(search='runner') == ['Blue runner', 'Red runner']
    assert titles(categories=str(boots.id)) == ['Hiking boot']
    assert titles(categories=f'{category.id},{boots.id}') == ['Blue runner', 'Hiking boot', 'Red runner']
    assert titles(min_price=100) == ['Blue runner', 'Hiking boot']
    assert titles(max_price=150, min_price=100) == ['Blue runner']


def test_list_products_bad_category_filter(store):
    with pytest.raises(ValidationError):
        products.list_products(store, ProductQuery(categories='shoes'))


def test_list_products_reports_total_sold(store, customer, make_product, address):
    sold, unsold = make_product(title='Sold', stock=20), make_product(title='Unsold')
    for qty in (2, 3):
        place_order(store, customer, OrderCreate(
            items=[OrderItemCreate(product_id=sold.id, quantity=qty, purchase_at=sold.price, product_name=sold.title)],
            shipping_address=address,
        ))

    page = products.list_products(store, ProductQuery(limit=10))
    by_title = {p.title: p.total_sold for p in page['products']}
    assert by_title == {'Sold': 5, 'Unsold': 0}


def test_delete_product_removes_images(store, media, make_product):
    p = make_product(images=[image('a.png')])
    images, product_id = list(p.images), p.id

    products.delete_product(store, media, product_id)

    assert store.find_by_id(Product, product_id) is None
    assert media.deleted == images


def test_ordered_product_cannot_be_deleted(store, media, customer, make_product, address):
    p = make_product(stock=5)
    place_order(store, customer, OrderCreate(
        items=[OrderItemCreate(product_id=p.id, quantity=1, purchase_at=p.price, product_name=p.title)],
        shipping_address=address,
    ))
    with pytest.raises(ConflictError):
        products.delete_product(store, media, p.id)
    assert store.find_by_id(Product, p.id) is not None


def test_get_product_wraps_unexpected_errors(store, monkeypatch):
    def boom(model, ident, lock=False):
        raise RuntimeError('db down')
    monkeypatch.setattr(store, 'find_by_id', boom)

    with pytest.raises(InternalError, match='Failed to get product: db down'):
        products.get_product(store, 1)


def test_concurrent_duplicate_title_is_a_conflict(store, media, admin, category, monkeypatch):
    products.create_product(store, media, payload(category), admin)
    monkeypatch.setattr(store, 'find_by', lambda model, **fields: None)

    with pytest.raises(ConflictError, match='product Runner already exists'):
        products.create_product(store, media, payload(category), admin, [image()])

    assert media.deleted == media.uploaded
    monkeypatch.undo()
    assert store.count(Product) == 1


def test_search_treats_wildcards_literally(store, make_product):
    make_product(title='Save 50% now')
    make_product(title='Save 500 now')
    make_product(title='snake_case tee')
    make_product(title='snakeXcase tee')

    def titles(search):
        return sorted(p.title for p in products.list_products(store, ProductQuery(search=search, limit=50))['products'])

    assert titles('50%') == ['Save 50% now']
    assert titles('snake_case') == ['snake_case tee']
    assert titles('save 50') == ['Save 50% now', 'Save 500 now']
