import itertools
import os

os.environ['POSTGRES_DSN'] = 'sqlite://'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['JWT_SECRET'] = 'test-secret'
os.environ['LOG_LEVEL'] = 'WARNING'

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shop.api.deps import get_db, get_media
from shop.core.errors import InternalError
from shop.core.security import create_access_token
from shop.db import models  # noqa: F401
from shop.db.models import Role
from shop.db.session import Base
from shop.db.store import Store
from shop.main import app
from shop.schemas import CategoryCreate, ProductCreate, ShippingAddressBase, UserCreate
from shop.services.categories import create_category
from shop.services.products import create_product
from shop.services.storage import MediaHost
from shop.services.users import register_user

PASSWORD = 'P@ssw0rd!'


class FakeMediaHost(MediaHost):
    """Validates like the real host but records uploads and deletes instead of talking to an object store."""

    def __init__(self):
        self.uploaded = []
        self.deleted = []
        self.fail_upload = False
        self._ids = itertools.count(1)

    def upload_many(self, files, folder=None):
        files = list(files or [])
        for f in files:
            self.validate(f)
        if self.fail_upload:
            raise InternalError('Failed to upload images: media host unavailable')
        urls = [f"http://media.test/shop-media/{folder or 'products'}/{next(self._ids)}-{f.filename}" for f in files]
        self.uploaded.extend(urls)
        return urls

    def delete_many(self, urls):
        self.deleted.extend(urls or [])


@pytest.fixture
def engine():
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def store(session_factory):
    db = session_factory()
    yield Store(db)
    db.close()


@pytest.fixture
def media():
    return FakeMediaHost()


@pytest.fixture
def admin(store):
    return register_user(store, UserCreate(fullname='Admin', email='admin@example.com', password=PASSWORD),
                         roles=[Role.ADMIN, Role.USER])


@pytest.fixture
def customer(store):
    return register_user(store, UserCreate(fullname='Jane Doe', email='jane@example.com', password=PASSWORD))


@pytest.fixture
def category(store):
    return create_category(store, CategoryCreate(name='Shoes', description='Things for feet'))


@pytest.fixture
def make_product(store, media, admin, category):
    counter = itertools.count(1)

    def _make(price=10, stock=10, title=None, category_id=None, images=None):
        payload = ProductCreate(title=title or f'Product {next(counter)}', description='A fine product',
                                price=price, stock=stock, category_id=category_id or category.id)
        return create_product(store, media, payload, admin, images)
    return _make


@pytest.fixture
def address():
    return ShippingAddressBase(fullname='Jane Doe', city='Dublin', address='1 Main Street', state='Leinster', country='IE')


@pytest.fixture
def bearer():
    def _headers(user):
        token, _ = create_access_token(user.id, user.email, user.roles)
        return {'Authorization': f'Bearer {token}'}
    return _headers


@pytest.fixture
def client(session_factory, media):
    def _get_db():
        db = session_factory()
        try: yield db
        finally: db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_media] = lambda: media
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
