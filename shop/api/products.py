from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from typing import Annotated, List, Optional
from shop.api.deps import get_media, get_store, require_admin
from shop.db.models import User
from shop.db.store import Store
from shop.schemas import ProductCreate, ProductPage, ProductQuery, ProductRead, ProductUpdate
from shop.services import products
from shop.services.storage import ImageFile, MediaHost

router = APIRouter()

def _read_images(images: Optional[List[UploadFile]]) -> List[ImageFile]:
    return [ImageFile(filename=f.filename or '', content_type=f.content_type or 'application/octet-stream', data=f.file.read())
            for f in images or [] if f.filename]

@router.get('', response_model=ProductPage)
def list_products(query: Annotated[ProductQuery, Query()], store: Store = Depends(get_store)):
    return products.list_products(store, query)

@router.get('/{product_id}', response_model=ProductRead)
def get_product(product_id: int, store: Store = Depends(get_store)):
    return products.get_product(store, product_id)

@router.post('', response_model=ProductRead, status_code=201)
def create_product(
    title: str = Form(..., min_length=1),
    description: str = Form(..., min_length=1),
    price: int = Form(..., gt=0),
    stock: int = Form(..., ge=0),
    category_id: int = Form(...),
    images: Optional[List[UploadFile]] = File(None),
    user: User = Depends(require_admin),
    store: Store = Depends(get_store),
    media: MediaHost = Depends(get_media),
):
    payload = ProductCreate(title=title, description=description, price=price, stock=stock, category_id=category_id)
    return products.create_product(store, media, payload, user, _read_images(images))

@router.put('/{product_id}', response_model=ProductRead, dependencies=[Depends(require_admin)])
def update_product(
    product_id: int,
    title: Optional[str] = Form(None, min_length=1),
    description: Optional[str] = Form(None, min_length=1),
    price: Optional[int] = Form(None, gt=0),
    stock: Optional[int] = Form(None, ge=0),
    category_id: Optional[int] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    store: Store = Depends(get_store),
    media: MediaHost = Depends(get_media),
):
    fields = dict(title=title, description=description, price=price, stock=stock, category_id=category_id)
    payload = ProductUpdate(**{k: v for k, v in fields.items() if v is not None})
    return products.update_product(store, media, product_id, payload, _read_images(images))

@router.delete('/{product_id}', dependencies=[Depends(require_admin)])
def delete_product(product_id: int, store: Store = Depends(get_store), media: MediaHost = Depends(get_media)):
    return products.delete_product(store, media, product_id)
