from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime

# --- users ---
class UserCreate(BaseModel):
    fullname: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)

class SignInPayload(BaseModel):
    email: EmailStr
    password: str

class PasswordUpdate(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)

class UserRead(BaseModel):
    id: int
    fullname: str
    email: EmailStr
    roles: List[str]
    class Config: from_attributes = True

class SellerRead(BaseModel):
    id: int
    fullname: str
    email: EmailStr
    class Config: from_attributes = True

class SignInResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    user: UserRead

# --- categories ---
class CategoryBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
class CategoryCreate(CategoryBase): pass
class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
class CategoryRead(CategoryBase):
    id: int
    class Config: from_attributes = True

# --- products ---
class ProductBase(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    price: int = Field(gt=0)
    stock: int = Field(ge=0)
    category_id: int
class ProductCreate(ProductBase): pass
class ProductUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    price: Optional[int] = Field(default=None, gt=0)
    stock: Optional[int] = Field(default=None, ge=0)
    category_id: Optional[int] = None
class ProductRead(ProductBase):
    id: int
    images: List[str] = []
    category: Optional[CategoryRead] = None
    seller: Optional[SellerRead] = None
    created_at: datetime
    updated_at: datetime
    class Config: from_attributes = True
class ProductSummary(ProductRead):
    total_sold: int = 0

class ProductQuery(BaseModel):
    categories: Optional[str] = None  # comma separated category ids
    search: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=2, ge=1)

class ProductPage(BaseModel):
    current_page: int
    total_pages: int
    total_products: int
    result: int
    products: List[ProductSummary] = []

# --- orders ---
class OrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)
    purchase_at: int
    product_name: str

class ShippingAddressBase(BaseModel):
    fullname: str
    city: str
    address: str
    state: str
    country: str

class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = []
    shipping_address: ShippingAddressBase

class OrderStatusUpdate(BaseModel):
    is_delivered: bool
    delivered_at: datetime

class ShippingAddressRead(ShippingAddressBase):
    id: int
    class Config: from_attributes = True

class OrderItemRead(BaseModel):
    id: int
    product_id: int
    product_name: str
    purchase_at: int
    quantity: int
    class Config: from_attributes = True

class OrderRead(BaseModel):
    id: int
    user_id: int
    total_price: int
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    items: List[OrderItemRead] = []
    shipping_address: Optional[ShippingAddressRead] = None
    created_at: datetime
    updated_at: datetime
    class Config: from_attributes = True
