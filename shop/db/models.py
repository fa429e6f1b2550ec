from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import BigInteger, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, CheckConstraint, text
from datetime import datetime
from enum import Enum
from typing import List, Optional
from shop.db.session import Base

class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"

class User(Base):
    __tablename__ = 'users'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fullname: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=lambda: [Role.USER.value], server_default=text("'[\"user\"]'"))
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=lambda: datetime.utcnow())
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=lambda: datetime.utcnow(), onupdate=lambda: datetime.utcnow())
    products = relationship('Product', back_populates='seller')
    orders = relationship('Order', back_populates='user')
    addresses = relationship('ShippingAddress', back_populates='user')

class Category(Base):
    __tablename__ = 'categories'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    products = relationship('Product', back_populates='category')

class Product(Base):
    __tablename__ = 'products'
    __table_args__ = (CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(240), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, default='')
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list, server_default=text("'[]'"))
    category_id: Mapped[int] = mapped_column(ForeignKey('categories.id'), nullable=False)
    seller_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=lambda: datetime.utcnow())
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=lambda: datetime.utcnow(), onupdate=lambda: datetime.utcnow())
    category = relationship('Category', back_populates='products')
    seller = relationship('User', back_populates='products')
    order_items = relationship('OrderItem', back_populates='product')

class Order(Base):
    __tablename__ = 'orders'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id'), index=True)
    is_delivered: Mapped[bool] = mapped_column(Boolean, default=False)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(), nullable=True)
    total_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=lambda: datetime.utcnow())
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=lambda: datetime.utcnow(), onupdate=lambda: datetime.utcnow())
    user = relationship('User', back_populates='orders')
    items = relationship('OrderItem', back_populates='order', order_by='OrderItem.id')
    shipping_address = relationship('ShippingAddress', back_populates='order', uselist=False)

class OrderItem(Base):
    __tablename__ = 'order_items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'))
    product_id: Mapped[int] = mapped_column(ForeignKey('products.id'))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(String(240), nullable=False)
    purchase_at: Mapped[int] = mapped_column(Integer, nullable=False)  # unit price snapshot
    order = relationship('Order', back_populates='items')
    product = relationship('Product', back_populates='order_items')

class ShippingAddress(Base):
    __tablename__ = 'shipping_addresses'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'), unique=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id'))
    fullname: Mapped[str] = mapped_column(String(120))
    city: Mapped[str] = mapped_column(String(120))
    address: Mapped[str] = mapped_column(String(255))
    state: Mapped[str] = mapped_column(String(120))
    country: Mapped[str] = mapped_column(String(120))
    order = relationship('Order', back_populates='shipping_address')
    user = relationship('User', back_populates='addresses')
