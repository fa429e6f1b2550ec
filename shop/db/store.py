from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Type, TypeVar
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from shop.core.errors import ConflictError

T = TypeVar('T')

class Store:
    """Repository-style access to the relational store.

    Services only talk to this object, never to the session directly, so the
    unit-of-work boundary is always an explicit ``with store.transaction():``.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, model: Type[T], ident: Any, lock: bool = False) -> Optional[T]:
        # lock=True issues SELECT ... FOR UPDATE and re-reads the row
        if lock:
            return self.db.get(model, ident, with_for_update=True, populate_existing=True)
        return self.db.get(model, ident)

    def find_by(self, model: Type[T], **fields) -> Optional[T]:
        return self.db.execute(select(model).filter_by(**fields)).scalars().first()

    def find_all(self, model: Type[T], *order_by, **fields) -> List[T]:
        stmt = select(model).filter_by(**fields)
        if order_by:
            stmt = stmt.order_by(*order_by)
        return list(self.db.execute(stmt).scalars().all())

    def query(self, stmt) -> List[Any]:
        return list(self.db.execute(stmt).all())

    def count(self, model, *conditions) -> int:
        return self.db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0

    def create(self, model: Type[T], **values) -> T:
        obj = model(**values)
        self.db.add(obj)
        return obj

    def save(self, obj: T) -> T:
        self.db.add(obj)
        self.db.flush()
        return obj

    def remove(self, *objs: Any) -> None:
        # one flush, so parents and children go in the same unit of work
        for obj in objs:
            self.db.delete(obj)
        self.db.flush()

    @contextmanager
    def transaction(self, conflict: Optional[str] = None) -> Iterator['Store']:
        # conflict: message for a unique constraint lost to a concurrent writer
        try:
            yield self
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if conflict:
                raise ConflictError(conflict) from exc
            raise
        except Exception:
            self.db.rollback()
            raise
