from __future__ import annotations

from dataclasses import asdict, dataclass

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.adminpanel.errors import Conflict, NotFound
from app.adminpanel.modules.categories.models import AdminCategory


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    description: str

    def to_dict(self) -> dict:
        return asdict(self)


class CategoryStore:
    def get_all(self, offset: int = 0, limit: int | None = None) -> list[Category]:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError

    def get_by_id(self, category_id: int) -> Category | None:
        raise NotImplementedError

    def create(self, name: str, description: str) -> int:
        raise NotImplementedError

    def update(self, category_id: int, name: str, description: str) -> Category:
        raise NotImplementedError

    def delete(self, category_id: int) -> bool:
        raise NotImplementedError


def _to_category(row: AdminCategory) -> Category:
    return Category(id=row.id, name=row.name, description=row.description or "")


class SqlCategoryStore(CategoryStore):
    """CategoryStore over the request session. Writes are flushed, never committed."""

    def __init__(self, s: Session) -> None:
        self.s = s

    def get_all(self, offset: int = 0, limit: int | None = None) -> list[Category]:
        q = self.s.query(AdminCategory).order_by(AdminCategory.id.asc())
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return [_to_category(row) for row in q.all()]

    def count(self) -> int:
        return self.s.query(func.count(AdminCategory.id)).scalar() or 0

    def get_by_id(self, category_id: int) -> Category | None:
        row = self.s.get(AdminCategory, category_id)
        return _to_category(row) if row else None

    def _name_taken(self, name: str, exclude_id: int | None = None) -> bool:
        q = self.s.query(AdminCategory.id).filter(AdminCategory.name == name)
        if exclude_id is not None:
            q = q.filter(AdminCategory.id != exclude_id)
        return q.first() is not None

    def _flush(self) -> None:
        try:
            self.s.flush()
        except IntegrityError as e:
            self.s.rollback()
            raise Conflict() from e

    def create(self, name: str, description: str) -> int:
        if self._name_taken(name):
            raise Conflict()
        row = AdminCategory(name=name, description=description)
        self.s.add(row)
        self._flush()
        return row.id

    def update(self, category_id: int, name: str, description: str) -> Category:
        row = self.s.get(AdminCategory, category_id)
        if row is None:
            raise NotFound()
        if self._name_taken(name, exclude_id=category_id):
            raise Conflict()
        row.name = name
        row.description = description
        self._flush()
        return _to_category(row)

    def delete(self, category_id: int) -> bool:
        row = self.s.get(AdminCategory, category_id)
        if row is None:
            return False
        self.s.delete(row)
        self.s.flush()
        return True
