from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from app.adminpanel.errors import NotFound, PermissionDenied, ValidationError
from app.adminpanel.modules.categories.store import Category, CategoryStore
from app.adminpanel.rbac import CATEGORY_COMPONENT, MODULE_COMPONENT, AccessLevel, PermissionOracle

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 32


@dataclass(frozen=True)
class DeleteConfirmation:
    """Phase 1 of a delete: nothing changed yet, the caller must resubmit with confirmed=True."""

    category: Category

    def to_dict(self) -> dict:
        return {"confirmation_required": True, "category": self.category.to_dict()}


@dataclass(frozen=True)
class DeleteResult:
    category: Category

    def to_dict(self) -> dict:
        return {"deleted": True, "category": self.category.to_dict(), "message": "Done! Category deleted."}


@dataclass(frozen=True)
class CategoryPage:
    categories: list[Category]
    start: int
    items_per_page: int
    total: int

    def to_dict(self) -> dict:
        return {
            "categories": [c.to_dict() for c in self.categories],
            "pager": {"start": self.start, "itemsperpage": self.items_per_page, "numitems": self.total},
        }


def normalize_name(name: str | None) -> str:
    return (name or "").strip()


def validate_category_payload(name: str, description: str) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not name:
        errors["name"] = "Error! You must give the category a name."
    elif len(name) > NAME_MAX_LENGTH:
        errors["name"] = f"Error! Category names are limited to {NAME_MAX_LENGTH} characters."
    return errors


class CategoryLifecycle:
    def __init__(self, store: CategoryStore, oracle: PermissionOracle) -> None:
        self.store = store
        self.oracle = oracle

    def _require(self, principal: Any, component: str, instance: str, level: AccessLevel) -> None:
        if not self.oracle.check(principal, component, instance, level):
            raise PermissionDenied()

    def _get_or_404(self, category_id: int | None) -> Category:
        category = self.store.get_by_id(category_id) if category_id else None
        if category is None:
            raise NotFound()
        return category

    def get(self, category_id: int, principal: Any) -> Category:
        category = self._get_or_404(category_id)
        self._require(principal, CATEGORY_COMPONENT, f"{category.name}::{category.id}", AccessLevel.EDIT)
        return category

    def list_categories(self, principal: Any, start: int = 0, items_per_page: int = 5) -> CategoryPage:
        self._require(principal, MODULE_COMPONENT, "::", AccessLevel.EDIT)
        start = max(int(start or 0), 0)
        rows = self.store.get_all(offset=start, limit=items_per_page)
        visible = [
            c
            for c in rows
            if self.oracle.check(principal, MODULE_COMPONENT, f"{c.name}::{c.id}", AccessLevel.READ)
        ]
        return CategoryPage(categories=visible, start=start, items_per_page=items_per_page, total=self.store.count())

    def create(self, name: str, description: str, principal: Any) -> int:
        name = normalize_name(name)
        description = (description or "").strip()
        self._require(principal, CATEGORY_COMPONENT, f"{name}::", AccessLevel.ADD)
        errors = validate_category_payload(name, description)
        if errors:
            raise ValidationError(errors)
        category_id = self.store.create(name, description)
        logger.info("Created admin category %s (id=%s)", name, category_id)
        return category_id

    def update(self, category_id: int, name: str, description: str, principal: Any) -> Category:
        target = self._get_or_404(category_id)
        name = normalize_name(name)
        description = (description or "").strip()

        # Check against the stored name so a rename cannot dodge a per-name rule.
        self._require(principal, CATEGORY_COMPONENT, f"{target.name}::{target.id}", AccessLevel.EDIT)
        if name != target.name:
            self._require(principal, CATEGORY_COMPONENT, f"{name}::{target.id}", AccessLevel.EDIT)

        errors = validate_category_payload(name, description)
        if errors:
            raise ValidationError(errors)
        return self.store.update(target.id, name, description)

    def _check_deletable(self, category_id: int, principal: Any) -> Category:
        category = self._get_or_404(category_id)
        self._require(principal, CATEGORY_COMPONENT, f"{category.name}::{category.id}", AccessLevel.DELETE)
        return category

    def delete(self, category_id: int, confirmed: bool, principal: Any) -> DeleteConfirmation | DeleteResult:
        # Both phases validate against current store state; phase 1's answer is never reused.
        category = self._check_deletable(category_id, principal)
        if not confirmed:
            return DeleteConfirmation(category=category)
        if not self.store.delete(category.id):
            raise NotFound()
        logger.info("Deleted admin category %s (id=%s)", category.name, category.id)
        return DeleteResult(category=category)
