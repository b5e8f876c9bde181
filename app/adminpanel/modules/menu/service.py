"""
Admin menu assembly.

Builds the category menu a principal is allowed to see and resolves which
category the admin panel opens on. Categories and modules the principal may
not see are filtered out silently; the only hard failure is the panel view
when neither the requested nor the start category is accessible.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Any

from app.adminpanel.errors import PermissionDenied
from app.adminpanel.modules.categories.store import Category, CategoryStore
from app.adminpanel.modules.registry.service import (
    ModuleDescriptor,
    ModuleRegistry,
    module_admin_url,
    resolve_category_id,
)
from app.adminpanel.modules.settings.service import DisplayNameStyle, ModuleConfig
from app.adminpanel.rbac import MODULE_COMPONENT, WILDCARD, AccessLevel, PermissionOracle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MenuItem:
    url: str
    label: str
    tooltip: str
    module_name: str
    icon_path: str
    sort_order: int
    id: int


@dataclass(frozen=True)
class MenuOption:
    category_id: int
    title: str
    description: str
    items: list[MenuItem] = field(default_factory=list)


@dataclass(frozen=True)
class MenuResult:
    current_category_id: int | None
    menu_options: list[MenuOption]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PanelView:
    category: Category | None
    items: list[MenuItem]
    modules_per_row: int
    show_icons: bool
    installer_warning: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def sort_key(item: MenuItem) -> tuple[int, str]:
    return (item.sort_order, item.module_name)


def display_label(module: ModuleDescriptor, style: DisplayNameStyle) -> str:
    if style == DisplayNameStyle.TECHNICAL_NAME:
        return module.name
    if style == DisplayNameStyle.BOTH:
        return f"{module.display_name} ({module.name})"
    return module.display_name


class MenuAssembler:
    def __init__(
        self,
        categories: CategoryStore,
        modules: ModuleRegistry,
        oracle: PermissionOracle,
        config: ModuleConfig,
    ) -> None:
        self.categories = categories
        self.modules = modules
        self.oracle = oracle
        self.config = config

    def _can_read(self, principal: Any, category: Category) -> bool:
        return self.oracle.check(principal, MODULE_COMPONENT, f"{category.name}::{category.id}", AccessLevel.READ)

    def _can_admin_category(self, principal: Any, category_id: int) -> bool:
        return self.oracle.check(principal, MODULE_COMPONENT, f"::{category_id}", AccessLevel.ADMIN)

    def _editable_modules(self, principal: Any) -> list[ModuleDescriptor]:
        return [
            m
            for m in self.modules.list_admin_capable_modules()
            if self.oracle.check(principal, f"{m.name}::", "ANY", AccessLevel.EDIT)
        ]

    def _group_items(
        self,
        principal: Any,
        known_ids: set[int],
        style: DisplayNameStyle = DisplayNameStyle.NAME,
    ) -> dict[int, list[MenuItem]]:
        groups: dict[int, list[MenuItem]] = defaultdict(list)
        for module in self._editable_modules(principal):
            category_id = resolve_category_id(
                self.modules.get_assigned_category(module.id), known_ids, self.config.default_category_id
            )
            order = self.modules.get_sort_order(module.id)
            groups[category_id].append(
                MenuItem(
                    url=module_admin_url(module.name),
                    label=display_label(module, style),
                    tooltip=module.description,
                    module_name=module.name,
                    icon_path=module.icon_path,
                    sort_order=int(order or 0),
                    id=module.id,
                )
            )
        for items in groups.values():
            items.sort(key=sort_key)
        return groups

    def build_menu(self, principal: Any, requested_category_id: int | None = None) -> MenuResult:
        all_categories = self.categories.get_all()
        known_ids = {c.id for c in all_categories}
        visible = [c for c in all_categories if self._can_read(principal, c)]
        groups = self._group_items(principal, known_ids)
        show_empty = self.oracle.check(principal, WILDCARD, WILDCARD, AccessLevel.ADMIN)

        options = [
            MenuOption(
                category_id=c.id,
                title=c.name,
                description=c.description,
                items=list(groups.get(c.id, [])),
            )
            for c in visible
            if groups.get(c.id) or show_empty
        ]

        if requested_category_id is None:
            requested_category_id = self.config.start_category_id
        option_ids = [o.category_id for o in options]
        if requested_category_id in option_ids:
            current = requested_category_id
        else:
            current = option_ids[0] if option_ids else None
        return MenuResult(current_category_id=current, menu_options=options)

    def resolve_panel_category(self, principal: Any, requested_category_id: int | None) -> Category:
        category = None
        if requested_category_id and requested_category_id > 0:
            if self._can_admin_category(principal, requested_category_id):
                category = self.categories.get_by_id(requested_category_id)

        if category is None:
            start_id = self.config.start_category_id
            if not self._can_admin_category(principal, start_id):
                logger.info("Panel access denied for requested=%s start=%s", requested_category_id, start_id)
                raise PermissionDenied()
            category = self.categories.get_by_id(start_id)
            if category is None:
                raise PermissionDenied("Error! The start category is not available.")
        return category

    def build_panel(self, principal: Any, requested_category_id: int | None) -> PanelView:
        if not (
            self.oracle.check(principal, "::", "::", AccessLevel.EDIT)
            or self.oracle.check(principal, MODULE_COMPONENT, "::", AccessLevel.EDIT)
        ):
            raise PermissionDenied()

        category = self.resolve_panel_category(principal, requested_category_id)
        known_ids = {c.id for c in self.categories.get_all()}
        groups = self._group_items(principal, known_ids, self.config.display_name_style)
        return PanelView(
            category=category,
            items=list(groups.get(category.id, [])),
            modules_per_row=self.config.modules_per_row,
            show_icons=self.config.admin_graphic,
        )
