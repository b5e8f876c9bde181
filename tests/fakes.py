"""In-memory stand-ins for the store, registry and permission interfaces."""
from __future__ import annotations

from typing import Any

from app.adminpanel.errors import Conflict, NotFound
from app.adminpanel.modules.categories.store import Category, CategoryStore
from app.adminpanel.modules.registry.service import ModuleDescriptor, ModuleKind, ModuleRegistry
from app.adminpanel.modules.settings.service import ConfigStore
from app.adminpanel.rbac import AccessLevel, PermissionOracle


class FakeCategoryStore(CategoryStore):
    def __init__(self, categories: list[Category] | None = None) -> None:
        self.rows: dict[int, Category] = {c.id: c for c in categories or []}
        self.writes = 0

    def get_all(self, offset: int = 0, limit: int | None = None) -> list[Category]:
        rows = [self.rows[k] for k in sorted(self.rows)][offset:]
        return rows if limit is None else rows[:limit]

    def count(self) -> int:
        return len(self.rows)

    def get_by_id(self, category_id: int) -> Category | None:
        return self.rows.get(category_id)

    def create(self, name: str, description: str) -> int:
        if any(c.name == name for c in self.rows.values()):
            raise Conflict()
        new_id = max(self.rows, default=0) + 1
        self.rows[new_id] = Category(id=new_id, name=name, description=description)
        self.writes += 1
        return new_id

    def update(self, category_id: int, name: str, description: str) -> Category:
        if category_id not in self.rows:
            raise NotFound()
        if any(c.name == name and c.id != category_id for c in self.rows.values()):
            raise Conflict()
        self.rows[category_id] = Category(id=category_id, name=name, description=description)
        self.writes += 1
        return self.rows[category_id]

    def delete(self, category_id: int) -> bool:
        if self.rows.pop(category_id, None) is None:
            return False
        self.writes += 1
        return True


class FakeModuleRegistry(ModuleRegistry):
    def __init__(self) -> None:
        self.modules: dict[str, ModuleDescriptor] = {}
        self.links: dict[int, tuple[int | None, int]] = {}
        self.inactive: set[str] = set()

    def add(self, name: str, category_id: int | None = None, sort_order: int = 0, **kw: Any) -> ModuleDescriptor:
        module = ModuleDescriptor(
            name=name,
            id=len(self.modules) + 1,
            display_name=kw.get("display_name", name.title()),
            description=kw.get("description", ""),
            icon_path="",
            kind=ModuleKind.USER,
        )
        self.modules[name] = module
        if category_id is not None:
            self.links[module.id] = (category_id, sort_order)
        return module

    def list_admin_capable_modules(self) -> list[ModuleDescriptor]:
        return [self.modules[n] for n in sorted(self.modules) if n not in self.inactive]

    def resolve_module_id(self, name: str) -> int | None:
        m = self.modules.get(name)
        return m.id if m else None

    def get_assigned_category(self, module_id: int) -> int | None:
        link = self.links.get(module_id)
        return link[0] if link else None

    def get_sort_order(self, module_id: int) -> int | None:
        link = self.links.get(module_id)
        return link[1] if link else None

    def assign_category(self, module_id: int, category_id: int) -> bool:
        if module_id not in {m.id for m in self.modules.values()}:
            return False
        current = self.links.get(module_id)
        if current and current[0] == category_id:
            return True
        orders = [o for c, o in self.links.values() if c == category_id]
        self.links[module_id] = (category_id, max(orders) + 1 if orders else 0)
        return True

    def is_available(self, name: str) -> bool:
        return name in self.modules and name not in self.inactive


class FakeConfigStore(ConfigStore):
    def __init__(self, values: dict | None = None, namespace: str = "AdminPanel") -> None:
        self.values = dict(values or {})
        self.namespace = namespace
        self.writes: list[str] = []

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.values[name] = value
        self.writes.append(name)


class FakeOracle(PermissionOracle):
    """
    Grants `default` everywhere except where `denied` lists a
    (component, instance) pair, which gets NONE.
    """

    def __init__(self, default: AccessLevel = AccessLevel.ADMIN, denied: set[tuple[str, str]] | None = None) -> None:
        self.default = default
        self.denied = set(denied or ())
        self.calls: list[tuple[str, str, AccessLevel]] = []

    def check(self, principal: Any, component: str, instance: str, level: AccessLevel) -> bool:
        self.calls.append((component, instance, level))
        if (component, instance) in self.denied:
            return False
        return self.default >= level
