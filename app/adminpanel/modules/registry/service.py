from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.adminpanel.modules.registry.models import AdminModuleLink, InstalledModule


class ModuleKind(str, Enum):
    SYSTEM = "system"
    USER = "user"


@dataclass(frozen=True)
class ModuleDescriptor:
    name: str
    id: int
    display_name: str
    description: str
    icon_path: str
    kind: ModuleKind

    def to_dict(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


def module_admin_url(module_name: str) -> str:
    return f"/admin/modules/{module_name}"


def resolve_category_id(assigned: int | None, known_ids: set[int], default_category_id: int) -> int:
    """Unassigned modules, and links to categories that no longer exist, fall back to the default."""
    if assigned is None or assigned not in known_ids:
        return default_category_id
    return assigned


class ModuleRegistry:
    def list_admin_capable_modules(self) -> list[ModuleDescriptor]:
        raise NotImplementedError

    def resolve_module_id(self, name: str) -> int | None:
        raise NotImplementedError

    def get_assigned_category(self, module_id: int) -> int | None:
        raise NotImplementedError

    def get_sort_order(self, module_id: int) -> int | None:
        raise NotImplementedError

    def assign_category(self, module_id: int, category_id: int) -> bool:
        raise NotImplementedError

    def is_available(self, name: str) -> bool:
        raise NotImplementedError


def _to_descriptor(row: InstalledModule) -> ModuleDescriptor:
    try:
        kind = ModuleKind(row.kind)
    except ValueError:
        kind = ModuleKind.USER
    return ModuleDescriptor(
        name=row.name,
        id=row.id,
        display_name=row.display_name,
        description=row.description or "",
        icon_path=row.icon_path or "",
        kind=kind,
    )


class SqlModuleRegistry(ModuleRegistry):
    def __init__(self, s: Session) -> None:
        self.s = s

    def list_admin_capable_modules(self) -> list[ModuleDescriptor]:
        rows = (
            self.s.query(InstalledModule)
            .filter(InstalledModule.admin_capable.is_(True), InstalledModule.state == "active")
            .order_by(InstalledModule.name.asc())
            .all()
        )
        return [_to_descriptor(r) for r in rows]

    def resolve_module_id(self, name: str) -> int | None:
        return self.s.query(InstalledModule.id).filter(InstalledModule.name == name).scalar()

    def get_assigned_category(self, module_id: int) -> int | None:
        link = self.s.get(AdminModuleLink, module_id)
        return link.category_id if link else None

    def get_sort_order(self, module_id: int) -> int | None:
        link = self.s.get(AdminModuleLink, module_id)
        return link.sort_order if link else None

    def assign_category(self, module_id: int, category_id: int) -> bool:
        """
        Link a module to a category. A module moving into a different category
        is appended after the ones already there.
        """
        if self.s.get(InstalledModule, module_id) is None:
            return False
        link = self.s.get(AdminModuleLink, module_id)
        if link is not None and link.category_id == category_id:
            return True
        max_order = (
            self.s.query(func.max(AdminModuleLink.sort_order))
            .filter(AdminModuleLink.category_id == category_id)
            .scalar()
        )
        next_order = 0 if max_order is None else max_order + 1
        if link is None:
            link = AdminModuleLink(module_id=module_id, category_id=category_id, sort_order=next_order)
            self.s.add(link)
        else:
            link.category_id = category_id
            link.sort_order = next_order
        self.s.flush()
        return True

    def is_available(self, name: str) -> bool:
        state = self.s.query(InstalledModule.state).filter(InstalledModule.name == name).scalar()
        return state == "active"
