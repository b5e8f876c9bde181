from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from enum import IntEnum
from typing import Any

from sqlalchemy.orm import Session

from app.adminpanel.errors import PartialWarning, PermissionDenied, ValidationError
from app.adminpanel.models import ModuleVar
from app.adminpanel.modules.categories.store import Category, CategoryStore
from app.adminpanel.modules.registry.service import ModuleRegistry, resolve_category_id
from app.adminpanel.rbac import MODULE_COMPONENT, AccessLevel, PermissionOracle

logger = logging.getLogger(__name__)

CONFIG_NAMESPACE = "AdminPanel"
SYSTEM_NAMESPACE = "System"
THEME_NAMESPACE = "Theme"


class ConfigStore:
    """Key/value access to one configuration namespace."""

    namespace: str

    def get(self, name: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, name: str, value: Any) -> None:
        raise NotImplementedError


class SqlConfigStore(ConfigStore):
    def __init__(self, s: Session, namespace: str = CONFIG_NAMESPACE) -> None:
        self.s = s
        self.namespace = namespace

    def _row(self, name: str) -> ModuleVar | None:
        return (
            self.s.query(ModuleVar)
            .filter(ModuleVar.namespace == self.namespace, ModuleVar.name == name)
            .one_or_none()
        )

    def get(self, name: str, default: Any = None) -> Any:
        row = self._row(name)
        if row is None or row.value_json is None:
            return default
        try:
            return json.loads(row.value_json)
        except json.JSONDecodeError:
            logger.warning("Unreadable config value %s.%s; using default", self.namespace, name)
            return default

    def set(self, name: str, value: Any) -> None:
        row = self._row(name)
        if row is None:
            row = ModuleVar(namespace=self.namespace, name=name)
            self.s.add(row)
        row.value_json = json.dumps(value)
        self.s.flush()


class DisplayNameStyle(IntEnum):
    NAME = 1
    TECHNICAL_NAME = 2
    BOTH = 3


_TRUE_STRINGS = ("1", "true", "on", "yes")


def parse_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in _TRUE_STRINGS
    return bool(raw)


def parse_positive_int(raw: Any) -> int | None:
    """Positive integer from form/JSON input, or None when it does not parse."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 1 else None
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value >= 1 else None


def _stored_int(raw: Any, default: int) -> int:
    value = parse_positive_int(raw)
    return default if value is None else value


@dataclass
class ModuleConfig:
    """
    Module-wide admin panel settings.

    Load at the start of an operation with `load()`, persist with `save()`.
    """

    items_per_page: int = 5
    modules_per_row: int = 5
    display_name_style: DisplayNameStyle = DisplayNameStyle.NAME
    start_category_id: int = 1
    default_category_id: int = 1
    admin_theme: str | None = None
    ignore_installer_check: bool = False
    admin_graphic: bool = False

    # dataclass field -> stored key
    KEYS = {
        "items_per_page": "itemsperpage",
        "modules_per_row": "modulesperrow",
        "display_name_style": "displaynametype",
        "start_category_id": "startcategory",
        "default_category_id": "defaultcategory",
        "admin_theme": "admintheme",
        "ignore_installer_check": "ignoreinstallercheck",
        "admin_graphic": "admingraphic",
    }

    @classmethod
    def load(cls, store: ConfigStore) -> "ModuleConfig":
        d = cls()
        k = cls.KEYS
        try:
            style = DisplayNameStyle(int(store.get(k["display_name_style"], d.display_name_style)))
        except (TypeError, ValueError):
            style = d.display_name_style
        theme = store.get(k["admin_theme"], d.admin_theme)
        return cls(
            items_per_page=_stored_int(store.get(k["items_per_page"]), d.items_per_page),
            modules_per_row=_stored_int(store.get(k["modules_per_row"]), d.modules_per_row),
            display_name_style=style,
            start_category_id=_stored_int(store.get(k["start_category_id"]), d.start_category_id),
            default_category_id=_stored_int(store.get(k["default_category_id"]), d.default_category_id),
            admin_theme=theme or None,
            ignore_installer_check=parse_bool(store.get(k["ignore_installer_check"], False)),
            admin_graphic=parse_bool(store.get(k["admin_graphic"], False)),
        )

    def save(self, store: ConfigStore) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, IntEnum):
                value = int(value)
            store.set(self.KEYS[f.name], value)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["display_name_style"] = self.display_name_style.name
        return d


@dataclass(frozen=True)
class ConfigUpdateResult:
    config: ModuleConfig
    warnings: list[PartialWarning] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "message": "Done! Saved module configuration.",
            "config": self.config.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class ModuleCategoryRow:
    name: str
    display_name: str
    category_id: int


@dataclass(frozen=True)
class ConfigForm:
    config: ModuleConfig
    categories: list[Category]
    modules: list[ModuleCategoryRow]

    def to_dict(self) -> dict:
        return {
            "config": self.config.to_dict(),
            "categories": [c.to_dict() for c in self.categories],
            "modules": [asdict(m) for m in self.modules],
        }


def _validate_fields(raw: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
    errors: dict[str, str] = {}
    values: dict[str, Any] = {}

    def positive(key: str, label: str, default: int) -> None:
        if key not in raw or raw[key] is None or raw[key] == "":
            values[key] = default
            return
        parsed = parse_positive_int(raw[key])
        if parsed is None:
            errors[key] = f"Error! You must enter a number for the '{label}' setting."
        else:
            values[key] = parsed

    positive("modulesperrow", "Modules per row", 5)
    positive("itemsperpage", "Modules per page", 5)
    positive("startcategory", "Category initially selected", 1)
    positive("defaultcategory", "Default category for newly-added modules", 1)

    style_raw = raw.get("displaynametype")
    if style_raw in (None, ""):
        values["displaynametype"] = DisplayNameStyle.NAME
    else:
        try:
            values["displaynametype"] = DisplayNameStyle(int(str(style_raw).strip()))
        except ValueError:
            errors["displaynametype"] = "Error! Unknown module name display style."

    values["ignoreinstallercheck"] = parse_bool(raw.get("ignoreinstallercheck", False))
    values["admingraphic"] = parse_bool(raw.get("admingraphic", False))
    theme = raw.get("admintheme")
    values["admintheme"] = (str(theme).strip() or None) if theme is not None else None
    return values, errors


class ConfigUpdater:
    def __init__(
        self,
        store: ConfigStore,
        categories: CategoryStore,
        modules: ModuleRegistry,
        oracle: PermissionOracle,
    ) -> None:
        self.store = store
        self.categories = categories
        self.modules = modules
        self.oracle = oracle

    def _require_admin(self, principal: Any) -> None:
        if not self.oracle.check(principal, MODULE_COMPONENT, "::", AccessLevel.ADMIN):
            raise PermissionDenied()

    def form(self, principal: Any) -> ConfigForm:
        self._require_admin(principal)
        config = ModuleConfig.load(self.store)
        all_categories = self.categories.get_all()
        known_ids = {c.id for c in all_categories}
        visible = [
            c
            for c in all_categories
            if self.oracle.check(principal, MODULE_COMPONENT, f"{c.name}::{c.id}", AccessLevel.READ)
        ]
        rows = [
            ModuleCategoryRow(
                name=m.name,
                display_name=m.display_name,
                category_id=resolve_category_id(
                    self.modules.get_assigned_category(m.id), known_ids, config.default_category_id
                ),
            )
            for m in self.modules.list_admin_capable_modules()
        ]
        return ConfigForm(config=config, categories=visible, modules=rows)

    def apply(
        self,
        raw_fields: Mapping[str, Any],
        module_category_map: Mapping[str, Any] | None,
        principal: Any,
    ) -> ConfigUpdateResult:
        self._require_admin(principal)

        values, errors = _validate_fields(raw_fields or {})
        if errors:
            raise ValidationError(errors)

        config = ModuleConfig(
            items_per_page=values["itemsperpage"],
            modules_per_row=values["modulesperrow"],
            display_name_style=values["displaynametype"],
            start_category_id=values["startcategory"],
            default_category_id=values["defaultcategory"],
            admin_theme=values["admintheme"],
            ignore_installer_check=values["ignoreinstallercheck"],
            admin_graphic=values["admingraphic"],
        )
        config.save(self.store)

        warnings: list[PartialWarning] = []
        for name, target in (module_category_map or {}).items():
            warning = self._assign(name, target)
            if warning is not None:
                warnings.append(warning)
        if warnings:
            logger.warning("Config saved with %d module assignment warning(s)", len(warnings))
        return ConfigUpdateResult(config=config, warnings=warnings)

    def _assign(self, module_name: str, target: Any) -> PartialWarning | None:
        if target in (None, "", 0, "0"):
            return None

        def warn() -> PartialWarning:
            category = self.categories.get_by_id(category_id) if category_id else None
            label = category.name if category else str(target)
            return PartialWarning(
                module=module_name,
                category_id=target,
                message=f"Error! Could not add module {module_name} to module category {label}.",
            )

        category_id = parse_positive_int(target)
        module_id = self.modules.resolve_module_id(module_name)
        if category_id is None or module_id is None:
            return warn()
        if self.categories.get_by_id(category_id) is None:
            return warn()
        if not self.modules.assign_category(module_id, category_id):
            return warn()
        return None
