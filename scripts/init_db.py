import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from contextlib import contextmanager

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.adminpanel.models import PermissionRule, Role, User
from app.adminpanel.modules.categories.models import AdminCategory
from app.adminpanel.modules.registry.models import InstalledModule
from app.adminpanel.modules.registry.service import SqlModuleRegistry
from app.adminpanel.modules.settings.service import (
    SYSTEM_NAMESPACE,
    ModuleConfig,
    SqlConfigStore,
)
from app.adminpanel.rbac import ANONYMOUS_ROLE, AccessLevel

DEFAULT_CATEGORIES = (
    ("System", "Core modules at the heart of operation of the site."),
    ("Layout", "Layout modules for controlling the site's look and feel."),
    ("Users", "Modules for controlling user membership, access rights and profiles."),
    ("Security", "Modules for managing the site's security."),
    ("Content", "Modules for providing content to your users."),
    ("Uncategorised", "Newly-installed or uncategorized modules."),
)

# (name, display name, description, kind, category name)
DEFAULT_MODULES = (
    ("AdminPanel", "Administration panel", "Backend administration interface.", "system", "System"),
    ("Settings", "General settings", "General site configuration interface.", "system", "System"),
    ("Extensions", "Extensions", "Module manager and installer.", "system", "System"),
    ("Blocks", "Blocks", "Block administration module.", "system", "Layout"),
    ("Theme", "Themes", "Theme module to manage site layout.", "system", "Layout"),
    ("Users", "Users", "Provides an interface for configuring and administering registered user accounts.", "system", "Users"),
    ("Groups", "Groups", "User group administration module.", "system", "Users"),
    ("Permissions", "Permission rules", "User permissions manager.", "system", "Users"),
    ("SecurityCenter", "Security Center", "Manage site security and settings.", "system", "Security"),
    ("Categories", "Categories", "Category administration.", "system", "Content"),
)


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def seed_defaults(s: Session) -> None:
    """Default categories, module rows, config values and roles. Idempotent."""
    categories: dict[str, AdminCategory] = {}
    for name, description in DEFAULT_CATEGORIES:
        c = s.query(AdminCategory).filter(AdminCategory.name == name).one_or_none()
        if not c:
            c = AdminCategory(name=name, description=description)
            s.add(c)
        categories[name] = c
    s.flush()

    registry = SqlModuleRegistry(s)
    for name, display_name, description, kind, category_name in DEFAULT_MODULES:
        m = s.query(InstalledModule).filter(InstalledModule.name == name).one_or_none()
        if m:
            continue
        m = InstalledModule(
            name=name,
            display_name=display_name,
            description=description,
            kind=kind,
            icon_path=f"/static/modules/{name.lower()}/admin.png",
            state="active",
            admin_capable=True,
        )
        s.add(m)
        s.flush()
        registry.assign_category(m.id, categories[category_name].id)

    config_store = SqlConfigStore(s)
    if config_store.get("itemsperpage") is None:
        ModuleConfig(
            start_category_id=categories["System"].id,
            default_category_id=categories["Uncategorised"].id,
        ).save(config_store)

    system = SqlConfigStore(s, SYSTEM_NAMESPACE)
    for key, value in (("updatecheck", True), ("updatefrequency", 7), ("useids", False), ("idssoftblock", True)):
        if system.get(key) is None:
            system.set(key, value)

    def ensure_role(key: str, name: str, rules: tuple[tuple[str, str, int], ...]) -> Role:
        r = s.query(Role).filter(Role.key == key).one_or_none()
        if not r:
            r = Role(key=key, name=name)
            for seq, (component, instance, level) in enumerate(rules, start=1):
                r.rules.append(PermissionRule(sequence=seq, component=component, instance=instance, level=level))
            s.add(r)
        return r

    ensure_role("admin", "Administrators", ((".*", ".*", AccessLevel.ADMIN),))
    ensure_role(ANONYMOUS_ROLE, "Anonymous", ((".*", ".*", AccessLevel.NONE),))


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed defaults plus the admin user.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///adminpanel.db").strip()

    with _session_scope(db_url) as s:
        seed_defaults(s)
        s.flush()
        admin_role = s.query(Role).filter(Role.key == "admin").one()

        u = s.query(User).filter(User.email == admin_email).one_or_none()
        if not u:
            u = User(email=admin_email, password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(u)
        if admin_role not in u.roles:
            u.roles.append(admin_role)


def main() -> None:
    seed_only()
    print("Seed complete.")


if __name__ == "__main__":
    main()
