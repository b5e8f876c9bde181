import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.adminpanel.models import Base, PermissionRule, Role, User
from app.adminpanel.rbac import AccessLevel, RolePermissionOracle


@pytest.fixture()
def s(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path/'rbac.db'}", future=True)
    Base.metadata.create_all(bind=engine)
    with Session(engine) as session:
        yield session


def _role(s, key, *rules):
    r = Role(key=key, name=key.title())
    for seq, (component, instance, level) in enumerate(rules, start=1):
        r.rules.append(PermissionRule(sequence=seq, component=component, instance=instance, level=level))
    s.add(r)
    return r


def _user(s, email, *roles, active=True):
    u = User(email=email, password_hash="x", is_active=active)
    u.roles.extend(roles)
    s.add(u)
    s.flush()
    return u


def test_first_matching_rule_wins(s):
    role = _role(
        s,
        "editor",
        ("AdminPanel::Category", "Secret::.*", AccessLevel.NONE),
        (".*", ".*", AccessLevel.EDIT),
    )
    u = _user(s, "e@example.com", role)
    oracle = RolePermissionOracle(s)
    assert oracle.check(u, "AdminPanel::Category", "Secret::3", AccessLevel.READ) is False
    assert oracle.check(u, "AdminPanel::Category", "Public::4", AccessLevel.EDIT) is True
    assert oracle.check(u, "AdminPanel::Category", "Public::4", AccessLevel.DELETE) is False


def test_super_admin_wildcard(s):
    u = _user(s, "a@example.com", _role(s, "admin", (".*", ".*", AccessLevel.ADMIN)))
    assert RolePermissionOracle(s).check(u, "*", "*", AccessLevel.ADMIN) is True


def test_anonymous_uses_anonymous_role(s):
    _role(s, "anonymous", ("AdminPanel::", ".*", AccessLevel.READ))
    s.flush()
    oracle = RolePermissionOracle(s)
    assert oracle.check(None, "AdminPanel::", "System::1", AccessLevel.READ) is True
    assert oracle.check(None, "AdminPanel::", "System::1", AccessLevel.EDIT) is False
    assert oracle.check(None, "Users::", "ANY", AccessLevel.READ) is False


def test_inactive_user_treated_as_anonymous(s):
    admin = _role(s, "admin", (".*", ".*", AccessLevel.ADMIN))
    u = _user(s, "gone@example.com", admin, active=False)
    assert RolePermissionOracle(s).check(u, "AdminPanel::", "::", AccessLevel.READ) is False


def test_invalid_pattern_is_skipped(s):
    role = _role(s, "broken", ("(", ".*", AccessLevel.ADMIN), (".*", ".*", AccessLevel.READ))
    u = _user(s, "b@example.com", role)
    assert RolePermissionOracle(s).level_for(u, "AdminPanel::", "::") == AccessLevel.READ
