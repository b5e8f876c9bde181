import pytest
from werkzeug.security import generate_password_hash

from app.adminpanel import create_app
from app.adminpanel.db import session_scope
from app.adminpanel.models import AuditEvent, Base, PermissionRule, Role, User
from app.adminpanel.modules.categories.models import AdminCategory
from app.adminpanel.modules.registry.models import AdminModuleLink, InstalledModule
from app.adminpanel.modules.settings.service import ModuleConfig, SqlConfigStore


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("INSTALL_ROOT", str(tmp_path))
    for k in ("DOCUMENT_ROOT", "HOST_INI_FILE", "APP_TEMP_DIR"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        r = Role(key="admin", name="Administrator")
        r.rules.append(PermissionRule(sequence=1, component=".*", instance=".*", level=800))
        u = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(r)
        s.add_all([r, u])

        s.add_all(
            [
                AdminCategory(id=1, name="System", description="Core modules"),
                AdminCategory(id=2, name="Content", description="Content modules"),
                AdminCategory(id=3, name="Empty", description="Nothing here"),
            ]
        )
        s.add_all(
            [
                InstalledModule(id=1, name="Settings", display_name="General settings", kind="system"),
                InstalledModule(id=2, name="Blocks", display_name="Blocks", kind="system"),
                InstalledModule(id=3, name="News", display_name="News publisher"),
            ]
        )
        s.flush()
        s.add_all(
            [
                AdminModuleLink(module_id=1, category_id=1, sort_order=0),
                AdminModuleLink(module_id=2, category_id=1, sort_order=0),
                AdminModuleLink(module_id=3, category_id=2, sort_order=0),
            ]
        )
        ModuleConfig(start_category_id=1, default_category_id=1).save(SqlConfigStore(s))
        # Keep the index page off the network.
        SqlConfigStore(s, "System").set("updatecheck", False)

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client):
    return client.post("/auth/login", data={"email": "admin@example.com", "password": "pw"}, follow_redirects=False)


def _csrf(client) -> dict:
    token = client.get("/auth/csrf").json["csrf_token"]
    return {"X-CSRF-Token": token}


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200


def test_login_and_admin_access(client):
    # Anonymous gets sent to the login endpoint
    r = client.get("/admin/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    r = _login(client)
    assert r.status_code == 302

    r = client.get("/admin/")
    assert r.status_code == 200
    assert r.json["current_category_id"] == 1


def test_failed_login_is_audited(app, client):
    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "nope"})
    assert r.status_code == 401
    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").one()
        assert ev.entity_id == "admin@example.com"


def test_menu_groups_modules_by_category(client):
    _login(client)
    r = client.get("/admin/")
    options = {o["title"]: o for o in r.json["menu_options"]}

    assert [i["module_name"] for i in options["System"]["items"]] == ["Blocks", "Settings"]
    assert [i["module_name"] for i in options["Content"]["items"]] == ["News"]
    # Super-admin sees empty categories too
    assert options["Empty"]["items"] == []
    assert options["System"]["items"][0]["url"] == "/admin/modules/Blocks"


def test_index_includes_notices(client):
    _login(client)
    notices = client.get("/admin/").json["notices"]
    assert notices["update"] == {"show": False, "version": None}
    assert notices["developer"] == {"devmode": False}
    assert notices["security"]["scanner_active"] is False


def test_requested_category_is_selected(client):
    _login(client)
    assert client.get("/admin/?acid=2").json["current_category_id"] == 2
    assert client.get("/admin/?acid=999").json["current_category_id"] == 1


def test_panel_lists_modules_of_category(client):
    _login(client)
    r = client.get("/admin/panel?acid=2")
    assert r.status_code == 200
    assert r.json["category"]["name"] == "Content"
    assert [i["label"] for i in r.json["items"]] == ["News publisher"]
    assert r.json["installer_warning"] is False


def test_panel_falls_back_to_start_category(client):
    _login(client)
    r = client.get("/admin/panel?acid=999")
    assert r.status_code == 200
    assert r.json["category"]["id"] == 1


def test_mutation_without_csrf_rejected(client):
    _login(client)
    r = client.post("/admin/categories/", json={"name": "Layout"})
    assert r.status_code == 400
    assert "CSRF" in r.json["error"]


def test_mutation_with_csrf_accepted(client):
    _login(client)
    r = client.post("/admin/categories/", json={"name": "Layout"}, headers=_csrf(client))
    assert r.status_code == 201


def test_logout_clears_session(client):
    _login(client)
    r = client.get("/auth/logout")
    assert r.status_code == 302
    assert client.get("/admin/").status_code == 302


def test_config_update_over_http(app, client):
    _login(client)
    r = client.put(
        "/admin/config",
        json={"modvars": {"itemsperpage": "10", "modulesperrow": "3"}, "adminmods": {"News": "1"}},
        headers=_csrf(client),
    )
    assert r.status_code == 200
    assert r.json["warnings"] == []

    form = client.get("/admin/config").json
    assert form["config"]["items_per_page"] == 10
    assert form["config"]["modules_per_row"] == 3
    assert {m["name"]: m["category_id"] for m in form["modules"]}["News"] == 1

    with session_scope(app) as s:
        assert s.get(AdminModuleLink, 3).sort_order == 1


def test_invalid_config_not_saved(client):
    _login(client)
    r = client.put("/admin/config", data={"modvars[itemsperpage]": "abc"}, headers=_csrf(client))
    assert r.status_code == 400
    assert "itemsperpage" in r.json["fields"]
    assert client.get("/admin/config").json["config"]["items_per_page"] == 5


def test_config_update_is_audited_with_skipped_modules(app, client):
    _login(client)
    r = client.put(
        "/admin/config",
        json={"modvars": {"itemsperpage": "7"}, "adminmods": {"News": "1", "Ghost": "1"}},
        headers=_csrf(client),
    )
    assert r.status_code == 200
    assert [w["module"] for w in r.json["warnings"]] == ["Ghost"]

    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "config.update").one()
        assert ev.actor_user_email == "admin@example.com"
        assert '"skipped_modules": ["Ghost"]' in ev.metadata_json
        assert '"items_per_page": 7' in ev.metadata_json
