from __future__ import annotations

from pathlib import Path

from flask import Blueprint, current_app, g, jsonify, request

from app.adminpanel.config import is_dev_mode
from app.adminpanel.db import db_session
from app.adminpanel.modules.categories.store import SqlCategoryStore
from app.adminpanel.modules.menu.service import MenuAssembler, PanelView
from app.adminpanel.modules.notices.developer import developer_notices
from app.adminpanel.modules.notices.security import SecurityAdvisor
from app.adminpanel.modules.notices.updates import UpdateChecker
from app.adminpanel.modules.registry.service import SqlModuleRegistry
from app.adminpanel.modules.settings.service import (
    CONFIG_NAMESPACE,
    SYSTEM_NAMESPACE,
    THEME_NAMESPACE,
    ModuleConfig,
    SqlConfigStore,
)
from app.adminpanel.rbac import MODULE_COMPONENT, AccessLevel, login_required, oracle_for_request, require_permission
from app.adminpanel.utils import bool_arg, int_arg

bp = Blueprint("admin", __name__)


def _assembler() -> MenuAssembler:
    s = db_session()
    config = ModuleConfig.load(SqlConfigStore(s, CONFIG_NAMESPACE))
    return MenuAssembler(SqlCategoryStore(s), SqlModuleRegistry(s), oracle_for_request(), config)


def _update_checker() -> UpdateChecker:
    cfg = current_app.config
    return UpdateChecker(
        SqlConfigStore(db_session(), SYSTEM_NAMESPACE),
        running_version=cfg["APP_VERSION"],
        url=cfg["UPDATE_CHECK_URL"],
        timeout=float(cfg.get("UPDATE_CHECK_TIMEOUT") or 5.0),
    )


def _security_advisor() -> SecurityAdvisor:
    s = db_session()
    cfg = current_app.config
    return SecurityAdvisor(
        SqlModuleRegistry(s),
        SqlConfigStore(s, SYSTEM_NAMESPACE),
        config_file=cfg.get("CONFIG_FILE"),
        temp_dir=cfg.get("APP_TEMP_DIR"),
        document_root=cfg.get("DOCUMENT_ROOT"),
        install_root=cfg.get("INSTALL_ROOT") or ".",
        host_ini_file=cfg.get("HOST_INI_FILE"),
    )


def _installer_present(config: ModuleConfig) -> bool:
    cfg = current_app.config
    if config.ignore_installer_check or not is_dev_mode(cfg):
        return False
    console = Path(cfg.get("RECOVERY_CONSOLE_FILE") or "")
    if not console.name:
        return False
    if not console.is_absolute():
        console = Path(cfg.get("INSTALL_ROOT") or ".") / console
    return console.exists()


@bp.get("/")
@login_required
def index():
    """Category menu for the current user plus security/update/developer notices."""
    user = g.current_user
    menu = _assembler().build_menu(user, int_arg(request.args.get("acid")))
    notices = {
        "security": _security_advisor().report().to_dict(),
        "update": _update_checker().check().to_dict(),
        "developer": developer_notices(
            is_dev_mode(current_app.config), SqlConfigStore(db_session(), THEME_NAMESPACE)
        ),
    }
    # A cache refresh in the update check is the only write on this path.
    db_session().commit()
    return jsonify({**menu.to_dict(), "notices": notices})


@bp.get("/panel")
@login_required
def panel():
    assembler = _assembler()
    if _installer_present(assembler.config):
        current_app.logger.warning("Recovery console present; showing installer warning instead of panel")
        view = PanelView(
            category=None,
            items=[],
            modules_per_row=assembler.config.modules_per_row,
            show_icons=assembler.config.admin_graphic,
            installer_warning=True,
        )
    else:
        view = assembler.build_panel(g.current_user, int_arg(request.args.get("acid")))
    return jsonify(view.to_dict())


@bp.get("/notices/update")
@require_permission(MODULE_COMPONENT, "::", AccessLevel.ADMIN)
def update_notice():
    notice = _update_checker().check(force=bool_arg(request.args.get("force")))
    db_session().commit()
    return jsonify(notice.to_dict())


@bp.get("/notices/security")
@require_permission(MODULE_COMPONENT, "::", AccessLevel.ADMIN)
def security_notice():
    return jsonify(_security_advisor().report().to_dict())
