from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify

from app.adminpanel.audit import record_config_update
from app.adminpanel.db import db_session
from app.adminpanel.modules.categories.store import SqlCategoryStore
from app.adminpanel.modules.registry.service import SqlModuleRegistry
from app.adminpanel.modules.settings.service import ConfigUpdater, SqlConfigStore
from app.adminpanel.rbac import login_required, oracle_for_request
from app.adminpanel.utils import nested_field, request_data

bp = Blueprint("settings", __name__)


def _updater() -> ConfigUpdater:
    s = db_session()
    return ConfigUpdater(SqlConfigStore(s), SqlCategoryStore(s), SqlModuleRegistry(s), oracle_for_request())


@bp.get("")
@login_required
def modify_config():
    return jsonify(_updater().form(g.current_user).to_dict())


@bp.put("")
@login_required
def update_config():
    s = db_session()
    data = request_data()
    modvars = nested_field(data, "modvars")
    adminmods = nested_field(data, "adminmods")

    result = _updater().apply(modvars, adminmods, g.current_user)
    for w in result.warnings:
        current_app.logger.warning("Module assignment skipped: %s", w.message)
    record_config_update(s, g.current_user, result)
    s.commit()
    return jsonify(result.to_dict())
