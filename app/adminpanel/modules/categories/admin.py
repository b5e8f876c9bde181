from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.adminpanel.audit import record_category_event
from app.adminpanel.db import db_session
from app.adminpanel.modules.categories.service import CategoryLifecycle, DeleteResult
from app.adminpanel.modules.categories.store import SqlCategoryStore
from app.adminpanel.modules.settings.service import ModuleConfig, SqlConfigStore
from app.adminpanel.rbac import login_required, oracle_for_request
from app.adminpanel.utils import bool_arg, int_arg, nested_field, request_data

bp = Blueprint("categories", __name__)


def _lifecycle() -> CategoryLifecycle:
    return CategoryLifecycle(SqlCategoryStore(db_session()), oracle_for_request())


def _category_fields() -> dict:
    """Accepts {"name": ...}, {"category": {"name": ...}} or category[name] form fields."""
    data = request_data()
    nested = nested_field(data, "category")
    return nested or data


def _target_id(fields: dict, category_id: int) -> int:
    # `objectid` is the generic alias for the category id and wins when given.
    return int_arg(fields.get("objectid")) or category_id


@bp.get("/")
@login_required
def list_categories():
    s = db_session()
    config = ModuleConfig.load(SqlConfigStore(s))
    page = _lifecycle().list_categories(
        g.current_user,
        start=int_arg(request.args.get("startnum"), 0) or 0,
        items_per_page=config.items_per_page,
    )
    return jsonify(page.to_dict())


@bp.post("/")
@login_required
def create_category():
    s = db_session()
    fields = _category_fields()
    lifecycle = _lifecycle()
    category_id = lifecycle.create(fields.get("name") or "", fields.get("description") or "", g.current_user)
    record_category_event(s, g.current_user, "create", lifecycle.store.get_by_id(category_id))
    s.commit()
    return jsonify({"id": category_id, "message": "Done! Created new category."}), 201


@bp.get("/<int:category_id>")
@login_required
def get_category(category_id: int):
    category = _lifecycle().get(_target_id(request.args, category_id), g.current_user)
    return jsonify(category.to_dict())


@bp.put("/<int:category_id>")
@login_required
def update_category(category_id: int):
    s = db_session()
    fields = _category_fields()
    target_id = _target_id(fields, category_id)
    category = _lifecycle().update(
        target_id,
        fields.get("name") or "",
        fields.get("description") or "",
        g.current_user,
    )
    record_category_event(s, g.current_user, "edit", category)
    s.commit()
    return jsonify({**category.to_dict(), "message": "Done! Saved category."})


@bp.delete("/<int:category_id>")
@login_required
def delete_category(category_id: int):
    s = db_session()
    fields = request_data()
    confirmed = bool_arg(request.args.get("confirmed") or fields.get("confirmed") or fields.get("confirmation"))
    target_id = _target_id({**request.args.to_dict(), **fields}, category_id)

    result = _lifecycle().delete(target_id, confirmed, g.current_user)
    if isinstance(result, DeleteResult):
        record_category_event(s, g.current_user, "delete", result.category)
        s.commit()
    return jsonify(result.to_dict())
