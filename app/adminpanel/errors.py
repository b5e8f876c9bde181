"""
Error taxonomy for admin panel operations.

Aborting conditions are exceptions carrying an HTTP status and a single
user-facing message. Per-module assignment problems during a config update
are not exceptions: they accumulate as PartialWarning entries on the result.
"""
from __future__ import annotations

from dataclasses import dataclass


class AdminPanelError(Exception):
    status_code = 500
    default_message = "Error! The request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class PermissionDenied(AdminPanelError):
    status_code = 403
    default_message = "Sorry! You have not been granted access to this page."


class NotFound(AdminPanelError):
    status_code = 404
    default_message = "Error! No such category found."


class Conflict(AdminPanelError):
    status_code = 409
    default_message = "Error! A category with that name already exists."


class ValidationError(AdminPanelError):
    status_code = 400
    default_message = "Error! Please correct the highlighted fields."

    def __init__(self, field_errors: dict[str, str], message: str | None = None) -> None:
        self.field_errors = dict(field_errors)
        if message is None and len(self.field_errors) == 1:
            message = next(iter(self.field_errors.values()))
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "fields": self.field_errors}


class UpstreamUnavailable(AdminPanelError):
    status_code = 503
    default_message = "The update server could not be reached."


@dataclass(frozen=True)
class PartialWarning:
    module: str
    category_id: object
    message: str

    def to_dict(self) -> dict:
        return {"module": self.module, "category_id": self.category_id, "message": self.message}
