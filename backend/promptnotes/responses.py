"""
JSON envelope helpers used by every blueprint.
"""

from __future__ import annotations

from typing import Any

from flask import jsonify, request
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError


def success(data: Any = None, status: int = 200, message: str | None = None, **extra: Any):
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body.update(extra)
    return jsonify(body), status


def failure(message: str, status: int = 400):
    return jsonify({"success": False, "error": message}), status


def json_body() -> dict[str, Any]:
    """The request's JSON object; an empty body counts as ``{}``."""
    if not request.get_data():
        return {}
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_body(model, data: dict[str, Any] | None = None):
    """Validate the JSON body (or ``data``) against ``model``; bad fields are a 400."""
    try:
        return model.model_validate(json_body() if data is None else data)
    except PydanticValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        raise ValidationError(f"Invalid value for '{field}': {err['msg']}") from e
