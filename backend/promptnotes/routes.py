"""
REST API routes for notes.

Organized into logical groups:
- Notes: CRUD, thread view, tag vocabulary
- Images: upload/delete of note attachments
- Note types: user-defined note templates
- Utility: health check and thread repair

All note and note-type routes require a session and are user-scoped.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, g, jsonify, request

from .auth import require_auth
from .config import Config
from .errors import Forbidden, ValidationError
from .responses import json_body, parse_body, success
from .services.container import get_services
from .services.models import ImageDeleteRequest, NoteCreate, NoteUpdate

logger = logging.getLogger(__name__)

notes_bp = Blueprint("notes", __name__, url_prefix="/notes")
note_types_bp = Blueprint("note_types", __name__, url_prefix="/note-types")
bp = Blueprint("api", __name__)


# ============================================================================
# NOTES ENDPOINTS
# ============================================================================


@notes_bp.get("")
@require_auth
def list_notes():
    """
    List the user's notes, most recently updated first.

    Query params:
        - tag: Only notes carrying this tag (optional)
        - category: Only notes in this category (optional)

    Returns:
        JSON: {"success": true, "data": [Note, ...]}
    """
    notes = get_services().notes.list_notes(
        g.user_id,
        tag=request.args.get("tag") or None,
        category=request.args.get("category") or None,
    )
    return success([note.to_record() for note in notes])


@notes_bp.get("/tags")
@require_auth
def list_tags():
    """Every tag the user has used."""
    return success(get_services().notes.list_tags(g.user_id))


@notes_bp.post("")
@require_auth
def create_note():
    """
    Create a note (or a reply, when parentId is given).

    Body:
        JSON: {
            "content": str, "type": str, "title": str (optional for basic notes),
            "fields": dict, "tags": list, "category": str, "color": str,
            "parentId": str, "images": list
        }

    Returns:
        JSON: {"success": true, "data": Note}, 201
    """
    payload = parse_body(NoteCreate)
    note = get_services().notes.create_note(g.user_id, payload)
    return success(note.to_record(), 201)


@notes_bp.get("/<id:note_id>")
@require_auth
def get_note(note_id: str):
    """
    Get a note together with its thread.

    Returns:
        JSON: {"success": true, "data": {"id", "rootNote", "replies"}}
    """
    thread = get_services().notes.get_thread(g.user_id, note_id)
    return success(thread.to_record())


@notes_bp.put("/<id:note_id>")
@require_auth
def update_note(note_id: str):
    """
    Update an existing note.

    id, userId, createdAt and the note's thread placement cannot be changed.
    """
    changes = parse_body(NoteUpdate)
    note = get_services().notes.update_note(g.user_id, note_id, changes)
    return success(note.to_record())


@notes_bp.delete("/<id:note_id>")
@require_auth
def delete_note(note_id: str):
    """Delete a note; deleting a thread root deletes its replies too."""
    get_services().notes.delete_note(g.user_id, note_id)
    return success(message="Note deleted successfully")


# ============================================================================
# IMAGE ENDPOINTS
# ============================================================================


@notes_bp.post("/upload")
@require_auth
def upload_image():
    """
    Upload an image for a note.

    Accepts:
        - multipart/form-data with 'file' field
        - raw image bytes in request body

    Returns:
        JSON: {"success": true, "data": {"id", "url", "publicId"}}

    The descriptor is not attached to any note here; the client adds it to
    the note's images on create/update.
    """
    if "file" in request.files:
        file = request.files["file"]
        data = file.read()
        content_type = file.content_type
    else:
        data = request.get_data()
        content_type = request.content_type

    image = get_services().media.upload(
        user_id=g.user_id, data=data, content_type=content_type or ""
    )
    return success(image.to_dict())


@notes_bp.delete("/image")
@require_auth
def delete_image():
    """
    Delete an uploaded image.

    Body:
        JSON: {"publicId": str}
    """
    media = get_services().media
    public_id = (parse_body(ImageDeleteRequest).public_id or "").strip()
    if not public_id:
        raise ValidationError("publicId is required")
    if not media.owns(g.user_id, public_id):
        raise Forbidden("You do not have permission to delete this image")

    media.delete(public_id)
    return success(message="Image deleted successfully")


# ============================================================================
# NOTE TYPE ENDPOINTS
# ============================================================================


@note_types_bp.get("")
@require_auth
def list_note_types():
    note_types = get_services().note_types.list(g.user_id)
    return success([nt.to_record() for nt in note_types])


@note_types_bp.post("")
@require_auth
def create_note_type():
    """
    Create a custom note type.

    Body:
        JSON: {"name": str, "fields": list, "description": str, "icon": str}
    """
    note_type = get_services().note_types.create(g.user_id, json_body())
    return success(note_type.to_record(), 201)


@note_types_bp.delete("/<id:note_type_id>")
@require_auth
def delete_note_type(note_type_id: str):
    get_services().note_types.delete(g.user_id, note_type_id)
    return success(message="Note type deleted successfully")


# ============================================================================
# UTILITY ENDPOINTS
# ============================================================================


@bp.post("/migrate-notes")
@require_auth
def migrate_notes():
    """
    Repair thread fields on the user's older notes.

    Returns:
        JSON: {"success": true, "message": str, "updated": int, "total": int}
    """
    result = get_services().notes.repair_threads(g.user_id)
    if not result["total"]:
        return success(message="No notes to migrate", updated=0, total=0)
    return success(
        message=f"Migration completed. Updated {result['updated']} notes.",
        updated=result["updated"],
        total=result["total"],
    )


@bp.get("/health")
def health():
    """
    Health check: Redis reachability and required environment variables.

    Returns 200 when every check is healthy, 503 otherwise.
    """
    svc = get_services()
    report = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": Config.FLASK_ENV,
        "checks": {},
    }

    try:
        pong = svc.store.ping()
        report["checks"]["redis"] = {
            "status": "healthy" if pong else "unhealthy",
            "response": "PONG" if pong else None,
        }
    except Exception as e:
        logger.exception("Health check: Redis unreachable")
        report["checks"]["redis"] = {"status": "unhealthy", "error": str(e)}

    missing = Config.missing_env_vars()
    required = len(Config.REQUIRED_ENV_VARS)
    report["checks"]["environment"] = {
        "status": "healthy" if not missing else "unhealthy",
        "missingVariables": missing,
        "totalRequired": required,
        "configured": required - len(missing),
    }

    healthy = all(check["status"] == "healthy" for check in report["checks"].values())
    report["status"] = "healthy" if healthy else "unhealthy"
    return jsonify(report), 200 if healthy else 503
