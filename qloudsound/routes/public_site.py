"""
QloudSound API - Public Site Routes

Endpoints used by the public QloudSound site:
- ``GET  /public-site``          — describes where to submit requests
- ``GET  /public-site/health``   — liveness for the site integration
- ``GET  /public-site/catalog``  — published tracks
- ``POST /public-site/requests`` — song request intake

Request intake validates the form, stores the request plus its
``requested`` catalog row, then notifies Telegram in the background.
"""

import json
import uuid
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Request
from loguru import logger

from qloudsound.config import APP_VERSION, PUBLIC_SITE_PREFIX, SERVICE_NAME
from qloudsound.database import list_catalog_entries, record_submission
from qloudsound.models import CatalogEntry, Submission
from qloudsound.notifier import notify_submission
from qloudsound.utils import (
    PrettyJSONResponse,
    clean_field,
    error_response,
    json_response,
    optional_field,
    utc_now_iso,
)

router = APIRouter(
    prefix=PUBLIC_SITE_PREFIX,
    tags=["Public site"],
    default_response_class=PrettyJSONResponse,
)

STORED_NOTE = "Guardado en la base de datos"


class InvalidPayload(ValueError):
    """The request body is not a JSON object."""


async def _read_json_object(request: Request) -> Dict[str, Any]:
    """Parse the body as a JSON object; an empty body counts as ``{}``."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidPayload("Invalid JSON payload") from e
    if not isinstance(payload, dict):
        raise InvalidPayload("Invalid JSON payload")
    return payload


async def _notify_in_background(submission: Submission) -> None:
    try:
        await notify_submission(submission, STORED_NOTE)
    except Exception as e:
        logger.error("❌ Telegram notify failed for request {}: {}", submission.id, e)


# ---------------------------------------------------------------------------
# Info / health
# ---------------------------------------------------------------------------
@router.get("")
@router.get("/", include_in_schema=False)
async def public_site_info(request: Request):
    """Tell the site where to send requests."""
    origin = f"{request.url.scheme}://{request.url.netloc}"
    return json_response(
        {
            "service": f"{SERVICE_NAME}:public-site",
            "version": APP_VERSION,
            "submit": f"{origin}{PUBLIC_SITE_PREFIX}/requests",
        }
    )


@router.get("/health")
@router.get("/health/", include_in_schema=False)
async def public_site_health():
    return json_response(
        {"status": "ok", "scope": "public-site", "timestamp": utc_now_iso()}
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
@router.get("/catalog")
@router.get("/catalog/", include_in_schema=False)
async def public_catalog():
    """List published tracks, newest first."""
    entries = await list_catalog_entries("published")
    return json_response({"tracks": [entry.to_json() for entry in entries]})


# ---------------------------------------------------------------------------
# Request intake
# ---------------------------------------------------------------------------
@router.post("/requests")
@router.post("/requests/", include_in_schema=False)
async def submit_request(request: Request, background_tasks: BackgroundTasks):
    """Validate and store a song request."""
    try:
        payload = await _read_json_object(request)
    except InvalidPayload as e:
        return error_response("invalid_submission", str(e), 400)

    # Hidden "website" field: only bots fill it in.
    if clean_field(payload.get("website")):
        logger.warning("🤖 Honeypot field filled — rejecting submission")
        return error_response("invalid_submission", "Submission rejected", 400)

    name = clean_field(payload.get("name"))
    email = clean_field(payload.get("email"))
    style = clean_field(payload.get("style"))

    if not name or not email or not style:
        return error_response(
            "missing_required_fields", "name, email and style are mandatory", 400
        )

    submission = Submission(
        id=str(uuid.uuid4()),
        name=name,
        email=email,
        style=style,
        description=optional_field(payload.get("description")),
        filename=optional_field(payload.get("filename")),
        created_at=utc_now_iso(),
        status="pending",
    )

    try:
        await record_submission(submission, CatalogEntry.for_submission(submission))
    except Exception as e:
        logger.error("❌ Failed to persist request {}: {}", submission.id, e)
        return error_response(
            "storage_error",
            "No se pudo guardar la solicitud, intenta nuevamente.",
            500,
        )

    background_tasks.add_task(_notify_in_background, submission)
    return json_response({"ok": True, "id": submission.id})
