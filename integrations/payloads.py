"""
Provider webhook payload normalization.

Two delivery shapes are accepted:

flat:
    {"event_id": "...", "event_type": "contact.tagged",
     "contact": {"id": 123, "email": "a@b.c"}, "tag": {"name": "learn_completed"}}

JSON:API:
    {"data": {"id": "...", "type": "...", "attributes": {"event_type": ...},
              "relationships": {"contact": {"data": {"type": "contacts", "id": "123"}},
                                "tag": {"data": {"type": "tags", "id": "9"}}}},
     "included": [{"type": "contacts", "id": "123", "attributes": {"email": ...}},
                  {"type": "tags", "id": "9", "attributes": {"name": ...}}]}
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from django.db import IntegrityError, transaction

from core.exceptions import InvalidEventPayload
from core.sanitizers import normalize_email, sanitize_text
from .models import ExternalCompletionEvent

logger = logging.getLogger("leaps.integrations")

DEFAULT_EVENT_TYPE = "contact.tagged"


@dataclass(frozen=True)
class CompletionEvent:
    event_id: str
    event_type: str
    contact_email: Optional[str]
    contact_id: Optional[str]
    tag_name: str


def _text(value) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def _included(raw: dict, kinds, item_id) -> dict:
    for item in raw.get("included") or []:
        if not isinstance(item, dict):
            continue
        if item.get("type") in kinds and str(item.get("id")) == str(item_id):
            return item.get("attributes") or {}
    return {}


def _relationship_id(data: dict, name: str) -> Optional[str]:
    rel = (data.get("relationships") or {}).get(name) or {}
    rel_data = rel.get("data") if isinstance(rel, dict) else None
    if isinstance(rel_data, dict):
        return _text(rel_data.get("id"))
    return None


def _from_json_api(raw: dict) -> dict:
    data = raw["data"]
    attributes = data.get("attributes") or {}

    contact_id = _relationship_id(data, "contact") or _text(attributes.get("contact_id"))
    tag_id = _relationship_id(data, "tag")

    contact = _included(raw, ("contacts", "contact"), contact_id) if contact_id else {}
    tag = _included(raw, ("tags", "tag"), tag_id) if tag_id else {}

    return {
        "event_id": _text(data.get("id")),
        "event_type": _text(attributes.get("event_type")) or _text(data.get("type")),
        "contact_email": _text(contact.get("email")) or _text(attributes.get("contact_email")),
        "contact_id": contact_id,
        "tag_name": _text(tag.get("name")) or _text(attributes.get("tag_name")),
    }


def _from_flat(raw: dict) -> dict:
    contact = raw.get("contact") if isinstance(raw.get("contact"), dict) else {}
    tag = raw.get("tag") if isinstance(raw.get("tag"), dict) else {}
    return {
        "event_id": _text(raw.get("event_id")) or _text(raw.get("id")),
        "event_type": _text(raw.get("event_type")),
        "contact_email": _text(contact.get("email")),
        "contact_id": _text(contact.get("id")),
        "tag_name": _text(tag.get("name")),
    }


def normalize_completion_event(raw) -> CompletionEvent:
    """
    Validate and flatten a webhook body.

    Raises InvalidEventPayload when the body is not an object, or lacks a
    tag name or any way to identify the contact. Deliveries without an
    event id get a deterministic one derived from contact and tag, so a
    redelivery still maps to the same row.
    """
    if not isinstance(raw, dict):
        raise InvalidEventPayload("Payload must be a JSON object")

    if isinstance(raw.get("data"), dict):
        fields = _from_json_api(raw)
    else:
        fields = _from_flat(raw)

    tag_name = fields["tag_name"]
    if not tag_name:
        raise InvalidEventPayload("Missing tag name")

    contact_email = normalize_email(fields["contact_email"]) if fields["contact_email"] else None
    contact_id = fields["contact_id"]
    if not contact_email and not contact_id:
        raise InvalidEventPayload("Missing contact email and contact id")

    event_type = fields["event_type"] or DEFAULT_EVENT_TYPE
    event_id = fields["event_id"] or f"{event_type}:{contact_id or contact_email}:{tag_name.lower()}"

    return CompletionEvent(
        event_id=sanitize_text(event_id)[:255],
        event_type=event_type[:64],
        contact_email=contact_email,
        contact_id=contact_id[:64] if contact_id else None,
        tag_name=tag_name[:255],
    )


def record_completion_event(raw) -> Tuple[ExternalCompletionEvent, bool]:
    """
    Persist a delivery keyed by its event id.
    A redelivery returns the stored row with created=False.
    """
    normalized = normalize_completion_event(raw)
    defaults = {
        "event_type": normalized.event_type,
        "tag_name": normalized.tag_name,
        "contact_email": normalized.contact_email,
        "contact_id": normalized.contact_id,
        "payload": raw,
    }
    try:
        with transaction.atomic():
            event, created = ExternalCompletionEvent.objects.get_or_create(
                id=normalized.event_id, defaults=defaults,
            )
    except IntegrityError:
        # Concurrent delivery of the same event id
        event, created = ExternalCompletionEvent.objects.get(id=normalized.event_id), False

    logger.info(
        "Completion event %s: id=%s tag=%s contact=%s",
        "received" if created else "redelivered", event.id, event.tag_name, event.contact_id or event.contact_email,
    )
    return event, created
