# eduresources/resources.py
"""Resource catalog: data access against the ``resources`` table plus the
in-memory filter used by the catalog and admin pages."""

import datetime
import logging
import os
import re
import time

from eduresources.config import (
    RESOURCES_TABLE, FIELDS_TABLE, DEFAULT_FIELD_NAME, ALLOWED_EXTENSIONS, ALL_VALUE,
)
from eduresources import supabase_api

logger = logging.getLogger(__name__)

# Display/client-side keys that have no column in the resources table
CLIENT_ONLY_KEYS = ("field_id", "fields", "fileName", "fileSelected")

RESOURCE_SELECT = "*,fields:field_id(id,name)"

FILTER_KEYS = ("field", "type", "subject", "semester", "search")


def sanitize_resource_data(data):
    """Returns a copy of ``data`` that is safe to write to the resources table."""
    return {
        key: value for key, value in data.items()
        if key not in CLIENT_ONLY_KEYS and value is not None
    }


def normalize_resource(row):
    """Coerces ``id`` to int and resolves the display name of the field.

    The row's own ``field`` column wins: it is what the edit form writes,
    while ``field_id`` (and its ``fields`` join) is never written by us.
    """
    resource = dict(row)
    resource["id"] = int(resource["id"])
    joined = resource.get("fields") or {}
    resource["field"] = resource.get("field") or joined.get("name") or DEFAULT_FIELD_NAME
    return resource


def _now_millis():
    return int(time.time() * 1000)


# --- CRUD ---

def get_resources():
    """Fetches every resource, newest upload first."""
    params = {"select": RESOURCE_SELECT, "order": "uploadDate.desc"}
    rows = supabase_api.select_rows(RESOURCES_TABLE, params)
    return [normalize_resource(row) for row in rows]


def get_resource_by_id(resource_id):
    params = {"select": RESOURCE_SELECT, "id": f"eq.{resource_id}"}
    rows = supabase_api.select_rows(RESOURCES_TABLE, params)
    if not rows:
        return None
    return normalize_resource(rows[0])


def create_resource(data):
    """Inserts a new resource. ``id`` and ``uploadDate`` are assigned here."""
    new_resource = sanitize_resource_data(data)
    new_resource["id"] = str(_now_millis())
    new_resource["uploadDate"] = datetime.date.today().isoformat()
    logger.debug("Creating resource: %s", new_resource)

    row = supabase_api.insert_row(RESOURCES_TABLE, new_resource)
    if row is None:
        # return=representation should always echo the row
        row = new_resource
    row.setdefault("uploadDate", new_resource["uploadDate"])
    return normalize_resource(row)


def update_resource(resource_id, updates):
    """Replaces the writable fields of a resource.

    Returns the stored resource, or None when no row has that id.
    """
    update_data = sanitize_resource_data(updates)
    update_data["id"] = str(resource_id)
    logger.debug("Updating resource %s with: %s", resource_id, update_data)

    rows = supabase_api.update_rows(RESOURCES_TABLE, {"id": f"eq.{resource_id}"}, update_data)
    if not rows:
        return None
    return normalize_resource(rows[0])


def delete_resource(resource_id):
    supabase_api.delete_rows(RESOURCES_TABLE, {"id": f"eq.{resource_id}"})
    return True


def get_fields():
    """All academic fields as ``{id, name}`` dicts, by name."""
    return supabase_api.select_rows(FIELDS_TABLE, {"select": "id,name", "order": "name.asc"})


# --- File uploads ---

def storage_file_name(filename, resource_id):
    sanitized = re.sub(r"[^a-zA-Z0-9.]", "_", filename)
    return f"{resource_id}_{_now_millis()}_{sanitized}"


def upload_resource_file(filename, content, content_type, resource_id):
    """Stores an uploaded file in the resources bucket; returns its public URL."""
    if not filename:
        raise ValueError("No file provided")
    ext = os.path.splitext(filename)[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValueError(
            f"File type '{ext}' not allowed. Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    path = supabase_api.upload_file(storage_file_name(filename, resource_id), content, content_type)
    return supabase_api.get_storage_url(path)


# --- Filtering ---

def _is_active(value):
    return value is not None and value != "" and value != ALL_VALUE


LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _as_int(value):
    """Integer value of ``value`` read like a leading-integer parse ("3rd" -> 3).

    Returns None when there is no leading integer.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    match = LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def filter_resources(resources, field=None, type=None, subject=None, semester=None, search=None):
    """Returns the resources matching every active filter, in their original order.

    A filter is inactive when it is None, empty or "all". ``field`` matches
    either the field id or the field name. ``semester`` uses the leading
    integer of a string; one without any matches no resource. ``search`` is
    a case-insensitive substring of the title or description.
    """
    result = list(resources)

    if _is_active(field):
        field = str(field)
        result = [
            r for r in result
            if str(r.get("field_id")) == field or r.get("field") == field
        ]

    if _is_active(type):
        result = [r for r in result if r.get("type") == type]

    if _is_active(subject):
        result = [r for r in result if r.get("subject") == subject]

    if _is_active(semester):
        # A semester without a leading number still filters, and matches nothing
        semester_value = _as_int(semester)
        result = [
            r for r in result
            if semester_value is not None and _as_int(r.get("semester")) == semester_value
        ]

    if _is_active(search):
        term = search.lower()
        result = [
            r for r in result
            if term in (r.get("title") or "").lower()
            or term in (r.get("description") or "").lower()
        ]

    return result


def parse_filters(args):
    """Collects the filter values from a request-args style mapping."""
    filters = {}
    for key in FILTER_KEYS:
        value = (args.get(key) or "").strip()
        filters[key] = value or None
    return filters


def distinct_subjects(resources):
    return sorted({r["subject"] for r in resources if r.get("subject")})
