# eduresources/supabase_api.py
"""Thin helpers around the Supabase REST (PostgREST) and Storage APIs.

Every helper is a single round trip. Failed responses raise
``requests.exceptions.HTTPError`` via ``raise_for_status()``; callers decide
how to report them.
"""

import logging

import requests

from eduresources.config import (
    SUPABASE_URL, SUPABASE_HEADERS, SUPABASE_ANON_KEY, SUPABASE_SERVICE_KEY,
    SUPABASE_STORAGE_URL, RESOURCES_TABLE, ADMIN_TABLE, FIELDS_TABLE,
    RESOURCES_BUCKET, REQUEST_TIMEOUT,
)

logger = logging.getLogger(__name__)

ALLOWED_TABLES = [RESOURCES_TABLE, ADMIN_TABLE, FIELDS_TABLE]


def get_supabase_rest_url(table_name):
    """Constructs the Supabase REST API URL for a table."""
    if table_name not in ALLOWED_TABLES:
        raise ValueError(f"Access to table '{table_name}' is not permitted.")
    return f"{SUPABASE_URL}/rest/v1/{table_name}"


def get_storage_url(path, bucket=RESOURCES_BUCKET):
    """Public URL for an object in a storage bucket.

    Full URLs are returned unchanged; a leading slash on the path is dropped.
    """
    if path.startswith("http"):
        return path
    clean_path = path[1:] if path.startswith("/") else path
    return f"{SUPABASE_STORAGE_URL}/{bucket}/{clean_path}"


def error_message(exc, default="Unknown error"):
    """Best-effort extraction of PostgREST's ``message`` from a failed call."""
    response = getattr(exc, "response", None)
    if response is None:
        return default
    try:
        return response.json().get("message", default)
    except ValueError:
        return response.text or default


def select_rows(table, params):
    url = get_supabase_rest_url(table)
    try:
        response = requests.get(url, headers=SUPABASE_HEADERS, params=params, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error("Error querying %s: %s", table, e)
        raise
    return response.json()


def insert_row(table, data):
    """Inserts one row and returns the stored representation."""
    url = get_supabase_rest_url(table)
    try:
        response = requests.post(url, headers=SUPABASE_HEADERS, json=data, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error("Error inserting into %s: %s", table, e)
        raise
    rows = response.json()
    return rows[0] if rows else None


def update_rows(table, params, data):
    """PATCHes the rows matching ``params``; returns the updated rows."""
    url = get_supabase_rest_url(table)
    try:
        response = requests.patch(url, headers=SUPABASE_HEADERS, params=params, json=data, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error("Error updating %s: %s", table, e)
        raise
    return response.json()


def delete_rows(table, params):
    url = get_supabase_rest_url(table)
    headers = SUPABASE_HEADERS.copy()
    headers["Prefer"] = "return=minimal"
    try:
        response = requests.delete(url, headers=headers, params=params, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error("Error deleting from %s: %s", table, e)
        raise


def upload_file(path, content, content_type, bucket=RESOURCES_BUCKET):
    """Uploads bytes to ``bucket/path`` (overwriting) and returns the object path."""
    key = SUPABASE_SERVICE_KEY or SUPABASE_ANON_KEY
    url = f"{SUPABASE_URL}/storage/v1/object/{bucket}/{path}"
    headers = {
        "apikey": key,
        "Authorization": f"Bearer {key}",
        "Content-Type": content_type or "application/octet-stream",
        "cache-control": "3600",
        "x-upsert": "true",
    }
    try:
        response = requests.post(url, headers=headers, data=content, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error("Error uploading %s to bucket %s: %s", path, bucket, e)
        raise
    return path


def check_connection():
    """Raises if the resources table cannot be queried."""
    select_rows(RESOURCES_TABLE, {"select": "id", "limit": 1})
    return True
