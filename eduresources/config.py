# eduresources/config.py

import os

from dotenv import load_dotenv

load_dotenv()

# --- Supabase Configuration ---
# Set these in the environment (or a .env file) for a real project.
SUPABASE_URL = os.environ.get("SUPABASE_URL", "https://example-project.supabase.co").rstrip("/")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "dev-anon-key")
# Bypasses RLS when set. Only used for storage uploads.
SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY", "")

# Public objects are served from here
SUPABASE_STORAGE_URL = f"{SUPABASE_URL}/storage/v1/object/public"

# --- Database Table Names ---
RESOURCES_TABLE = "resources"
ADMIN_TABLE = "admins"
FIELDS_TABLE = "fields"

# --- Storage ---
RESOURCES_BUCKET = os.environ.get("RESOURCES_BUCKET", "study-resources")
IS_BUCKET_PUBLIC = True

# --- Headers for Supabase REST API calls ---
SUPABASE_HEADERS = {
    "apikey": SUPABASE_ANON_KEY,
    "Authorization": f"Bearer {SUPABASE_ANON_KEY}",
    "Content-Type": "application/json",
    "Prefer": "return=representation",  # Returns the inserted/updated rows
}

REQUEST_TIMEOUT = int(os.environ.get("REQUEST_TIMEOUT", "10"))

# --- Uploads ---
ALLOWED_EXTENSIONS = {
    ".pdf", ".doc", ".docx", ".ppt", ".pptx", ".txt", ".zip", ".png", ".jpg", ".jpeg",
}
MAX_UPLOAD_BYTES = 25 * 1024 * 1024  # 25MB

# --- Catalog ---
DEFAULT_FIELD_NAME = "BCA"
RESOURCE_TYPES = ["Notes", "Paper", "Syllabus", "Assignment", "Book"]
SEMESTERS = list(range(1, 9))
ALL_VALUE = "all"  # "no filter" value sent by the selectors

# --- Flask App Configuration ---
SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
