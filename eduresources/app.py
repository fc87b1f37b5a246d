# eduresources/app.py

import datetime
import logging
import time
from functools import wraps

import requests
from flask import Flask, request, jsonify, render_template, redirect, url_for, session, flash
from werkzeug.security import generate_password_hash, check_password_hash

# Import configuration variables
from eduresources.config import (
    ADMIN_TABLE, SECRET_KEY, LOG_LEVEL, MAX_UPLOAD_BYTES, RESOURCE_TYPES, SEMESTERS,
)
from eduresources import supabase_api
from eduresources.resources import (
    get_resources, get_resource_by_id, create_resource, update_resource, delete_resource,
    upload_resource_file, get_fields, filter_resources, parse_filters, distinct_subjects,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize Flask App
app = Flask(__name__)
app.config['SECRET_KEY'] = SECRET_KEY
app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_BYTES

# --- Helper Functions ---

def fetch_all_fields():
    """Fetches all academic fields for the selectors."""
    try:
        return get_fields()
    except requests.exceptions.RequestException as e:
        logger.error("Error fetching fields: %s", e)
        flash("Could not load field list for dropdowns.", "warning")
        return []


def clean_resource_input(data, require_all=True):
    """Validates and coerces incoming resource values.

    Raises ValueError with a user-facing message.
    """
    cleaned = dict(data)
    if require_all:
        missing = [
            k for k in ('title', 'type', 'subject', 'semester')
            if cleaned.get(k) in (None, '')
        ]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}.")
    elif 'title' in cleaned and not cleaned['title']:
        raise ValueError("Title cannot be empty.")

    if cleaned.get('semester') not in (None, ''):
        try:
            cleaned['semester'] = int(cleaned['semester'])
        except (TypeError, ValueError):
            raise ValueError("Semester must be a number.")
    return cleaned


def resource_from_form(form):
    """Reads the resource form fields into a dict."""
    data = {
        "title": form.get('title', "").strip(),
        "description": form.get('description', "").strip(),
        "type": form.get('type', "").strip(),
        "subject": form.get('subject', "").strip(),
        "semester": form.get('semester', "").strip(),
        "field": form.get('field', "").strip() or None,
    }
    return clean_resource_input(data)


def save_uploaded_file(resource_id):
    """Uploads request.files['file'] if one was sent; returns its URL or None."""
    uploaded = request.files.get('file')
    if not uploaded or not uploaded.filename:
        return None
    return upload_resource_file(
        uploaded.filename, uploaded.read(), uploaded.mimetype, resource_id
    )


def log_orphaned_upload(file_url):
    """Records a stored file that no resource row points at."""
    if file_url:
        logger.warning("Uploaded file is not referenced by any resource: %s", file_url)


def api_error(message, status):
    return jsonify({"error": message}), status


# --- Admin Authentication ---

def authenticate_admin(email, password):
    """Looks up an admin by email and verifies the password hash."""
    email = email.strip().lower()
    try:
        rows = supabase_api.select_rows(ADMIN_TABLE, {'select': '*', 'email': f'eq.{email}'})
    except requests.exceptions.RequestException as e:
        logger.error("Authentication lookup failed for %s: %s", email, e)
        return None

    if len(rows) != 1:
        return None
    admin = rows[0]
    if not check_password_hash(admin.get('password_hash') or '', password):
        return None
    admin.pop('password_hash', None)  # Never keep the hash in the session
    return admin


def register_admin(full_name, email, password):
    """Creates a new admin. Raises ValueError if the email is taken."""
    email = email.strip().lower()
    existing = supabase_api.select_rows(ADMIN_TABLE, {'select': 'id', 'email': f'eq.{email}'})
    if existing:
        raise ValueError("Email already in use")

    supabase_api.insert_row(ADMIN_TABLE, {
        "email": email,
        "full_name": full_name,
        "password_hash": generate_password_hash(password, method='pbkdf2:sha256'),
    })
    return True


def admin_required(api=False):
    """Decorator for admin-only routes. API routes answer 401 instead of redirecting."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if 'admin' not in session:
                if api:
                    return api_error("Authentication required", 401)
                flash('Please log in as an administrator to access this page.', 'warning')
                return redirect(url_for('admin_login_page'))
            return f(*args, **kwargs)
        return decorated_function
    return decorator


# --- Context Processor ---
@app.context_processor
def inject_globals():
    return {
        'now': datetime.datetime.utcnow(),
        'admin': session.get('admin'),
        'resource_types': RESOURCE_TYPES,
        'semesters': SEMESTERS,
    }


# --- Catalog ---

@app.route("/")
def index():
    """Public catalog of resources with filters."""
    all_resources = []
    try:
        all_resources = get_resources()
    except requests.exceptions.RequestException as e:
        logger.error("Error fetching resources: %s", e)
        flash("Could not load resources.", "danger")

    filters = parse_filters(request.args)
    return render_template(
        "index.html",
        resources=filter_resources(all_resources, **filters),
        total=len(all_resources),
        fields=fetch_all_fields(),
        subjects=distinct_subjects(all_resources),
        filters=request.args,
    )


@app.route("/health")
def health():
    try:
        supabase_api.check_connection()
    except requests.exceptions.RequestException as e:
        logger.error("Health check failed: %s", e)
        return jsonify({"status": "unavailable"}), 503
    return jsonify({"status": "ok"})


# --- JSON API ---

@app.route("/api/resources", methods=["GET"])
def api_list_resources():
    try:
        all_resources = get_resources()
    except requests.exceptions.RequestException:
        return api_error("Internal Server Error", 500)
    return jsonify(filter_resources(all_resources, **parse_filters(request.args)))


@app.route("/api/resources", methods=["POST"])
@admin_required(api=True)
def api_create_resource():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return api_error("Request body must be a JSON object", 400)
    try:
        data = clean_resource_input(body)
        data.setdefault('fileUrl', '#')
        created = create_resource(data)
    except ValueError as e:
        return api_error(str(e), 400)
    except requests.exceptions.HTTPError as e:
        return api_error(supabase_api.error_message(e), 400)
    except requests.exceptions.RequestException:
        return api_error("Internal Server Error", 500)
    return jsonify(created), 201


@app.route("/api/resources/<int:resource_id>", methods=["GET"])
def api_get_resource(resource_id):
    try:
        resource = get_resource_by_id(resource_id)
    except requests.exceptions.RequestException:
        return api_error("Internal Server Error", 500)
    if resource is None:
        return api_error("Resource not found", 404)
    return jsonify(resource)


@app.route("/api/resources/<int:resource_id>", methods=["PUT"])
@admin_required(api=True)
def api_update_resource(resource_id):
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return api_error("Request body must be a JSON object", 400)
    try:
        updated = update_resource(resource_id, clean_resource_input(body, require_all=False))
    except ValueError as e:
        return api_error(str(e), 400)
    except requests.exceptions.HTTPError as e:
        return api_error(supabase_api.error_message(e), 400)
    except requests.exceptions.RequestException:
        return api_error("Internal Server Error", 500)
    if updated is None:
        return api_error("Resource not found", 404)
    return jsonify(updated)


@app.route("/api/resources/<int:resource_id>", methods=["DELETE"])
@admin_required(api=True)
def api_delete_resource(resource_id):
    try:
        delete_resource(resource_id)
    except requests.exceptions.HTTPError as e:
        return api_error(supabase_api.error_message(e), 400)
    except requests.exceptions.RequestException:
        return api_error("Internal Server Error", 500)
    return "", 204


@app.route("/api/uploads", methods=["POST"])
@admin_required(api=True)
def api_upload_file():
    """Uploads a file to storage and returns its public URL."""
    resource_id = request.form.get('resource_id') or f"temp_{int(time.time() * 1000)}"
    try:
        file_url = save_uploaded_file(resource_id)
    except ValueError as e:
        return api_error(str(e), 400)
    except requests.exceptions.RequestException:
        return api_error("Upload failed", 500)
    if file_url is None:
        return api_error("No file provided", 400)
    return jsonify({"fileUrl": file_url}), 201


# --- Admin Login ---

@app.route("/admin/login", methods=["GET", "POST"])
def admin_login_page():
    """Handles GET request for the admin login page and POST for login attempt."""
    if request.method == "POST":
        email = request.form.get("email", "").strip()
        password = request.form.get("password", "")

        if not email or not password:
            flash("Email and password are required.", "danger")
            return render_template("admin_login.html")

        admin = authenticate_admin(email, password)
        if admin:
            session['admin'] = admin
            flash(f"Welcome back, {admin.get('full_name') or admin.get('email')}!", "success")
            return redirect(url_for('manage_resources_page'))

        flash("Invalid credentials. Please try again.", "danger")
        return render_template("admin_login.html"), 401

    if 'admin' in session:
        return redirect(url_for('manage_resources_page'))
    return render_template("admin_login.html")


@app.route("/admin/logout")
def admin_logout():
    session.pop('admin', None)
    flash("You have been logged out.", "info")
    return redirect(url_for('admin_login_page'))


@app.route("/admin/register", methods=["GET", "POST"])
@admin_required()
def admin_register_page():
    """Lets a logged-in admin add another administrator."""
    if request.method == "POST":
        full_name = request.form.get("full_name", "").strip()
        email = request.form.get("email", "").strip()
        password = request.form.get("password", "")
        confirm_password = request.form.get("confirm_password", "")

        if not all([full_name, email, password]):
            flash("Name, email and password are required.", "danger")
            return render_template("admin_register.html")
        if password != confirm_password:
            flash("Passwords do not match.", "danger")
            return render_template("admin_register.html")

        try:
            register_admin(full_name, email, password)
            flash(f'Administrator "{email}" added successfully!', "success")
            return redirect(url_for('manage_resources_page'))
        except ValueError as e:
            flash(str(e), "danger")
        except requests.exceptions.RequestException as e:
            logger.error("Error registering admin: %s", e)
            flash("Registration failed due to a network or server error.", "danger")

    return render_template("admin_register.html")


# --- Resource Management ---

@app.route("/admin/resources")
@admin_required()
def manage_resources_page():
    """Renders the resource management page with filters."""
    all_resources = []
    try:
        all_resources = get_resources()
    except requests.exceptions.RequestException as e:
        logger.error("Error fetching resources: %s", e)
        flash("Could not load resources from the database.", "danger")

    filters = parse_filters(request.args)
    return render_template(
        "manage_resources.html",
        resources=filter_resources(all_resources, **filters),
        total=len(all_resources),
        fields=fetch_all_fields(),
        subjects=distinct_subjects(all_resources),
        search_params=request.args,
    )


@app.route('/admin/resources/add', methods=['POST'])
@admin_required()
def add_resource():
    """Handles the form submission for adding a new resource."""
    file_url = None
    try:
        data = resource_from_form(request.form)
        file_url = save_uploaded_file(f"temp_{int(time.time() * 1000)}")
        data['fileUrl'] = file_url or request.form.get('fileUrl', '').strip() or '#'

        created = create_resource(data)
        flash(f'Resource "{created["title"]}" added successfully!', 'success')

    except ValueError as e:
        flash(str(e), 'danger')
    except requests.exceptions.HTTPError as e:
        logger.error("Supabase add resource error: %s", e)
        log_orphaned_upload(file_url)
        flash(f'Error adding resource: {supabase_api.error_message(e)}', 'danger')
    except requests.exceptions.RequestException as e:
        logger.error("Error inserting resource: %s", e)
        log_orphaned_upload(file_url)
        flash("Adding resource failed due to a network or server error.", "danger")

    return redirect(url_for('manage_resources_page'))


@app.route('/admin/resources/edit/<int:resource_id>')
@admin_required()
def edit_resource_page(resource_id):
    """Shows the form to edit a specific resource."""
    try:
        resource = get_resource_by_id(resource_id)
    except requests.exceptions.RequestException as e:
        logger.error("Error fetching resource %s: %s", resource_id, e)
        flash("Could not load resource data for editing.", "danger")
        return redirect(url_for('manage_resources_page'))

    if resource is None:
        flash(f"Resource {resource_id} not found.", 'danger')
        return redirect(url_for('manage_resources_page'))
    return render_template("edit_resource.html", resource=resource, fields=fetch_all_fields())


@app.route('/admin/resources/update', methods=['POST'])
@admin_required()
def update_resource_route():
    """Handles the form submission for updating an existing resource."""
    resource_id = request.form.get('resource_id', type=int)  # From hidden input
    if resource_id is None:
        flash("Missing resource id.", "danger")
        return redirect(url_for('manage_resources_page'))

    file_url = None
    try:
        data = resource_from_form(request.form)
        file_url = save_uploaded_file(resource_id)
        # Keep the current file unless a replacement was uploaded
        data['fileUrl'] = file_url or request.form.get('fileUrl', '').strip() or '#'

        updated = update_resource(resource_id, data)
        if updated is None:
            log_orphaned_upload(file_url)
            flash(f"Resource {resource_id} not found.", 'danger')
            return redirect(url_for('manage_resources_page'))

        flash(f'Resource "{updated["title"]}" updated successfully!', 'success')
        return redirect(url_for('manage_resources_page'))

    except ValueError as e:
        flash(str(e), 'danger')
    except requests.exceptions.RequestException as e:
        logger.error("Error updating resource %s: %s", resource_id, e)
        log_orphaned_upload(file_url)
        flash("Updating resource failed due to a network or server error.", 'danger')

    # If anything fails, redirect back to the edit page
    return redirect(url_for('edit_resource_page', resource_id=resource_id))


@app.route('/admin/resources/delete/<int:resource_id>', methods=['POST'])
@admin_required()
def delete_resource_route(resource_id):
    """Handles the POST request to delete a resource."""
    try:
        delete_resource(resource_id)
        flash("Resource deleted successfully.", "success")
    except requests.exceptions.RequestException as e:
        logger.error("Error deleting resource %s: %s", resource_id, e)
        flash("Deleting resource failed due to a network or server error.", "danger")

    return redirect(url_for('manage_resources_page'))


# --- Error Handling ---
@app.errorhandler(404)
def page_not_found(e):
    if request.path.startswith('/api/'):
        return api_error("Not found", 404)
    return render_template('404.html'), 404


@app.errorhandler(500)
def internal_server_error(e):
    logger.error("Internal Server Error: %s", e)
    if request.path.startswith('/api/'):
        return api_error("Internal Server Error", 500)
    return render_template('500.html'), 500


# --- Main Execution ---
if __name__ == "__main__":
    app.run(debug=True, port=5000)
