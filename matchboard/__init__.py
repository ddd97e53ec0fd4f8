"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask, current_app, request
from werkzeug.middleware.proxy_fix import ProxyFix

from .auth.decorators import current_role
from .core.constants import (
    DEFAULT_ADMIN_PASSWORD,
    DEFAULT_REFEREE_PASSWORD,
    SHARED_BIN_URL,
    SYNC_CODE_PARAM,
    SYNC_INTERVAL_SECONDS,
)
from .extensions import SYNC_EXTENSION, csrf, get_sync
from .match.models import UserRole
from .storage import DocumentStore, KeyValueStorage, LocalStore, Settings, SharedBinClient
from .sync.synchronizer import SessionSynchronizer, SyncMode


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ["true", "1", "t"]


def _load_credentials(app):
    """Find Firebase credentials: env JSON, then a local file, then ADC if enabled."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # Default credentials only when the document store was asked for
    if not cred and app.config["USE_FIRESTORE"]:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    return cred, project_id


def _init_document_store(app, defaults):
    """A DocumentStore when Firestore is configured, else None."""
    client = app.config.get("FIRESTORE_CLIENT")
    if client is not None:
        return DocumentStore(db=client, defaults=defaults)
    if app.config.get("TESTING"):
        return None

    cred, project_id = _load_credentials(app)
    if not cred:
        return None

    if not firebase_admin._apps:
        try:
            firebase_options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, firebase_options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")

    try:
        return DocumentStore(defaults=defaults)
    except Exception as e:
        app.logger.error(f"Firestore unavailable, using local storage: {e}")
        return None


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        STORAGE_DIR=os.environ.get("MATCHBOARD_STORAGE_DIR")
        or os.path.join(app.instance_path, "storage"),
        SHARED_BIN_URL=os.environ.get("SHARED_BIN_URL") or SHARED_BIN_URL,
        SHARED_BIN_TIMEOUT=float(os.environ["SHARED_BIN_TIMEOUT"])
        if os.environ.get("SHARED_BIN_TIMEOUT")
        else None,
        SYNC_INTERVAL_SECONDS=float(
            os.environ.get("SYNC_INTERVAL_SECONDS") or SYNC_INTERVAL_SECONDS
        ),
        SYNC_AUTOSTART=_env_flag("SYNC_AUTOSTART", True),
        DEFAULT_ADMIN_PASSWORD=os.environ.get("DEFAULT_ADMIN_PASSWORD")
        or DEFAULT_ADMIN_PASSWORD,
        DEFAULT_REFEREE_PASSWORD=os.environ.get("DEFAULT_REFEREE_PASSWORD")
        or DEFAULT_REFEREE_PASSWORD,
        USE_FIRESTORE=_env_flag("USE_FIRESTORE", False),
        FIRESTORE_CLIENT=None,
    )

    if test_config:
        app.config.update(test_config)
        if app.config.get("TESTING") and "SYNC_AUTOSTART" not in test_config:
            app.config["SYNC_AUTOSTART"] = False

    # Ensure the instance folder exists
    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    # Initialize extensions
    csrf.init_app(app)

    defaults = Settings(
        admin_password=app.config["DEFAULT_ADMIN_PASSWORD"],
        referee_password=app.config["DEFAULT_REFEREE_PASSWORD"],
    )
    storage = KeyValueStorage(app.config["STORAGE_DIR"])
    sync = SessionSynchronizer(
        storage,
        LocalStore(storage, defaults),
        bin_client=SharedBinClient(
            app.config["SHARED_BIN_URL"], timeout=app.config["SHARED_BIN_TIMEOUT"]
        ),
        document_store=_init_document_store(app, defaults),
        interval=app.config["SYNC_INTERVAL_SECONDS"],
    )
    app.extensions[SYNC_EXTENSION] = sync
    if app.config["SYNC_AUTOSTART"]:
        sync.start()
    else:
        sync.refresh()
    app.logger.info(f"Serving sessions from {sync.mode.value} storage.")

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)

    from . import referee as referee_bp

    app.register_blueprint(referee_bp.bp)

    from . import board as board_bp

    app.register_blueprint(board_bp.bp)

    from . import sync as sync_bp

    app.register_blueprint(sync_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    # The board is the landing page, and where share links point.
    app.add_url_rule("/", endpoint="board.list_sessions")

    @app.before_request
    def adopt_sync_code():
        """An organizer opening a ?sid=<code> link moves the server to that bin.

        The sync code is shared by every client, so guests and referees
        following a share link only read the board.
        """
        code = (request.args.get(SYNC_CODE_PARAM) or "").strip()
        if not code:
            return
        if current_role() is not UserRole.ADMIN:
            current_app.logger.info(f"Ignoring sync code {code} from a non-admin link.")
            return
        sync = get_sync()
        if sync.mode is SyncMode.DOCUMENT or code == sync.sync_code:
            return
        current_app.logger.info(f"Joining shared bin {code} from link.")
        sync.join(code)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
