import logging
from typing import Optional, Dict, Any

from flask import Flask, redirect, render_template, url_for

from .config import Config
from .extensions import login_manager
from .security import csrf
from .services.http_client import ApiError

logger = logging.getLogger(__name__)

def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)

    if config_overrides:
        app.config.update(config_overrides)

    login_manager.init_app(app)
    csrf.init_app(app)

    from .portal import get_store, persist_store
    app.after_request(persist_store)

    @app.context_processor
    def inject_auth():
        store = get_store()
        store.verify_session()
        return {"auth": store}

    from .routes.auth import auth_bp
    app.register_blueprint(auth_bp)

    from .routes.events import events_bp
    app.register_blueprint(events_bp)

    from .routes.profile import profile_bp
    app.register_blueprint(profile_bp)

    from .routes.api import api_bp
    app.register_blueprint(api_bp)

    @app.get("/")
    def home():
        return redirect(url_for("events.list_events"))

    @app.errorhandler(404)
    def not_found(e):
        return render_template("errors/404.html", message=getattr(e, "description", None)), 404

    @app.errorhandler(ApiError)
    def api_error(e: ApiError):
        logger.error("Unhandled backend error: %r", e)
        return render_template("errors/500.html", message=e.message), 502

    return app
