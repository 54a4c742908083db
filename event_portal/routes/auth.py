from flask import Blueprint, flash, redirect, render_template, request, url_for

from ..forms import LoginForm, RegisterForm
from ..portal import get_store
from ..security import is_safe_next
from ..services.logging_service import log_event


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _already_logged_in() -> bool:
    store = get_store()
    store.verify_session()
    return store.is_authenticated


@auth_bp.get("/register")
def register():
    if _already_logged_in():
        return redirect(url_for("events.list_events"))
    return render_template("auth/register.html", form=RegisterForm())

@auth_bp.post("/register")
def register_post():
    if _already_logged_in():
        return redirect(url_for("events.list_events"))

    form = RegisterForm()
    if not form.validate_on_submit():
        return render_template("auth/register.html", form=form), 400

    outcome = get_store().register(form.to_fields())
    if not outcome.ok:
        flash(outcome.message, "error")
        return render_template("auth/register.html", form=form), 400

    log_event("user_registered", meta={"username": form.username.data, "email": form.email.data})
    flash(f"Registration successful. {outcome.message}", "success")
    return redirect(url_for("auth.login"))

@auth_bp.get("/login")
def login():
    if _already_logged_in():
        return redirect(url_for("events.list_events"))
    return render_template("auth/login.html", form=LoginForm(), next=request.args.get("next", ""))

@auth_bp.post("/login")
def login_post():
    form = LoginForm()
    next_url = request.form.get("next") or request.args.get("next")
    if not form.validate_on_submit():
        return render_template("auth/login.html", form=form, next=next_url or ""), 400

    store = get_store()
    outcome = store.login(form.identifier.data.strip(), form.password.data)
    if not outcome.ok:
        flash(outcome.message, "error")
        return render_template("auth/login.html", form=form, next=next_url or ""), 401

    log_event("user_login", user_id=store.current_user.user_id)
    flash(outcome.message, "success")
    if is_safe_next(next_url):
        return redirect(next_url)
    return redirect(url_for("events.list_events"))

@auth_bp.post("/logout")
def logout():
    store = get_store()
    store.verify_session()
    user = store.current_user

    outcome = store.logout()
    log_event("user_logout", user_id=user.user_id if user else None, meta={"server_ok": outcome.ok})

    if outcome.ok:
        flash("Logged out.", "success")
    else:
        flash(f"Logged out locally, but the server reported: {outcome.message}", "error")
    return redirect(url_for("events.list_events"))
