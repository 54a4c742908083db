from flask_login import LoginManager

login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message = "Please log in to continue."
login_manager.login_message_category = "error"
# Identity lives in the backend cookie; Flask-Login never stores a user id
login_manager.session_protection = None
