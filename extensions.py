"""
extensions.py - Flask Extensions
Extension objects are created here and bound to the app in app.py with init_app(),
so models, repository and blueprints can import them without circular imports.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_bcrypt import Bcrypt

# Database ORM - grades, submissions, courses and the rest of models.py
db = SQLAlchemy()

# Schema migrations for the models above
# Usage: flask db init, flask db migrate, flask db upgrade
migrate = Migrate()

# Session handling - the logged-in user is turned into a RequestContext per request
login_manager = LoginManager()

# Password hashing for User accounts
bcrypt = Bcrypt()
