"""
app.py - Application Factory
Entry point for the Gradeledger Flask application.
"""

import logging

from flask import Flask, jsonify

from config import config
from errors import LedgerError
from extensions import bcrypt, db, login_manager, migrate

logger = logging.getLogger(__name__)


def create_app(config_name='development'):
    """
    Application Factory Function

    Args:
        config_name (str): Configuration to use ('development', 'production', 'testing')

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)

    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    configure_logging(app)

    # Initialize extensions with the app
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    bcrypt.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        """Load user by ID for Flask-Login session management"""
        from models import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'login required'}), 401

    register_blueprints(app)
    register_error_handlers(app)

    # Import models so Flask-Migrate can detect them
    with app.app_context():
        import models  # noqa: F401

    return app


def configure_logging(app):
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format=app.config['LOG_FORMAT']
    )


def register_blueprints(app):
    """
    Register all application blueprints
    """
    from blueprints.auth.routes import auth_bp
    from blueprints.teacher.routes import teacher_bp
    from blueprints.student.routes import student_bp
    from blueprints.parent.routes import parent_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(teacher_bp, url_prefix='/teacher')
    app.register_blueprint(student_bp, url_prefix='/student')
    app.register_blueprint(parent_bp, url_prefix='/parent')

    @app.route('/health')
    def health():
        return jsonify({'status': 'healthy'})


def register_error_handlers(app):
    """
    Render ledger errors and common HTTP errors as JSON
    """
    @app.errorhandler(LedgerError)
    def ledger_error(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        else:
            logger.warning(f"{type(error).__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'error': 'not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()  # Rollback any failed database transactions
        return jsonify({'success': False, 'error': 'internal server error'}), 500


if __name__ == '__main__':
    app = create_app('development')

    app.run(
        host='0.0.0.0',
        port=5000,
        debug=True
    )
