"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect
from werkzeug.exceptions import HTTPException
from app.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize CSRF protection
    csrf = CSRFProtect(app)

    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'A sessão expirou. Recarregue a página.'}), 400

    # Initialize Sentry for error tracking in production
    sentry_dsn = app.config.get('SENTRY_DSN')
    if sentry_dsn and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            profiles_sample_rate=0.1,  # 10% for profiling
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,      # Trust X-Forwarded-For with 1 proxy
            x_proto=1,    # Trust X-Forwarded-Proto
            x_host=1,     # Trust X-Forwarded-Host
            x_port=1,     # Trust X-Forwarded-Port
            x_prefix=0    # No prefix (not behind a URL prefix)
        )

    # Initialize database
    init_db(app)

    # Load the identity the access gate works with before each request
    from app.middleware import load_identity

    @app.before_request
    def before_request_handler():
        """Load user and identity context for each request."""
        load_identity()

    # Error Handlers
    from app.exceptions import BarberProError
    from app.database import get_session

    @app.errorhandler(BarberProError)
    def handle_barberpro_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"BarberProError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"BarberProError [{error.status_code}] {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Página não encontrada'}), 404

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception: {error}", exc_info=True)
        get_session().rollback()
        return jsonify({'status': 'error', 'message': 'Erro interno do servidor'}), 500

    # Register blueprints
    from app.blueprints.auth import auth_bp
    from app.blueprints.main import main_bp
    from app.blueprints.admin import admin_bp
    from app.blueprints.barber import barber_bp
    from app.blueprints.barbershop import barbershop_bp
    from app.blueprints.public import public_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(barber_bp)
    app.register_blueprint(barbershop_bp)

    # Public booking pages have no session, so no CSRF token
    csrf.exempt(public_bp)
    app.register_blueprint(public_bp)

    # Register CLI commands
    from app.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
