"""
TailWatch Flask Application.

Main entry point for the web application. Initializes:
- Cache database schema (when a cache database is configured)
- API routes
- JSON error handlers

Usage:
    python -m tailwatch.app

Or with gunicorn:
    gunicorn 'tailwatch.app:create_app()'
"""

import logging
import os
from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from tailwatch.config import config
from tailwatch.models import init_db
from tailwatch.api import flights_bp, chat_bp, debug_bp
from tailwatch.services.flightaware import FlightAwareError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app() -> Flask:
    """
    Application factory for Flask.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    # Initialize cache database
    if init_db():
        logger.info('Cache database initialized')
    else:
        logger.warning('No CACHE_DATABASE_URL configured, running without cache')

    # Register API blueprints
    app.register_blueprint(flights_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(debug_bp)

    @app.route('/health')
    @app.route('/api/health')
    def health():
        """Simple health check endpoint."""
        return {
            'status': 'ok',
            'message': 'TailWatch API is running',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'environment': config.environment,
        }

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(FlightAwareError)
    def flightaware_error(e: FlightAwareError):
        logger.error(f'FlightAware error: {e.message} (status={e.status}, code={e.code})')
        return jsonify(e.to_dict()), e.status or 500

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(Exception)
    def server_error(e: Exception):
        if isinstance(e, HTTPException):
            return {'error': e.description}, e.code
        logger.exception(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    # Get port from environment or default
    port = int(os.environ.get('PORT', 5000))

    logger.info(f'Starting TailWatch on http://localhost:{port} for {config.aircraft_ident}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
    )


if __name__ == '__main__':
    run_development_server()
