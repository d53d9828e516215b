import os
import logging
from flask import Flask, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

__version__ = '0.4.0'

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def _configure_logging():
    level_name = os.environ.get('WPANALYZER_LOG_LEVEL', 'INFO').upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # Optional rotating file handler for persistent logs
    log_file = os.environ.get('WPANALYZER_LOG_FILE')
    if log_file:
        from logging.handlers import RotatingFileHandler
        max_bytes = int(os.environ.get('WPANALYZER_LOG_MAX_BYTES', str(5 * 1024 * 1024)))
        backup = int(os.environ.get('WPANALYZER_LOG_BACKUP_COUNT', '5'))
        try:
            fh = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup)
        except OSError as exc:
            logging.getLogger(__name__).warning('failed attaching RotatingFileHandler for %s: %s', log_file, exc)
        else:
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            logging.getLogger().addHandler(fh)
            logging.getLogger(__name__).info(
                'RotatingFileHandler attached path=%s max_bytes=%d backups=%d',
                log_file, max_bytes, backup)
    # Outbound client chatter is noise at INFO
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger(__name__).info('Logging initialized at level %s', level_name)


def create_app():
    app = Flask(__name__)
    _configure_logging()

    from .config import Settings
    app.config['WPANALYZER_SETTINGS'] = Settings.from_env()
    app.config['WPANALYZER_VERSION'] = os.environ.get('WPANALYZER_VERSION', __version__)

    # Rate limiting configuration
    default_rate = os.environ.get('WPANALYZER_RATE_LIMIT', '30 per minute')
    storage_uri = os.environ.get('WPANALYZER_LIMITER_STORAGE', 'memory://')
    limiter = Limiter(key_func=get_remote_address, app=app, default_limits=[default_rate], storage_uri=storage_uri)
    app.extensions['limiter'] = limiter

    from .exceptions import AnalyzerException, RateLimitExceededError, error_response

    @app.errorhandler(429)
    def _rate_limited(err):
        body, status = error_response(RateLimitExceededError(str(getattr(err, 'description', default_rate))))
        return jsonify(body), status

    @app.errorhandler(AnalyzerException)
    def _analyzer_error(err):
        body, status = error_response(err)
        return jsonify(body), status

    from .routes.analyze import bp as analyze_bp
    from .routes.system import system_bp
    app.register_blueprint(analyze_bp)
    app.register_blueprint(system_bp)

    rules = sorted({r.rule for r in app.url_map.iter_rules()})
    logging.getLogger(__name__).info('Route map initialized count=%d sample=%s', len(rules), rules[:15])
    return app
