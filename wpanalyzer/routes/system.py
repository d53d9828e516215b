import os, time, pathlib
from flask import Blueprint, jsonify, current_app, Response

from ..metrics import get_metrics, get_content_type

system_bp = Blueprint('system', __name__)

_START_TIME = time.time()


def _get_commit_short() -> str:
    root = pathlib.Path(__file__).resolve().parent.parent.parent
    head_file = root / '.git' / 'HEAD'
    try:
        head_content = head_file.read_text().strip()
    except OSError:
        return 'unknown'
    if head_content.startswith('ref:'):
        ref_path = root / '.git' / head_content.split(' ', 1)[1]
        try:
            return ref_path.read_text().strip()[:7] or 'unknown'
        except OSError:
            return 'unknown'
    return head_content[:7] or 'unknown'


_COMMIT = _get_commit_short()


@system_bp.route('/health', methods=['GET'])
def health():
    # lightweight status; avoid heavy imports
    uptime = time.time() - _START_TIME
    return jsonify({'status': 'ok', 'uptime_seconds': round(uptime, 2)})


@system_bp.route('/version', methods=['GET'])
def version():
    uptime = time.time() - _START_TIME
    settings = current_app.config.get('WPANALYZER_SETTINGS')
    features = {
        'pagespeed': bool(settings and settings.pagespeed_enabled),
        'registry': bool(settings and settings.registry_enabled),
        'verify_tls': os.environ.get('WPANALYZER_VERIFY_TLS', '1') == '1',
    }
    return jsonify({
        'version': current_app.config.get('WPANALYZER_VERSION'),
        'git_commit': _COMMIT,
        'uptime_seconds': round(uptime, 2),
        'features': features,
    })


@system_bp.route('/metrics/prometheus', methods=['GET'])
def metrics_prometheus():
    return Response(get_metrics(), content_type=get_content_type())
