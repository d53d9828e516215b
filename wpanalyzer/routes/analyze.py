from flask import Blueprint, request, jsonify, current_app
import asyncio
import logging
import os
import time

from .. import analyzer
from ..exceptions import AnalyzerException, NotWordPressError, error_response, make_error_response

bp = Blueprint('analyze', __name__)

logger = logging.getLogger('wpanalyzer.routes.analyze')

# Custom limits (can be overridden via env)
SINGLE_LIMIT = os.environ.get('WPANALYZER_SINGLE_RATE_LIMIT', '20 per minute')
BATCH_LIMIT = os.environ.get('WPANALYZER_BATCH_RATE_LIMIT', '5 per minute')
MAX_BATCH = int(os.environ.get('WPANALYZER_MAX_BATCH', '20'))


def _limited(limit, fn):
    limiter = current_app.extensions.get('limiter')
    if limiter:
        # applied per call since the blueprint can load before the limiter
        return limiter.limit(limit)(fn)()
    return fn()


def _truthy(value) -> bool:
    return str(value).lower() in ('1', 'true', 'yes')


@bp.route('/api/analyze', methods=['POST'])
def analyze_route():
    return _limited(SINGLE_LIMIT, analyze_single_impl)


def analyze_single_impl():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(make_error_response('INVALID_REQUEST', 'invalid JSON body', 400)), 400
    url = data.get('url')
    options = data.get('options') or {}
    if not isinstance(options, dict):
        return jsonify(make_error_response('INVALID_REQUEST', 'options must be an object', 400)), 400
    settings = current_app.config.get('WPANALYZER_SETTINGS')
    start = time.time()
    logger.info('/api/analyze request url=%s options=%s', url, sorted(options))
    try:
        result = asyncio.run(analyzer.analyze(url, options, settings=settings))
    except AnalyzerException as exc:
        logger.warning('/api/analyze failed url=%s code=%s err=%s', url, exc.error_code, exc.message)
        body, status = error_response(exc)
        return jsonify(body), status
    if _truthy(data.get('require_wordpress')) and not result.is_wordpress:
        body, status = error_response(NotWordPressError(result.url))
        return jsonify(body), status
    logger.info('/api/analyze success url=%s wordpress=%s plugins=%d duration=%.2fs',
                result.url, result.is_wordpress, len(result.plugins), time.time() - start)
    return jsonify({'success': True, 'data': result.to_dict()})


@bp.route('/api/analyze/batch', methods=['POST'])
def analyze_batch_route():
    return _limited(BATCH_LIMIT, analyze_batch_impl)


def analyze_batch_impl():
    data = request.get_json(silent=True) or {}
    urls = data.get('urls') if isinstance(data, dict) else None
    if not isinstance(urls, list) or not urls:
        return jsonify(make_error_response('INVALID_REQUEST', 'urls must be a non-empty list', 400)), 400
    if len(urls) > MAX_BATCH:
        return jsonify(make_error_response(
            'BATCH_TOO_LARGE', f'at most {MAX_BATCH} urls per batch', 400, {'max': MAX_BATCH})), 400
    options = data.get('options') or {}
    if not isinstance(options, dict):
        return jsonify(make_error_response('INVALID_REQUEST', 'options must be an object', 400)), 400
    concurrency = data.get('concurrency')
    try:
        concurrency = int(concurrency) if concurrency is not None else None
    except (TypeError, ValueError):
        concurrency = None
    settings = current_app.config.get('WPANALYZER_SETTINGS')
    start = time.time()
    results = asyncio.run(analyzer.analyze_many(urls, options, concurrency=concurrency, settings=settings))
    failed = sum(1 for r in results if r.get('error'))
    logger.info('/api/analyze/batch done count=%d failed=%d duration=%.2fs', len(results), failed, time.time() - start)
    return jsonify({
        'success': True,
        'data': results,
        'summary': {'total': len(results), 'failed': failed, 'succeeded': len(results) - failed},
    })


@bp.route('/api/detect', methods=['GET'])
def detect_route():
    url = request.args.get('url') or request.args.get('u')
    if not url:
        return jsonify(make_error_response('INVALID_URL', 'missing url parameter', 400)), 400
    result = asyncio.run(analyzer.quick_detect(url))
    return jsonify({'success': 'error' not in result, 'data': result})


@bp.route('/api/info', methods=['GET'])
def info_route():
    return jsonify(analyzer.get_info())
