"""Analysis orchestrator.

``analyze`` fetches the page once, decides whether it is WordPress, runs the
version, theme and plugin detectors concurrently, then measures performance
and builds recommendations. Only URL validation and the main page fetch can
raise; every later stage degrades to an empty sub-result.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from .config import Settings
from .detectors import site as site_detector
from .detectors.plugins import PluginDetector
from .detectors.theme import ThemeDetector
from .exceptions import AnalyzerException, FetchError, FetchFailedError
from .http_client import HttpClient, normalize_url
from .integrations.pagespeed import PageSpeedClient
from .integrations.wordpress_org import PluginRegistry, default_registry
from .metrics import record_analysis, track_active_analysis
from .models import AnalysisOptions, AnalysisResult, Verdict
from .page import Page
from .performance import PerformanceAnalyzer
from .recommendations import RecommendationEngine
from .versioning import VersionDetector

logger = logging.getLogger('wpanalyzer.analyzer')

OptionsLike = Union[AnalysisOptions, Mapping[str, Any], None]


def _options(options: OptionsLike) -> AnalysisOptions:
    if isinstance(options, AnalysisOptions):
        return options
    return AnalysisOptions.from_mapping(options)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _fetch_page(http: HttpClient, url: str) -> Page:
    try:
        resp = await http.fetch(url)
    except FetchError as exc:
        raise FetchFailedError(url, str(exc)) from exc
    if resp.status >= 400:
        raise FetchFailedError(url, f'HTTP {resp.status}', status=resp.status)
    return Page(resp.url, resp.text, resp.headers)


async def _guard(coro, label: str, url: str, default):
    """Await one detector; a failure becomes ``default`` so siblings still report."""
    try:
        return await coro
    except Exception:
        logger.exception('%s failed url=%s', label, url)
        return default


async def analyze(url: str, options: OptionsLike = None, *, client: Optional[HttpClient] = None,
                  registry: Optional[PluginRegistry] = None, settings: Optional[Settings] = None,
                  pagespeed: Optional[PageSpeedClient] = None, mode: str = 'single') -> AnalysisResult:
    """Analyze one site.

    Raises:
        InvalidUrlError: ``url`` is missing or malformed
        FetchFailedError: the main page could not be retrieved
    """
    opts = _options(options)
    settings = settings or (client.settings if client else Settings.from_env())
    target = normalize_url(url)
    started = time.perf_counter()
    result = AnalysisResult(url=target, timestamp=_now())
    owns_client = client is None
    http = client or HttpClient(settings)
    status = 'error'
    with track_active_analysis():
        try:
            if owns_client:
                await http.__aenter__()
            page = await _fetch_page(http, target)
            result.wordpress = site_detector.detect(page)
            if not result.wordpress.is_positive:
                logger.info('not WordPress url=%s', target)
                status = 'not_wordpress'
                return result
            await _run_detectors(http, page, target, opts, settings, registry, pagespeed, result)
            status = 'success'
            return result
        finally:
            if owns_client:
                await http.aclose()
            elapsed = time.perf_counter() - started
            result.duration = int(round(elapsed * 1000))
            record_analysis(mode, status, elapsed, len(result.plugins))
            logger.info('analysis finished url=%s status=%s duration_ms=%d plugins=%d',
                        target, status, result.duration, len(result.plugins))


async def _run_detectors(http: HttpClient, page: Page, target: str, opts: AnalysisOptions,
                         settings: Settings, registry: Optional[PluginRegistry],
                         pagespeed: Optional[PageSpeedClient], result: AnalysisResult) -> None:
    if registry is None and opts.use_registry and settings.registry_enabled:
        registry = default_registry()
    elif not opts.use_registry:
        registry = None

    async def nothing(value=None):
        return value

    if opts.include_version:
        detector = VersionDetector(http, exhaustive=opts.exhaustive_version)
        version_task = _guard(detector.detect_best(target, page), 'version detection', target, None)
    else:
        version_task = nothing()
    if opts.include_theme:
        theme_task = _guard(ThemeDetector(http).detect(target, page), 'theme detection', target, None)
    else:
        theme_task = nothing()
    if opts.include_plugins:
        plugins = PluginDetector(http, registry, probe_readmes=opts.probe_plugin_readmes,
                                 max_concurrent=opts.max_concurrent_requests)
        plugin_task = _guard(plugins.detect(target, page), 'plugin detection', target, [])
    else:
        plugin_task = nothing([])
    result.version, result.theme, result.plugins = await asyncio.gather(version_task, theme_task, plugin_task)

    if opts.include_performance:
        use_psi = settings.pagespeed_enabled if opts.include_pagespeed is None else opts.include_pagespeed
        if use_psi and pagespeed is None:
            pagespeed = PageSpeedClient(settings.pagespeed_api_key, max_retries=settings.pagespeed_max_retries,
                                        backoff=settings.pagespeed_backoff)
        analyzer = PerformanceAnalyzer(http, pagespeed=pagespeed if use_psi else None,
                                       max_concurrent=opts.max_concurrent_requests)
        slugs = [p.slug for p in result.plugins] if opts.include_plugins else None
        result.performance = await _guard(analyzer.analyze(target, page.html, slugs),
                                          'performance analysis', target, None)

    if opts.include_recommendations:
        engine = RecommendationEngine(settings)
        result.recommendations = engine.build(result.plugins, result.theme, result.version, result.performance)


async def analyze_many(urls: List[str], options: OptionsLike = None, *, concurrency: Optional[int] = None,
                       batch_delay: Optional[float] = None, client: Optional[HttpClient] = None,
                       registry: Optional[PluginRegistry] = None,
                       settings: Optional[Settings] = None) -> List[Dict[str, Any]]:
    """Analyze URLs in fixed-size concurrent batches with a pause between batches.

    Failures are reported per URL as ``{'url', 'error', 'timestamp'}`` dicts.
    """
    opts = _options(options)
    settings = settings or (client.settings if client else Settings.from_env())
    size = max(1, concurrency or opts.max_concurrent_requests)
    delay = settings.batch_delay if batch_delay is None else batch_delay

    async def one(u: str) -> Dict[str, Any]:
        try:
            res = await analyze(u, opts, client=client, registry=registry, settings=settings, mode='batch')
            return res.to_dict()
        except AnalyzerException as exc:
            logger.warning('batch item failed url=%s err=%s', u, exc.message)
            return {'url': u, 'error': exc.message, 'error_code': exc.error_code, 'timestamp': _now()}

    out: List[Dict[str, Any]] = []
    for start in range(0, len(urls), size):
        batch = urls[start:start + size]
        out.extend(await asyncio.gather(*(one(u) for u in batch)))
        if start + size < len(urls) and delay > 0:
            await asyncio.sleep(delay)
    return out


async def quick_detect(url: str, *, client: Optional[HttpClient] = None) -> Dict[str, Any]:
    """Site verdict only. Never raises; problems come back in ``error``."""
    started = time.perf_counter()
    try:
        target = normalize_url(url)
    except AnalyzerException as exc:
        return {'url': url, 'is_wordpress': False, 'error': exc.message}
    http = client or HttpClient()
    owns = client is None
    try:
        if owns:
            await http.__aenter__()
        page = await _fetch_page(http, target)
        verdict: Verdict = site_detector.detect(page)
        record_analysis('quick', 'success' if verdict.is_positive else 'not_wordpress',
                        time.perf_counter() - started)
        return {
            'url': target,
            'is_wordpress': verdict.is_positive,
            'confidence': verdict.confidence,
            'score': verdict.score,
            'summary': site_detector.summarize(verdict),
        }
    except AnalyzerException as exc:
        record_analysis('quick', 'error', time.perf_counter() - started)
        return {'url': target, 'is_wordpress': False, 'error': exc.message}
    finally:
        if owns:
            await http.aclose()


def analyze_sync(url: str, options: OptionsLike = None, **kwargs) -> AnalysisResult:
    return asyncio.run(analyze(url, options, **kwargs))


def get_info() -> Dict[str, Any]:
    from .detectors.plugins import EXTRACTORS
    from .versioning.patterns import METHODS
    return {
        'name': 'wpanalyzer',
        'capabilities': ['wordpress_detection', 'version_detection', 'theme_detection',
                         'plugin_detection', 'performance_analysis', 'recommendations'],
        'version_methods': list(METHODS),
        'plugin_extractors': [fn.__name__.replace('from_', '') for fn in EXTRACTORS],
        'options': list(AnalysisOptions.__dataclass_fields__),
    }
