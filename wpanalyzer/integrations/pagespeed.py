"""Google PageSpeed Insights (v5) client.

``fetch_both`` runs the mobile and desktop strategies concurrently, each
with its own retry loop; a strategy that exhausts its retries comes back as
None without affecting the other.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import PAGESPEED_API_URL
from ..exceptions import PageSpeedError

logger = logging.getLogger('wpanalyzer.integrations.pagespeed')

BASE_TIMEOUT = 60.0
TIMEOUT_STEP = 20.0

# (metric key, audit id, good/needs-improvement thresholds or None)
CORE_WEB_VITALS = [
    ('lcp', 'largest-contentful-paint', (2500, 4000)),
    ('cls', 'cumulative-layout-shift', (0.1, 0.25)),
    ('inp', 'interactive', (200, 500)),
    ('fcp', 'first-contentful-paint', None),
    ('tbt', 'total-blocking-time', None),
    ('speed_index', 'speed-index', None),
    ('tti', 'interactive', None),
]

OPPORTUNITY_AUDITS = [
    'unused-css-rules', 'unused-javascript', 'render-blocking-resources',
    'unminified-css', 'unminified-javascript', 'efficient-animated-content',
    'offscreen-images', 'uses-webp-images', 'uses-optimized-images',
    'uses-text-compression', 'uses-responsive-images', 'modern-image-formats',
    'uses-rel-preconnect', 'uses-rel-preload', 'critical-request-chains',
    'dom-size', 'duplicated-javascript', 'legacy-javascript', 'no-document-write',
    'preload-lcp-image', 'uses-long-cache-ttl', 'total-byte-weight', 'uses-http2',
]


def metric_status(value: Optional[float], thresholds) -> str:
    if value is None:
        return 'unknown'
    if value <= thresholds[0]:
        return 'good'
    if value <= thresholds[1]:
        return 'needs-improvement'
    return 'poor'


def impact_level(score: float) -> str:
    if score >= 0.9:
        return 'low'
    if score >= 0.5:
        return 'medium'
    return 'high'


def extract_metrics(audits: Dict[str, Any]) -> Dict[str, Any]:
    out = {}
    for key, audit_id, thresholds in CORE_WEB_VITALS:
        audit = audits.get(audit_id) or {}
        entry = {
            'value': audit.get('numericValue'),
            'score': audit.get('score'),
            'display_value': audit.get('displayValue'),
        }
        if thresholds:
            entry['status'] = metric_status(entry['value'], thresholds)
        out[key] = entry
    return out


def extract_opportunities(audits: Dict[str, Any]) -> Dict[str, Any]:
    out = {}
    for audit_id in OPPORTUNITY_AUDITS:
        audit = audits.get(audit_id)
        if not audit or audit.get('score') is None or audit['score'] >= 0.9:
            continue
        details = audit.get('details') or {}
        savings = None
        if details.get('overallSavingsMs'):
            savings = {'time': details['overallSavingsMs'], 'bytes': details.get('overallSavingsBytes') or 0}
        out[audit_id] = {
            'id': audit_id,
            'title': audit.get('title'),
            'score': audit['score'],
            'display_value': audit.get('displayValue'),
            'savings': savings,
            'impact': impact_level(audit['score']),
        }
    return out


def extract_categories(categories: Dict[str, Any]) -> Dict[str, Any]:
    return {
        cid: {'id': cid, 'title': c.get('title'), 'score': c.get('score')}
        for cid, c in categories.items()
        if isinstance(c, dict)
    }


def summarize(metrics: Dict[str, Any], opportunities: Dict[str, Any], categories: Dict[str, Any]) -> Dict[str, Any]:
    def cat_score(cid):
        return (categories.get(cid) or {}).get('score')

    return {
        'overall_score': cat_score('performance'),
        'cwv_status': {k: (metrics.get(k) or {}).get('status', 'unknown') for k in ('lcp', 'cls', 'inp')},
        'opportunities_count': len(opportunities),
        'high_impact_opportunities': sum(1 for o in opportunities.values() if o['impact'] == 'high'),
        'categories_scores': {
            'performance': cat_score('performance'),
            'accessibility': cat_score('accessibility'),
            'best_practices': cat_score('best-practices'),
            'seo': cat_score('seo'),
        },
    }


def parse_report(strategy: str, data: Dict[str, Any]) -> Dict[str, Any]:
    lighthouse = data.get('lighthouseResult') or {}
    audits = lighthouse.get('audits') or {}
    metrics = extract_metrics(audits)
    opportunities = extract_opportunities(audits)
    categories = extract_categories(lighthouse.get('categories') or {})
    return {
        'strategy': strategy,
        'fetched_at': lighthouse.get('fetchTime'),
        'metrics': metrics,
        'opportunities': opportunities,
        'categories': categories,
        'summary': summarize(metrics, opportunities, categories),
    }


class PageSpeedClient:
    def __init__(self, api_key: Optional[str] = None, *, max_retries: int = 3, backoff: float = 2.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        self._transport = transport

    async def fetch_single(self, client: httpx.AsyncClient, url: str, strategy: str, attempt: int) -> Dict[str, Any]:
        params = {'url': url, 'strategy': strategy}
        if self.api_key:
            params['key'] = self.api_key
        timeout = BASE_TIMEOUT + attempt * TIMEOUT_STEP
        try:
            resp = await client.get(PAGESPEED_API_URL, params=params, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise PageSpeedError(strategy, f'timed out after {timeout:.0f}s', retryable=True) from exc
        except httpx.HTTPError as exc:
            raise PageSpeedError(strategy, str(exc) or exc.__class__.__name__, retryable=True) from exc
        if resp.status_code != 200:
            retryable = resp.status_code >= 500 or resp.status_code == 429
            raise PageSpeedError(strategy, f'HTTP {resp.status_code}', status=resp.status_code, retryable=retryable)
        try:
            data = resp.json()
        except ValueError as exc:
            raise PageSpeedError(strategy, 'invalid JSON') from exc
        return parse_report(strategy, data)

    async def fetch(self, client: httpx.AsyncClient, url: str, strategy: str) -> Dict[str, Any]:
        """One strategy with retries; raises the last ``PageSpeedError``."""
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self.fetch_single(client, url, strategy, attempt - 1)
            except PageSpeedError as exc:
                if attempt == self.max_retries or not exc.retryable:
                    raise
                delay = attempt * self.backoff
                logger.warning('PageSpeed %s attempt %d/%d failed for %s (%s), retrying in %.1fs',
                               strategy, attempt, self.max_retries, url, exc.message, delay)
                await asyncio.sleep(delay)
        raise PageSpeedError(strategy, 'no attempts made')

    async def fetch_both(self, url: str) -> Dict[str, Optional[Dict[str, Any]]]:
        async with httpx.AsyncClient(transport=self._transport, timeout=httpx.Timeout(BASE_TIMEOUT)) as client:
            strategies: List[str] = ['mobile', 'desktop']
            results = await asyncio.gather(
                *(self.fetch(client, url, s) for s in strategies),
                return_exceptions=True,
            )
        out: Dict[str, Optional[Dict[str, Any]]] = {}
        for strategy, result in zip(strategies, results):
            if isinstance(result, PageSpeedError):
                logger.warning('PageSpeed %s unavailable for %s: %s', strategy, url, result.message)
                out[strategy] = None
            elif isinstance(result, BaseException):
                raise result
            else:
                out[strategy] = result
        return out
