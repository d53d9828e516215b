"""Is this site WordPress?

Each check emits at most one ``Evidence`` per marker; the aggregator turns
them into a verdict. ``path_indicator`` may appear several times (one per
path) but its weight counts once.
"""

import logging
from typing import List

from ..evidence_utils import SITE_WEIGHTS, aggregate
from ..models import Evidence, Verdict
from ..page import Page
from .. import signatures as sig

logger = logging.getLogger('wpanalyzer.detectors.site')


def collect_evidence(page: Page) -> List[Evidence]:
    if page is None or page.empty:
        return []
    ev: List[Evidence] = []

    for content in page.meta('generator'):
        if sig.GENERATOR_WP_RE.search(content):
            ev.append(Evidence('meta_generator', content, 'high'))
            break

    for path in sig.WP_PATHS:
        if path in page.lower:
            ev.append(Evidence('path_indicator', path, 'medium'))

    body = ' '.join(page.body_classes).lower()
    for cls in sig.WP_CLASSES:
        if cls in body:
            ev.append(Evidence('css_class', f'body.{cls}', 'medium'))
            break
    else:
        for cls in sig.WP_CLASSES:
            if page.exists(f'#{cls}'):
                ev.append(Evidence('css_class', f'#{cls}', 'medium'))
                break

    if page.exists('#wpadminbar'):
        ev.append(Evidence('admin_bar', '#wpadminbar', 'high'))

    scripts = [s for s in page.scripts() if sig.WP_ASSET_RE.search(s['url'])]
    if scripts:
        ev.append(Evidence('script_tags', f'{len(scripts)} WordPress scripts', 'high'))

    styles = [l for l in page.links() if sig.WP_ASSET_RE.search(l['url'])]
    if styles:
        ev.append(Evidence('css_files', f'{len(styles)} WordPress stylesheets', 'high'))

    rest_links = [el for el in page.select('link[rel]')
                  if sig.REST_LINK_REL in (el.get('rel') or [])]
    if rest_links or sig.REST_API_RE.search(page.html):
        ev.append(Evidence('rest_api', (rest_links[0].get('href') if rest_links else None) or 'wp-json', 'high'))

    return ev


def detect(page: Page) -> Verdict:
    verdict = aggregate(collect_evidence(page), SITE_WEIGHTS)
    logger.debug('site verdict url=%s positive=%s confidence=%s score=%d',
                 getattr(page, 'url', None), verdict.is_positive, verdict.confidence, verdict.score)
    return verdict


def summarize(verdict: Verdict) -> str:
    if not verdict.is_positive:
        return 'No WordPress markers found'
    types = sorted({e.type for e in verdict.evidence})
    return f'WordPress ({verdict.confidence} confidence, score {verdict.score}): {", ".join(types)}'
