"""Plugin detection.

Independent extractors each report ``(slug, evidence, version, url)``
hits from the parsed page. Hits are merged by canonical slug and scored
with the evidence aggregator, then optionally confirmed through each
plugin's ``readme.txt`` and enriched from the wordpress.org directory.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .. import signatures as sig
from ..evidence_utils import aggregate, merge_evidence
from ..http_client import HttpClient, join_path, query_version, site_root
from ..integrations.wordpress_org import PluginRegistry, health_score, popularity
from ..models import Evidence, PluginFinding
from ..page import Page
from ..version_audit import is_outdated
from ..versioning.validator import is_valid_version, normalize_version, specificity

logger = logging.getLogger('wpanalyzer.detectors.plugins')

PLUGIN_WEIGHTS: Dict[str, int] = {
    'asset_path': 40,
    'meta_tag': 30,
    'readme_file': 30,
    'html_reference': 20,
    'html_comment': 20,
    'css_selector': 20,
    'js_global': 20,
    'rest_namespace': 15,
    'content_pattern': 10,
}

# Most trusted version source first.
VERSION_SOURCES = ['readme_file', 'meta_tag', 'html_comment', 'asset_path', 'html_reference']

# Evidence types too loose to report a plugin on their own.
WEAK_ONLY = {'content_pattern'}


@dataclass(frozen=True)
class Hit:
    slug: str
    evidence: Evidence
    version: Optional[str] = None
    url: Optional[str] = None


def _hit(raw_slug: Optional[str], ev: Evidence, version: Optional[str] = None, url: Optional[str] = None) -> Optional[Hit]:
    slug = sig.canonical_slug(raw_slug)
    if not slug:
        return None
    v = normalize_version(version)
    return Hit(slug, ev, v if is_valid_version(v) else None, url)


# ---- extractors ------------------------------------------------------------

def from_assets(page: Page) -> List[Hit]:
    hits = []
    for asset in page.scripts() + page.links():
        url = asset['url']
        m = sig.PLUGIN_PATH_RE.search(url)
        if m:
            hits.append(_hit(m.group(1), Evidence('asset_path', url, 'high'), query_version(url), url))
    return [h for h in hits if h]


def from_markup(page: Page) -> List[Hit]:
    hits = []
    markup = page.markup_without_assets
    for m in sig.PLUGIN_PATH_VER_RE.finditer(markup):
        hits.append(_hit(m.group(1), Evidence('html_reference', m.group(0)[:160], 'medium'), m.group(2)))
    for m in sig.PLUGIN_PATH_RE.finditer(markup):
        hits.append(_hit(m.group(1), Evidence('html_reference', m.group(0), 'medium')))
    return [h for h in hits if h]


def from_comments(page: Page) -> List[Hit]:
    hits = []
    for comment in page.comments:
        snippet = ' '.join(comment.split())[:160]
        ev = Evidence('html_comment', snippet, 'medium')
        for slug, rx in sig.COMMENT_SIGNATURES:
            m = rx.search(comment)
            if m:
                hits.append(_hit(slug, ev, m.group(1) if rx.groups and m.lastindex else None))
        for m in sig.COMMENT_PATH_RE.finditer(comment):
            hits.append(_hit(m.group(1), ev))
        m = sig.COMMENT_GENERIC_RE.search(comment)
        if m:
            hits.append(_hit(sig.slug_for_name(m.group(1)), ev))
    return [h for h in hits if h]


def from_meta(page: Page) -> List[Hit]:
    hits = []
    for name, rx, slug in sig.META_SIGNATURES:
        for content in page.meta(name):
            m = rx.search(content)
            if m:
                version = m.group(1) if rx.groups and m.lastindex else None
                hits.append(_hit(slug, Evidence('meta_tag', f'{name}: {content}', 'high'), version))
    return [h for h in hits if h]


def from_indicators(page: Page) -> List[Hit]:
    hits = []
    for slug, rx in sig.PLUGIN_INDICATORS:
        if rx.search(page.html):
            hits.append(_hit(slug, Evidence('content_pattern', rx.pattern, 'low')))
    return [h for h in hits if h]


def from_selectors(page: Page) -> List[Hit]:
    hits = []
    for selector, slug in sig.PLUGIN_SELECTORS:
        if page.exists(selector):
            hits.append(_hit(slug, Evidence('css_selector', selector, 'medium')))
    return [h for h in hits if h]


def from_js_globals(page: Page) -> List[Hit]:
    code = '\n'.join(page.inline_scripts)
    if not code:
        return []
    hits = []
    for name, slug, rx in sig.JS_GLOBAL_PATTERNS:
        if rx.search(code):
            hits.append(_hit(slug, Evidence('js_global', name, 'medium')))
    return [h for h in hits if h]


def from_rest_namespaces(page: Page) -> List[Hit]:
    hits = []
    for namespace, slug in sig.REST_NAMESPACES:
        if namespace in page.html:
            hits.append(_hit(slug, Evidence('rest_namespace', namespace, 'medium')))
    return [h for h in hits if h]


EXTRACTORS = [
    from_assets,
    from_markup,
    from_comments,
    from_meta,
    from_indicators,
    from_selectors,
    from_js_globals,
    from_rest_namespaces,
]


def choose_version(candidates: Dict[str, List[str]]) -> Optional[str]:
    """Best version: trusted source first, most specific within a source."""
    for source in VERSION_SOURCES:
        versions = candidates.get(source) or []
        if versions:
            return max(versions, key=specificity)
    return None


def merge(hits: List[Hit]) -> List[PluginFinding]:
    grouped: Dict[str, List[Hit]] = {}
    for h in hits:
        grouped.setdefault(h.slug, []).append(h)
    findings = []
    for slug, group in grouped.items():
        finding = PluginFinding(slug=slug, display_name=sig.display_name(slug))
        for h in group:
            if h.version:
                bucket = finding.version_candidates.setdefault(h.evidence.type, [])
                if h.version not in bucket:
                    bucket.append(h.version)
            if h.url and h.url not in finding.resource_urls:
                finding.resource_urls.append(h.url)
        finding.evidence = merge_evidence([h.evidence for h in group], per_type=True)
        rescore(finding)
        if set(finding.detection_methods) <= WEAK_ONLY:
            logger.debug('dropping weak plugin match slug=%s', slug)
            continue
        findings.append(finding)
    return findings


def rescore(finding: PluginFinding) -> None:
    verdict = aggregate(finding.evidence, PLUGIN_WEIGHTS)
    finding.confidence = verdict.confidence
    finding.score = verdict.score
    finding.detection_methods = list(dict.fromkeys(e.type for e in finding.evidence))
    finding.version = choose_version(finding.version_candidates)


class PluginDetector:
    def __init__(self, http: HttpClient, registry: Optional[PluginRegistry] = None, *,
                 probe_readmes: bool = True, max_concurrent: int = 5):
        self.http = http
        self.registry = registry
        self.probe_readmes = probe_readmes
        self._sem = asyncio.Semaphore(max(1, max_concurrent))

    def extract(self, page: Page) -> List[Hit]:
        hits: List[Hit] = []
        for extractor in EXTRACTORS:
            hits.extend(extractor(page))
        return hits

    async def detect(self, base_url: str, page: Page) -> List[PluginFinding]:
        if page.empty:
            return []
        findings = merge(self.extract(page))
        if self.probe_readmes:
            await asyncio.gather(*(self._readme(base_url, f) for f in findings if not f.version))
        if self.registry is not None and findings:
            await self.enrich(findings)
        findings.sort(key=lambda f: -f.score)
        logger.info('plugins detected url=%s count=%d', base_url, len(findings))
        return findings

    async def _readme(self, base_url: str, finding: PluginFinding) -> None:
        url = join_path(site_root(base_url), f'/wp-content/plugins/{finding.slug}/readme.txt')
        async with self._sem:
            probe = await self.http.probe(url)
        if not probe.found:
            return
        m = sig.README_STABLE_TAG_RE.search(probe.text)
        if not m:
            return
        version = normalize_version(m.group(1))
        if not is_valid_version(version):
            return
        finding.version_candidates.setdefault('readme_file', []).append(version)
        finding.evidence = merge_evidence(finding.evidence, [Evidence('readme_file', url, 'high')], per_type=True)
        rescore(finding)

    async def enrich(self, findings: List[PluginFinding]) -> None:
        infos = await self.registry.get_many(f.slug for f in findings)
        for finding in findings:
            info = infos.get(finding.slug)
            if not info:
                continue
            finding.latest_version = info.get('version')
            if finding.slug not in sig.DISPLAY_NAMES and info.get('name'):
                finding.display_name = info['name']
            finding.registry = dict(info, health_score=health_score(info), popularity=popularity(info))
            finding.is_outdated = is_outdated(finding.version, finding.latest_version)
