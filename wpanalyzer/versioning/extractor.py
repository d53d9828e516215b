"""WordPress core version detector.

Combines in-page signals (generator meta, core asset query strings, inline
variables, comments) with three remote probes (readme.html, the OPML export
and the RSS feed). Every candidate is kept; the ranked list's head is the
best guess.
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from ..config import VERSION_ENDPOINTS
from ..http_client import HttpClient, join_path, query_version
from ..models import CONFIDENCE_RANK, VersionFinding
from ..page import Page
from ..signatures import CORE_ASSET_RE
from . import patterns
from .validator import is_valid_version, normalize_version, specificity

logger = logging.getLogger('wpanalyzer.versioning')


def rank_key(finding: VersionFinding):
    return (finding.tier, -CONFIDENCE_RANK.get(finding.confidence, 0), -specificity(finding.version))


def rank(findings: Iterable[VersionFinding]) -> List[VersionFinding]:
    """Order by tier, then confidence, then specificity; dedupe (version, method)."""
    seen = set()
    unique = []
    for f in findings:
        key = (f.version, f.method)
        if key in seen:
            continue
        seen.add(key)
        unique.append(f)
    return sorted(unique, key=rank_key)


def _finding(method: str, raw: Optional[str], source: Optional[str] = None) -> Optional[VersionFinding]:
    version = normalize_version(raw)
    if not is_valid_version(version):
        return None
    entry = patterns.METHODS[method]
    return VersionFinding(
        version=version,
        method=method,
        confidence=entry['confidence'],
        source=source or entry['source'],
        tier=entry['tier'],
    )


class VersionDetector:
    """Usage:
        async with HttpClient() as http:
            best = await VersionDetector(http).detect_best(url, page)
    """

    def __init__(self, http: HttpClient, *, exhaustive: bool = True):
        self.http = http
        self.exhaustive = exhaustive

    # ---- in-page -------------------------------------------------------

    def from_meta(self, page: Page) -> List[VersionFinding]:
        out = []
        for content in page.meta('generator'):
            m = patterns.META_GENERATOR_RE.search(content)
            if m:
                f = _finding('meta_generator', m.group(1))
                if f:
                    out.append(f)
        return out

    def from_assets(self, page: Page) -> List[VersionFinding]:
        out = []
        for method, assets in (('script_version_param', page.scripts()),
                               ('css_version_param', page.stylesheets())):
            for asset in assets:
                url = asset['url']
                if not CORE_ASSET_RE.search(url):
                    continue
                f = _finding(method, query_version(url), source=url)
                if f:
                    out.append(f)
        return out

    def from_inline(self, page: Page) -> List[VersionFinding]:
        out = []
        for script in page.inline_scripts:
            for rx in patterns.JS_VARIABLE_RES:
                m = rx.search(script)
                if m:
                    f = _finding('javascript_variables', m.group(1))
                    if f:
                        out.append(f)
        for comment in page.comments:
            m = patterns.COMMENT_RE.search(comment)
            if m:
                f = _finding('html_comment', m.group(1))
                if f:
                    out.append(f)
        return out

    def from_page(self, page: Page) -> List[VersionFinding]:
        if page.empty:
            return []
        return self.from_meta(page) + self.from_assets(page) + self.from_inline(page)

    # ---- remote --------------------------------------------------------

    async def _probe_text(self, base_url: str, key: str) -> str:
        probe = await self.http.probe(join_path(base_url, VERSION_ENDPOINTS[key]))
        if not probe.found:
            logger.debug('version probe %s state=%s', key, probe.state)
            return ''
        return probe.text

    async def from_readme(self, base_url: str) -> List[VersionFinding]:
        text = await self._probe_text(base_url, 'readme')
        m = patterns.README_RE.search(text)
        f = _finding('readme_html', m.group(1)) if m else None
        return [f] if f else []

    async def from_opml(self, base_url: str) -> List[VersionFinding]:
        text = await self._probe_text(base_url, 'opml')
        m = patterns.OPML_RE.search(text)
        f = _finding('opml_file', m.group(1)) if m else None
        return [f] if f else []

    async def from_rss(self, base_url: str) -> List[VersionFinding]:
        text = await self._probe_text(base_url, 'rss')
        m = patterns.RSS_RE.search(text)
        f = _finding('rss_feed', m.group(1)) if m else None
        return [f] if f else []

    # ---- public --------------------------------------------------------

    async def detect_candidates(self, base_url: str, page: Page) -> List[VersionFinding]:
        found = self.from_page(page)
        decisive = any(f.tier == 1 and f.confidence == 'high' for f in found)
        if decisive and not self.exhaustive:
            return rank(found)
        remote = await asyncio.gather(
            self.from_readme(base_url),
            self.from_opml(base_url),
            self.from_rss(base_url),
        )
        for chunk in remote:
            found.extend(chunk)
        ranked = rank(found)
        logger.debug('version candidates url=%s count=%d best=%s', base_url, len(ranked),
                     ranked[0].version if ranked else None)
        return ranked

    async def detect_best(self, base_url: str, page: Page) -> Optional[VersionFinding]:
        ranked = await self.detect_candidates(base_url, page)
        return ranked[0] if ranked else None

