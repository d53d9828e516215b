"""Active theme detection.

Four methods are tried in order and the first one that yields a slug wins;
the finding is then enriched, never re-detected, from the theme's
``style.css`` header block.
"""

import asyncio
import logging
import re
from typing import Callable, Dict, List, Optional

from ..http_client import HttpClient, join_path, query_version, site_root
from ..models import ThemeFinding
from ..page import Page
from ..versioning.validator import is_valid_version, normalize_version

logger = logging.getLogger('wpanalyzer.detectors.theme')

THEME_PATH_RE = re.compile(r'/wp-content/themes/([^/\s"\'?#]+)/', re.I)
TEMPLATE_HINT_RE = re.compile(r'([\w-]+)[-_]theme', re.I)
TEMPLATE_SELECTOR = '[class*="template-"], [id*="template-"], [class*="page-template"], [data-template]'
HEADER_BLOCK_RE = re.compile(r'/\*(.*?)\*/', re.S)
HEADER_LINE_RE = re.compile(r'^[\s*]*([A-Za-z][A-Za-z ]{1,30}?)\s*:\s*(.+?)\s*$')

# style.css header key -> ThemeFinding attribute; others land in ``header``.
HEADER_FIELDS = {
    'theme name': 'display_name',
    'theme uri': 'uri',
    'author': 'author',
    'author uri': 'author_uri',
    'description': 'description',
    'version': 'version',
}
EXTRA_HEADER_KEYS = {
    'text domain': 'text_domain',
    'domain path': 'domain_path',
    'requires at least': 'requires_at_least',
    'tested up to': 'tested_up_to',
    'requires php': 'requires_php',
    'license': 'license',
    'license uri': 'license_uri',
    'template': 'parent_theme',
}

_IGNORED_BODY_SLUGS = {'default', 'mode', 'light', 'dark', 'color'}


def parse_theme_header(css: str) -> Dict[str, object]:
    """Key/value pairs from the first comment block of a theme stylesheet.

    ``Tags`` is split on commas into a list; keys are lowercased.
    """
    m = HEADER_BLOCK_RE.search(css or '')
    if not m:
        return {}
    out: Dict[str, object] = {}
    for line in m.group(1).splitlines():
        lm = HEADER_LINE_RE.match(line)
        if not lm:
            continue
        key = lm.group(1).strip().lower()
        value = lm.group(2).strip()
        if key in out or not value:
            continue
        if key == 'tags':
            out[key] = [t.strip() for t in value.split(',') if t.strip()]
        else:
            out[key] = value
    return out


def _theme_from_url(url: str) -> Optional[str]:
    m = THEME_PATH_RE.search(url or '')
    return m.group(1).lower() if m else None


def _version_from_url(url: str) -> Optional[str]:
    v = normalize_version(query_version(url))
    return v if is_valid_version(v) else None


def _finding(slug: str, method: str, stylesheet: Optional[str] = None) -> ThemeFinding:
    return ThemeFinding(
        slug=slug,
        method=method,
        path=f'/wp-content/themes/{slug}/',
        stylesheet=stylesheet,
        version=_version_from_url(stylesheet) if stylesheet else None,
    )


def from_stylesheet(page: Page) -> Optional[ThemeFinding]:
    for sheet in page.stylesheets():
        slug = _theme_from_url(sheet['url'])
        if slug:
            return _finding(slug, 'stylesheet_link', sheet['url'])
    return None


def from_body_class(page: Page) -> Optional[ThemeFinding]:
    classes = [c.lower() for c in page.body_classes]
    for cls in classes:
        if cls.startswith('wp-theme-') and len(cls) > len('wp-theme-'):
            return _finding(cls[len('wp-theme-'):], 'body_class')
    for cls in classes:
        if cls.startswith('theme-'):
            slug = cls[len('theme-'):]
        elif cls.endswith('-theme') and not cls.startswith(('wp-', 'child-')):
            slug = cls[:-len('-theme')]
        else:
            continue
        if slug and slug not in _IGNORED_BODY_SLUGS:
            return _finding(slug, 'body_class')
    return None


def from_asset_path(page: Page) -> Optional[ThemeFinding]:
    for asset in page.scripts() + page.links():
        slug = _theme_from_url(asset['url'])
        if slug:
            return _finding(slug, 'asset_path')
    return None


def from_template_hint(page: Page) -> Optional[ThemeFinding]:
    for el in page.select(TEMPLATE_SELECTOR):
        parts = list(el.get('class') or [])
        parts.append(el.get('id') or '')
        parts.append(el.get('data-template') or '')
        for token in parts:
            m = TEMPLATE_HINT_RE.search(token)
            if m and m.group(1).lower() not in ('page', 'template', 'wp', 'child'):
                return _finding(m.group(1).lower(), 'path_detection')
    return None


METHODS: List[Callable[[Page], Optional[ThemeFinding]]] = [
    from_stylesheet,
    from_body_class,
    from_asset_path,
    from_template_hint,
]


class ThemeDetector:
    def __init__(self, http: HttpClient):
        self.http = http

    async def detect(self, base_url: str, page: Page) -> Optional[ThemeFinding]:
        if page.empty:
            return None
        finding = None
        for method in METHODS:
            finding = method(page)
            if finding:
                break
        if finding is None:
            return None
        await self.enrich(base_url, finding)
        return finding

    async def detect_all(self, base_url: str, page: Page) -> List[ThemeFinding]:
        """Run every method independently; useful to see why a theme was picked."""
        found = [f for f in (m(page) for m in METHODS) if f]
        await asyncio.gather(*(self.enrich(base_url, f) for f in found))
        return found

    async def enrich(self, base_url: str, finding: ThemeFinding) -> ThemeFinding:
        url = join_path(site_root(base_url), f'{finding.path}style.css')
        probe = await self.http.probe(url)
        if not probe.found:
            logger.debug('theme stylesheet unavailable slug=%s state=%s', finding.slug, probe.state)
            return finding
        header = parse_theme_header(probe.text)
        if not header:
            return finding
        for key, attr in HEADER_FIELDS.items():
            value = header.get(key)
            if value:
                setattr(finding, attr, value)
        finding.tags = list(header.get('tags') or [])
        for key, name in EXTRA_HEADER_KEYS.items():
            if header.get(key):
                finding.header[name] = header[key]
        return finding
