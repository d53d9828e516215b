"""WordPress core version detection patterns.

Each method has a priority tier (1 is most trusted) and a fixed confidence.
Detection order and ranking follow the tier:

1. meta generator tag
2. /readme.html
3. ``?ver=`` on core scripts, then core stylesheets
4. OPML export and RSS feed generator strings
5. inline JavaScript variables and HTML comments
"""

import re
from typing import Dict, List, TypedDict


class VersionMethod(TypedDict):
    tier: int
    confidence: str
    source: str


METHODS: Dict[str, VersionMethod] = {
    'meta_generator': {'tier': 1, 'confidence': 'high', 'source': 'meta[name=generator]'},
    'readme_html': {'tier': 2, 'confidence': 'high', 'source': '/readme.html'},
    'script_version_param': {'tier': 3, 'confidence': 'medium', 'source': 'script[src*=wp-includes]'},
    'css_version_param': {'tier': 3, 'confidence': 'medium', 'source': 'link[href*=wp-includes]'},
    'opml_file': {'tier': 4, 'confidence': 'medium', 'source': '/wp-links-opml.php'},
    'rss_feed': {'tier': 4, 'confidence': 'medium', 'source': '/feed/'},
    'javascript_variables': {'tier': 5, 'confidence': 'medium', 'source': 'inline script'},
    'html_comment': {'tier': 5, 'confidence': 'low', 'source': 'html comment'},
}

META_GENERATOR_RE = re.compile(r'wordpress\s+(\d+\.[\d.]+)', re.I)
README_RE = re.compile(r'version\s+(\d+\.[\d.]+)', re.I)
OPML_RE = re.compile(r'generator="wordpress/(\d+\.[\d.]+)"', re.I)
RSS_RE = re.compile(r'wordpress\.org/\?v=(\d+\.[\d.]+)', re.I)
COMMENT_RE = re.compile(r'wordpress\s+(\d+\.[\d.]+)', re.I)

JS_VARIABLE_RES: List[re.Pattern] = [
    re.compile(r'\bwp_version\s*[=:]\s*["\'](\d+\.[\d.]+)["\']', re.I),
    re.compile(r'["\']wp_version["\']\s*:\s*["\'](\d+\.[\d.]+)["\']', re.I),
    re.compile(r'\bwpVersion\s*[=:]\s*["\'](\d+\.[\d.]+)["\']'),
]
