import sys
import pathlib

import httpx
import pytest

# Ensure project root is on sys.path so 'import wpanalyzer' works when pytest runs from
# different working directories or when running individual tests.
_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from wpanalyzer import create_app
from wpanalyzer.config import Settings
from wpanalyzer.logging_utils import reset_suppressed_state


WP_HTML = """<!DOCTYPE html>
<html lang="en-US">
<head>
<meta name="generator" content="WordPress 6.4.2" />
<link rel="https://api.w.org/" href="https://example.com/wp-json/" />
<link rel="stylesheet" id="twentytwentyfour-css" href="https://example.com/wp-content/themes/twentytwentyfour/style.css?ver=1.0" media="all" />
<link rel="stylesheet" id="cf7-css" href="https://example.com/wp-content/plugins/contact-form-7/includes/css/styles.css?ver=5.8.4" media="all" />
<script src="https://example.com/wp-includes/js/jquery/jquery.min.js?ver=3.7.1"></script>
<script src="https://example.com/wp-content/plugins/contact-form-7/includes/js/index.js?ver=5.8.4" defer></script>
</head>
<body class="home blog wp-embed-responsive">
<!-- This site is optimized with the Yoast SEO plugin v21.7 - https://yoast.com/wordpress/plugins/seo/ -->
<div class="wpcf7"><form></form></div>
</body>
</html>
"""

PLAIN_HTML = """<!DOCTYPE html>
<html><head><title>Plain</title><link rel="stylesheet" href="/static/site.css"></head>
<body class="landing"><p>Hello</p></body></html>
"""


class FakeSite:
    """Routes ``httpx`` requests to canned responses keyed by path (or full URL).

    Unknown paths answer 404. Every request is recorded in ``calls``.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = str(request.url.copy_with(query=None))
        entry = self.routes.get(key)
        if entry is None:
            entry = self.routes.get(request.url.path)
        if entry is None:
            return httpx.Response(404, text='not found')
        if callable(entry):
            return entry(request)
        if isinstance(entry, tuple):
            status, body = entry[0], entry[1]
            headers = entry[2] if len(entry) > 2 else {}
            return httpx.Response(status, text=body, headers=headers)
        return httpx.Response(200, text=entry)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def paths(self):
        return [r.url.path for r in self.calls]


@pytest.fixture
def fake_site():
    return FakeSite


@pytest.fixture
def settings():
    return Settings(registry_delay=0, batch_delay=0, pagespeed_backoff=0)


@pytest.fixture(autouse=True)
def _reset_log_throttle():
    reset_suppressed_state()
    yield
    reset_suppressed_state()


@pytest.fixture
def client():
    app = create_app()
    app.testing = True
    return app.test_client()


@pytest.fixture
def wp_html():
    return WP_HTML


@pytest.fixture
def plain_html():
    return PLAIN_HTML
