import asyncio

from wpanalyzer.detectors import theme
from wpanalyzer.detectors.theme import ThemeDetector, parse_theme_header
from wpanalyzer.http_client import HttpClient
from wpanalyzer.page import Page

STYLE_CSS = """/*
Theme Name: Twenty Twenty-Four
Theme URI: https://wordpress.org/themes/twentytwentyfour/
Author: the WordPress team
Author URI: https://wordpress.org
Description: Twenty Twenty-Four is designed to be flexible.
Requires at least: 6.4
Tested up to: 6.5
Requires PHP: 7.0
Version: 1.1
License: GNU General Public License v2 or later
Text Domain: twentytwentyfour
Tags: one-column, custom-colors, full-site-editing
*/
body { margin: 0; }
"""


def _detect(site, settings, page):
    async def go():
        async with HttpClient(settings, transport=site.transport()) as http:
            return await ThemeDetector(http).detect('https://example.com/blog/', page)
    return asyncio.run(go())


def test_parse_theme_header():
    header = parse_theme_header(STYLE_CSS)
    assert header['theme name'] == 'Twenty Twenty-Four'
    assert header['version'] == '1.1'
    assert header['tags'] == ['one-column', 'custom-colors', 'full-site-editing']
    assert header['requires at least'] == '6.4'
    assert parse_theme_header('body {}') == {}


def test_stylesheet_link_wins_and_is_enriched(fake_site, settings, wp_html):
    site = fake_site({'/wp-content/themes/twentytwentyfour/style.css': STYLE_CSS})
    found = _detect(site, settings, Page('https://example.com/blog/', wp_html))
    assert found.slug == 'twentytwentyfour'
    assert found.method == 'stylesheet_link'
    assert found.display_name == 'Twenty Twenty-Four'
    # header version overrides the ?ver query value
    assert found.version == '1.1'
    assert found.author == 'the WordPress team'
    assert found.header['requires_at_least'] == '6.4'
    assert found.header['text_domain'] == 'twentytwentyfour'
    assert 'full-site-editing' in found.tags
    # style.css is fetched from the site root, not the page path
    assert '/wp-content/themes/twentytwentyfour/style.css' in site.paths()


def test_missing_style_keeps_query_version(fake_site, settings, wp_html):
    found = _detect(fake_site(), settings, Page('https://example.com/', wp_html))
    assert found.slug == 'twentytwentyfour'
    assert found.version == '1.0'
    assert found.display_name is None


def test_body_class_fallback():
    page = Page('https://example.com/', '<html><body class="home wp-theme-astra"></body></html>')
    found = theme.from_body_class(page)
    assert found.slug == 'astra'
    assert found.method == 'body_class'
    page = Page('https://example.com/', '<html><body class="theme-dark theme-generatepress"></body></html>')
    assert theme.from_body_class(page).slug == 'generatepress'


def test_asset_path_and_template_hint():
    page = Page('https://example.com/', '<script src="/wp-content/themes/divi/js/custom.js"></script>')
    assert theme.from_stylesheet(page) is None
    assert theme.from_asset_path(page).slug == 'divi'
    page = Page('https://example.com/', '<div class="page-template oceanwp-theme"></div>')
    found = theme.from_template_hint(page)
    assert found.slug == 'oceanwp'
    assert found.method == 'path_detection'


def test_no_theme(fake_site, settings, plain_html):
    assert _detect(fake_site(), settings, Page('https://example.com/', plain_html)) is None


def test_detect_all_reports_every_method_enriched(fake_site, settings):
    html = (
        '<html><head>'
        '<link rel="stylesheet" href="/wp-content/themes/twentytwentyfour/style.css?ver=1.0">'
        '<script src="/wp-content/themes/divi/js/custom.js"></script>'
        '</head><body class="wp-theme-astra"></body></html>'
    )
    site = fake_site({
        '/wp-content/themes/twentytwentyfour/style.css': STYLE_CSS,
        '/wp-content/themes/astra/style.css': '/*\nTheme Name: Astra\nVersion: 4.6.1\n*/',
        '/wp-content/themes/divi/style.css': '/*\nTheme Name: Divi\nVersion: 4.24.0\n*/',
    })

    async def go():
        async with HttpClient(settings, transport=site.transport()) as http:
            return await ThemeDetector(http).detect_all('https://example.com/', Page('https://example.com/', html))

    found = asyncio.run(go())
    assert [(f.slug, f.method) for f in found] == [
        ('twentytwentyfour', 'stylesheet_link'), ('astra', 'body_class'), ('divi', 'asset_path')]
    assert [f.display_name for f in found] == ['Twenty Twenty-Four', 'Astra', 'Divi']
    assert [f.version for f in found] == ['1.1', '4.6.1', '4.24.0']
