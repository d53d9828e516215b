from wpanalyzer.detectors import site
from wpanalyzer.page import Page


def test_generator_only_is_positive_high():
    page = Page('https://example.com/', '<html><head><meta name="generator" content="WordPress 6.4"></head><body></body></html>')
    verdict = site.detect(page)
    assert verdict.is_positive
    assert verdict.confidence == 'high'
    assert [e.type for e in verdict.evidence] == ['meta_generator']
    assert verdict.score == 30


def test_plain_page_is_negative(plain_html):
    verdict = site.detect(Page('https://example.com/', plain_html))
    assert not verdict.is_positive
    assert verdict.score == 0
    assert site.summarize(verdict) == 'No WordPress markers found'


def test_empty_page_is_negative():
    assert not site.detect(Page('https://example.com/', '')).is_positive


def test_full_wordpress_page(wp_html):
    verdict = site.detect(Page('https://example.com/', wp_html))
    types = {e.type for e in verdict.evidence}
    assert {'meta_generator', 'path_indicator', 'css_class', 'script_tags', 'css_files', 'rest_api'} <= types
    assert verdict.confidence == 'high'
    # meta 30 + path 5 + class 5 + scripts 20 + css 15 + rest 15
    assert verdict.score == 90
    rest = next(e for e in verdict.evidence if e.type == 'rest_api')
    assert rest.value == 'https://example.com/wp-json/'


def test_admin_bar_and_body_class():
    html = '<html><body class="logged-in wp-custom-logo"><div id="wpadminbar"></div></body></html>'
    verdict = site.detect(Page('https://example.com/', html))
    types = [e.type for e in verdict.evidence]
    assert 'admin_bar' in types
    assert 'css_class' in types
    assert verdict.confidence == 'high'


def test_path_indicator_only_is_medium():
    html = '<html><body><img src="/wp-content/uploads/a.png"></body></html>'
    verdict = site.detect(Page('https://example.com/', html))
    assert verdict.is_positive
    assert verdict.confidence == 'medium'
    assert verdict.score == 5
