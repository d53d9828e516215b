"""Fingerprint tables for WordPress core, themes and plugins.

Each table maps a compiled pattern or selector to a canonical plugin slug
(the wordpress.org directory name). Display names live in
``DISPLAY_NAMES`` so every extractor reports the same label for a slug.
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

# ---------------------------------------------------------------------------
# WordPress core
# ---------------------------------------------------------------------------

WP_PATHS: List[str] = ['/wp-content/', '/wp-includes/', '/wp-admin/', 'wp-json']
WP_CLASSES: List[str] = ['wp-', 'wordpress', 'wpadminbar']

GENERATOR_WP_RE = re.compile(r'wordpress', re.I)
CORE_ASSET_RE = re.compile(r'/(?:wp-includes|wp-admin)/', re.I)
WP_ASSET_RE = re.compile(r'/(?:wp-includes|wp-content)/', re.I)
REST_API_RE = re.compile(r'wp-json|rest_route', re.I)
REST_LINK_REL = 'https://api.w.org/'

# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------

DISPLAY_NAMES: Dict[str, str] = {
    'wp-rocket': 'WP Rocket',
    'wordpress-seo': 'Yoast SEO',
    'elementor': 'Elementor',
    'elementor-pro': 'Elementor Pro',
    'contact-form-7': 'Contact Form 7',
    'woocommerce': 'WooCommerce',
    'jetpack': 'Jetpack',
    'wpforms-lite': 'WPForms',
    'akismet': 'Akismet',
    'wordfence': 'Wordfence Security',
    'seo-by-rank-math': 'Rank Math SEO',
    'gravityforms': 'Gravity Forms',
    'ninja-forms': 'Ninja Forms',
    'advanced-custom-fields': 'Advanced Custom Fields',
    'js_composer': 'WPBakery Page Builder',
    'revslider': 'Slider Revolution',
    'layerslider': 'LayerSlider',
    'mailchimp-for-wp': 'Mailchimp for WordPress',
    'constant-contact-forms': 'Constant Contact Forms',
    'wp-super-cache': 'WP Super Cache',
    'w3-total-cache': 'W3 Total Cache',
    'litespeed-cache': 'LiteSpeed Cache',
    'autoptimize': 'Autoptimize',
    'wp-optimize': 'WP-Optimize',
    'wp-smushit': 'Smush',
    'wp-fastest-cache': 'WP Fastest Cache',
    'all-in-one-seo-pack': 'All in One SEO',
    'updraftplus': 'UpdraftPlus',
    'better-wp-security': 'Solid Security',
    'sucuri-scanner': 'Sucuri Security',
    'duplicator': 'Duplicator',
    'sitepress-multilingual-cms': 'WPML',
    'polylang': 'Polylang',
}

# Directory names that show up under /wp-content/plugins/ but are not plugin slugs.
SLUG_ALIASES: Dict[str, str] = {
    'yoast': 'wordpress-seo',
    'wp-seo': 'wordpress-seo',
    'wordpress-seo-premium': 'wordpress-seo',
    'rank-math': 'seo-by-rank-math',
    'wpforms': 'wpforms-lite',
    'gravity-forms': 'gravityforms',
    'revolution-slider': 'revslider',
    'smush': 'wp-smushit',
}

IGNORED_SLUGS = frozenset({
    'plugins', 'plugin', 'index.php', 'assets', 'js', 'css', 'images', 'img',
    'wp-content', 'wp-includes', 'wp-admin', 'themes', 'uploads', 'cache',
    'languages', 'mu-plugins', 'undefined', 'null', 'wordpress',
})

SLUG_RE = re.compile(r'^[a-z0-9][a-z0-9._-]{1,80}$')

PLUGIN_PATH_RE = re.compile(r'/wp-content/plugins/([^/\s"\'?#]+)/', re.I)
PLUGIN_PATH_VER_RE = re.compile(
    r'/wp-content/plugins/([^/\s"\'?#]+)/[^"\'\s>]*?\?(?:[^"\'\s>]*&(?:amp;)?)?ver(?:sion)?=([0-9][0-9A-Za-z.\-]*)',
    re.I,
)

# Loose content matches; weakest signal, never trusted on its own.
PLUGIN_INDICATORS: List[Tuple[str, re.Pattern]] = [
    ('wp-rocket', re.compile(r'wp-rocket', re.I)),
    ('wordpress-seo', re.compile(r'yoast', re.I)),
    ('elementor', re.compile(r'elementor', re.I)),
    ('contact-form-7', re.compile(r'contact-form-7', re.I)),
    ('woocommerce', re.compile(r'woocommerce', re.I)),
    ('jetpack', re.compile(r'jetpack', re.I)),
    ('wpforms-lite', re.compile(r'wpforms', re.I)),
    ('akismet', re.compile(r'akismet', re.I)),
    ('wordfence', re.compile(r'wordfence', re.I)),
    ('seo-by-rank-math', re.compile(r'rank-math', re.I)),
    ('gravityforms', re.compile(r'gravity.*forms', re.I)),
    ('ninja-forms', re.compile(r'ninja.*forms', re.I)),
    ('advanced-custom-fields', re.compile(r'advanced.*custom.*fields', re.I)),
    ('js_composer', re.compile(r'wp.*bakery|visual.*composer', re.I)),
    ('revslider', re.compile(r'slider.*revolution', re.I)),
    ('layerslider', re.compile(r'layer.*slider', re.I)),
    ('mailchimp-for-wp', re.compile(r'mailchimp', re.I)),
    ('constant-contact-forms', re.compile(r'constant.*contact', re.I)),
    ('wp-super-cache', re.compile(r'wp.*super.*cache', re.I)),
    ('w3-total-cache', re.compile(r'w3.*total.*cache', re.I)),
    ('litespeed-cache', re.compile(r'litespeed', re.I)),
    ('autoptimize', re.compile(r'autoptimize', re.I)),
    ('wp-optimize', re.compile(r'wp-optimize', re.I)),
    ('wp-smushit', re.compile(r'smush', re.I)),
    ('wp-fastest-cache', re.compile(r'wp.*fastest.*cache', re.I)),
]

PLUGIN_SELECTORS: List[Tuple[str, str]] = [
    ('[class*="elementor"]', 'elementor'),
    ('[class*="woocommerce"]', 'woocommerce'),
    ('[class*="yoast"]', 'wordpress-seo'),
    ('[id*="jetpack"]', 'jetpack'),
    ('.wpcf7', 'contact-form-7'),
    ('.wpforms-form', 'wpforms-lite'),
    ('.gform_wrapper', 'gravityforms'),
    ('.nf-form-wrap', 'ninja-forms'),
    ('.acf-field', 'advanced-custom-fields'),
    ('.vc_row', 'js_composer'),
    ('.wpb_row', 'js_composer'),
    ('#rev_slider', 'revslider'),
    ('.ls-container', 'layerslider'),
    ('.rank-math-breadcrumb', 'seo-by-rank-math'),
    ('.wp-rocket-vimeo-lazyload', 'wp-rocket'),
]

REST_NAMESPACES: List[Tuple[str, str]] = [
    ('/wp-json/yoast/v1/', 'wordpress-seo'),
    ('/wp-json/wc/v3/', 'woocommerce'),
    ('/wp-json/elementor/v1/', 'elementor'),
    ('/wp-json/contact-form-7/v1/', 'contact-form-7'),
    ('/wp-json/wpforms/v1/', 'wpforms-lite'),
    ('/wp-json/gf/v2/', 'gravityforms'),
    ('/wp-json/jetpack/v4/', 'jetpack'),
    ('/wp-json/rankmath/v1/', 'seo-by-rank-math'),
]

JS_GLOBALS: List[Tuple[str, str]] = [
    ('woocommerce_params', 'woocommerce'),
    ('wc_add_to_cart_params', 'woocommerce'),
    ('elementorFrontendConfig', 'elementor'),
    ('yoast_seo', 'wordpress-seo'),
    ('wpcf7', 'contact-form-7'),
    ('wpforms_settings', 'wpforms-lite'),
    ('wpforms', 'wpforms-lite'),
    ('gform', 'gravityforms'),
    ('jetpackL10n', 'jetpack'),
    ('rankMathSettings', 'seo-by-rank-math'),
    ('wpRocketData', 'wp-rocket'),
    ('wordfenceVars', 'wordfence'),
]


def js_global_pattern(name: str) -> re.Pattern:
    """Declarations of a global: ``window.X =``, ``var/let/const X =``, ``"X":`` or ``X = {``."""
    n = re.escape(name)
    return re.compile(
        rf'(?:window\.{n}\s*=|\b(?:var|let|const)\s+{n}\s*=|["\']{n}["\']\s*:|(?<![\w.]){n}\s*=\s*\{{)'
    )


JS_GLOBAL_PATTERNS: List[Tuple[str, str, re.Pattern]] = [
    (name, slug, js_global_pattern(name)) for name, slug in JS_GLOBALS
]

# (meta name or property, content pattern, slug)
META_SIGNATURES: List[Tuple[str, re.Pattern, str]] = [
    ('generator', re.compile(r'elementor\s*([0-9][0-9.]*)?', re.I), 'elementor'),
    ('generator', re.compile(r'yoast(?:\s+seo)?\s*v?([0-9][0-9.]*)?', re.I), 'wordpress-seo'),
    ('generator', re.compile(r'rank\s*math\s*v?([0-9][0-9.]*)?', re.I), 'seo-by-rank-math'),
    ('generator', re.compile(r'woocommerce\s*([0-9][0-9.]*)?', re.I), 'woocommerce'),
    ('generator', re.compile(r'wpml\s*ver:?\s*([0-9][0-9.]*)?', re.I), 'sitepress-multilingual-cms'),
    ('article:publisher', re.compile(r'yoast', re.I), 'wordpress-seo'),
]

# Comments some plugins leave in the markup.
COMMENT_SIGNATURES: List[Tuple[str, re.Pattern]] = [
    ('wordpress-seo', re.compile(r'This site is optimized with the Yoast SEO(?: Premium)? plugin v?([0-9][0-9.]*)', re.I)),
    ('seo-by-rank-math', re.compile(r'Search Engine Optimization by Rank Math(?: PRO)?\s*-?\s*(?:https?://\S+)?', re.I)),
    ('all-in-one-seo-pack', re.compile(r'All in One SEO(?: Pro)?\s*v?([0-9][0-9.]*)?', re.I)),
    ('w3-total-cache', re.compile(r'Performance optimized by W3 Total Cache', re.I)),
    ('wp-super-cache', re.compile(r'Dynamic page generated in|Cached page generated by WP-Super-Cache', re.I)),
    ('wp-fastest-cache', re.compile(r'WP Fastest Cache file was created', re.I)),
    ('litespeed-cache', re.compile(r'Page (?:optimized|cached) by LiteSpeed Cache', re.I)),
    ('autoptimize', re.compile(r'Autoptimize', re.I)),
    ('wp-rocket', re.compile(r'This website is like a Rocket', re.I)),
    ('jetpack', re.compile(r'Jetpack Open Graph Tags', re.I)),
    ('mailchimp-for-wp', re.compile(r'Mailchimp for WordPress v?([0-9][0-9.]*)', re.I)),
]
COMMENT_PATH_RE = re.compile(r'/wp-content/plugins/([^/\s]+)')
COMMENT_GENERIC_RE = re.compile(r'(?:Plugin|Generated by):?\s+([A-Za-z][\w .-]{2,40}?)(?:\s+v?[0-9][0-9.]*)?\s*(?:-->|$)', re.I)

README_STABLE_TAG_RE = re.compile(r'^\s*Stable tag:\s*([0-9][0-9A-Za-z.\-]*)', re.I | re.M)

# Functional groups for gap and overlap analysis.
PLUGIN_GROUPS: Dict[str, List[str]] = {
    'seo': ['wordpress-seo', 'seo-by-rank-math', 'all-in-one-seo-pack'],
    'caching': ['wp-rocket', 'w3-total-cache', 'wp-super-cache', 'litespeed-cache', 'wp-fastest-cache'],
    'security': ['wordfence', 'better-wp-security', 'sucuri-scanner'],
    'forms': ['contact-form-7', 'wpforms-lite', 'gravityforms', 'ninja-forms'],
    'backup': ['updraftplus', 'duplicator', 'jetpack'],
    'page_builder': ['elementor', 'elementor-pro', 'js_composer'],
    'slider': ['revslider', 'layerslider'],
    'optimization': ['autoptimize', 'wp-optimize', 'wp-smushit'],
}


def display_name(slug: str) -> str:
    if slug in DISPLAY_NAMES:
        return DISPLAY_NAMES[slug]
    return ' '.join(part.capitalize() for part in re.split(r'[-_]+', slug) if part)


def canonical_slug(raw: str | None) -> str | None:
    """Lowercase, alias-resolve and validate a plugin directory name."""
    if not raw:
        return None
    slug = raw.strip().strip('/').lower()
    slug = SLUG_ALIASES.get(slug, slug)
    if slug in IGNORED_SLUGS or not SLUG_RE.match(slug):
        return None
    if slug.endswith(('.php', '.js', '.css')):
        return None
    return slug


def slug_for_name(name: str) -> str | None:
    """Map a free-text plugin name (``Generated by X``) to a known slug."""
    wanted = re.sub(r'[^a-z0-9]+', '', name.lower())
    if not wanted:
        return None
    for slug, label in DISPLAY_NAMES.items():
        if re.sub(r'[^a-z0-9]+', '', label.lower()) == wanted:
            return slug
    return canonical_slug(re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-'))
