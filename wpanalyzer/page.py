"""Parsed page snapshot shared read-only by all detectors."""

from __future__ import annotations

import re
from functools import cached_property
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Comment

from .http_client import resolve


class Page:
    """Raw markup plus a BeautifulSoup tree of one fetched document.

    Detectors only read from it; nothing mutates the tree after parsing.
    """

    def __init__(self, url: str, html: str, headers: Optional[Dict[str, str]] = None):
        self.url = url
        self.html = html or ''
        self.headers = headers or {}
        self.soup = BeautifulSoup(self.html, 'html.parser')

    @property
    def empty(self) -> bool:
        return not self.html.strip()

    @cached_property
    def lower(self) -> str:
        return self.html.lower()

    def select(self, css: str) -> list:
        return self.soup.select(css)

    def exists(self, css: str) -> bool:
        return self.soup.select_one(css) is not None

    def attr(self, css: str, name: str) -> List[str]:
        """Values of attribute ``name`` on every element matching ``css``."""
        out = []
        for el in self.soup.select(css):
            value = el.get(name)
            if isinstance(value, list):
                value = ' '.join(value)
            if value:
                out.append(value)
        return out

    @cached_property
    def markup_without_assets(self) -> str:
        """Raw markup with plugin ``script[src]`` / ``link[href]`` references blanked out."""
        text = self.html
        for raw in self.attr('script[src]', 'src') + self.attr('link[href]', 'href'):
            if '/wp-content/plugins/' not in raw:
                continue
            text = text.replace(raw, '').replace(raw.replace('&', '&amp;'), '')
        return text

    def meta(self, name: str) -> List[str]:
        """Contents of ``<meta name=...>`` / ``<meta property=...>`` tags, case-insensitive."""
        wanted = name.lower()
        out = []
        for el in self.soup.find_all('meta'):
            key = (el.get('name') or el.get('property') or '').lower()
            if key == wanted and el.get('content'):
                out.append(el['content'])
        return out

    @cached_property
    def body_classes(self) -> List[str]:
        body = self.soup.body
        if body is None:
            return []
        classes = body.get('class') or []
        return [c for c in classes if c]

    @cached_property
    def comments(self) -> List[str]:
        return [str(c) for c in self.soup.find_all(string=lambda s: isinstance(s, Comment))]

    @cached_property
    def inline_scripts(self) -> List[str]:
        return [s.get_text() for s in self.soup.find_all('script') if not s.get('src')]

    @cached_property
    def all_classes(self) -> str:
        """Every class token on the page joined into one lowercase string."""
        tokens = []
        for el in self.soup.find_all(class_=True):
            tokens.extend(el.get('class') or [])
        return ' '.join(tokens).lower()

    def scripts(self) -> List[dict]:
        return [self._asset(el, 'src') for el in self.soup.find_all('script', src=True)]

    def stylesheets(self) -> List[dict]:
        out = []
        for el in self.soup.find_all('link', href=True):
            rel = [r.lower() for r in (el.get('rel') or [])]
            if 'stylesheet' in rel:
                out.append(self._asset(el, 'href'))
        return out

    def links(self) -> List[dict]:
        return [self._asset(el, 'href') for el in self.soup.find_all('link', href=True)]

    def _asset(self, el, attr: str) -> dict:
        raw = el.get(attr) or ''
        return {
            'raw': raw,
            'url': resolve(self.url, raw) if raw else '',
            'media': (el.get('media') or '').strip().lower() or None,
            'async': el.has_attr('async'),
            'defer': el.has_attr('defer'),
            'id': el.get('id'),
        }

    def search(self, pattern: re.Pattern) -> Optional[re.Match]:
        return pattern.search(self.html)
