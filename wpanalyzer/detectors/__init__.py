"""Detectors that read one fetched page.

- site: is this WordPress at all
- theme: active theme and its style.css header
- plugins: installed plugins, versions and registry data
"""
