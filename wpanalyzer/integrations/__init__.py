"""Clients for third-party services (wordpress.org plugin directory, PageSpeed Insights)."""
