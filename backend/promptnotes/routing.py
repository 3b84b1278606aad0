"""
Path normalization for deployments that mount the app under a prefix.

Serverless hosts deliver paths such as ``/.netlify/functions/notes/abc`` or
``/api/notes/abc``; the route table only knows ``/notes/abc``.
"""

from __future__ import annotations

from typing import Iterable

from werkzeug.routing import BaseConverter


def normalize_path(path: str, prefixes: Iterable[str]) -> str:
    """
    Strip the first matching deployment prefix and tidy slashes.

    >>> normalize_path("/.netlify/functions/notes/abc/", ["/.netlify/functions"])
    '/notes/abc'
    """
    path = path or "/"
    for prefix in prefixes:
        prefix = "/" + prefix.strip("/")
        if path == prefix or path.startswith(prefix + "/"):
            path = path[len(prefix):]
            break

    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


class FunctionPathMiddleware:
    """WSGI middleware that rewrites PATH_INFO with ``normalize_path``."""

    def __init__(self, wsgi_app, prefixes: Iterable[str]):
        self.wsgi_app = wsgi_app
        self.prefixes = [p for p in prefixes if p and p.strip("/")]

    def __call__(self, environ, start_response):
        environ["PATH_INFO"] = normalize_path(environ.get("PATH_INFO", "/"), self.prefixes)
        return self.wsgi_app(environ, start_response)


class RecordIdConverter(BaseConverter):
    """``<id:...>`` URL segments: letters, digits, ``_`` and ``-`` only."""

    regex = r"[A-Za-z0-9_-]+"
