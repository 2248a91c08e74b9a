"""Shared infrastructure used by service modules."""

from pennywise.services.shared.datetime_utils import as_utc, is_past
from pennywise.services.shared.http_client import HTTPClient, HTTPClientError

__all__ = ["HTTPClient", "HTTPClientError", "as_utc", "is_past"]
