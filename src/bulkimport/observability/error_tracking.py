"""Sentry error tracking integration."""

from __future__ import annotations

import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from bulkimport.core.config import AppSettings

_SENTRY_INITIALISED = False


def initialise_sentry(settings: AppSettings) -> bool:
    """Initialise the Sentry SDK once. Returns False when no DSN is configured."""
    global _SENTRY_INITIALISED

    if _SENTRY_INITIALISED:
        return True
    if not settings.sentry.dsn:
        return False

    sentry_sdk.init(
        dsn=settings.sentry.dsn,
        environment=settings.environment,
        traces_sample_rate=settings.sentry.traces_sample_rate,
        integrations=[LoggingIntegration(level=logging.INFO, event_level=None)],
    )
    _SENTRY_INITIALISED = True
    return True


class SentryErrorTracker:
    """Production IErrorTracker forwarding exceptions to Sentry."""

    TAG_KEYS = ("pipeline_class", "bulk_import_id", "importer")

    def track_exception(self, exception: BaseException, extra: dict[str, Any]) -> None:
        with sentry_sdk.new_scope() as scope:
            scope.set_context("bulk_import", extra)
            for key in self.TAG_KEYS:
                if key in extra:
                    scope.set_tag(key, str(extra[key]))
            sentry_sdk.capture_exception(exception)
