from logging import ERROR as LOG_ERROR

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from core.config import settings

# Only initialize Sentry if DSN is provided and not in test environment
if settings.sentry_dsn and not settings.is_test:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(level=None, event_level=LOG_ERROR),
        ],
        traces_sample_rate=settings.sentry_trace_rate,
        environment=settings.environment,
        release=settings.app_version,
        send_default_pii=False,
    )
