"""
Root conftest.py for pytest configuration

Sets the test environment before any application module is imported, then
marks tests by location and optionally validates those markers.
"""
import os

# Settings are read once at import time, so the environment must be in place first
os.environ.update(
    {
        "ENVIRONMENT": "test",
        "DATABASE_URL": "sqlite://",
        "RATE_LIMIT_ENABLED": "false",
        "LOG_FORMAT": "text",
        "LOG_LEVEL": "WARNING",
        "STRIPE_SECRET_KEY": "sk_test_storefront",
        "STRIPE_WEBHOOK_SECRET": "whsec_test_storefront",
        "JWT_SECRET": "test-jwt-secret-with-at-least-32-bytes",
        "SENTRY_DSN": "",
    }
)

from tests.markers import apply_auto_markers, marker_errors, register_markers  # noqa: E402


def pytest_addoption(parser):
    parser.addoption(
        "--validate-markers",
        action="store_true",
        default=False,
        help="Fail the run when a test is missing a type marker or uses an unregistered one",
    )


def pytest_configure(config):
    register_markers(config)


def pytest_collection_modifyitems(config, items):
    """Apply automatic markers based on test location"""
    for item in items:
        apply_auto_markers(item)


def pytest_sessionfinish(session, exitstatus):
    if not session.config.getoption("--validate-markers"):
        return

    errors = marker_errors(getattr(session, "items", []))
    if errors:
        print("\nMarker validation failed:\n  " + "\n  ".join(errors))
        if exitstatus == 0:
            session.exitstatus = 1
