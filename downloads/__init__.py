"""
Workflow downloads

Gates purchased workflow files behind download tokens or bearer credentials.
The HTTP router lives in ``downloads.api``.
"""

from .access import PRODUCT_ID_PATTERN, DownloadGate

__all__ = ["DownloadGate", "PRODUCT_ID_PATTERN"]
