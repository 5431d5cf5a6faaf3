"""
Download access control

Decides whether a caller may download a purchased workflow file. Access is
denied unless a credential proves the purchase: a download token bound to the
user and product, or a bearer-authenticated user who bought the product.
"""

import re
from pathlib import Path
from typing import Optional, Union

from core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from core.logging import get_logger
from core.metrics import metrics
from storefront.checkout import GUEST_USER_ID
from storefront.stores import PurchaseStore, TokenStore

logger = get_logger(__name__, domain="downloads")

# Product ids become file names, so path separators and dots are rejected
PRODUCT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

DOWNLOAD_FILENAME_TEMPLATE = "workflow-{product_id}.json"


class DownloadGate:
    """Access decision and file lookup for workflow downloads"""

    def __init__(
        self,
        purchase_store: PurchaseStore,
        token_store: TokenStore,
        downloads_dir: Union[str, Path],
    ):
        self.purchase_store = purchase_store
        self.token_store = token_store
        self.downloads_dir = Path(downloads_dir)

    @staticmethod
    def validate_product_id(product_id: str) -> str:
        if not product_id or not PRODUCT_ID_PATTERN.fullmatch(product_id):
            raise ValidationError("Invalid product id", field="productId")
        return product_id

    def has_access(
        self,
        product_id: str,
        user_id: Optional[str] = None,
        token: Optional[str] = None,
        bearer_user_id: Optional[str] = None,
    ) -> bool:
        if bearer_user_id:
            if bearer_user_id == GUEST_USER_ID:
                return False
            return self.purchase_store.has_purchased(bearer_user_id, product_id)

        if user_id and token:
            return self.token_store.verify(user_id=user_id, product_id=product_id, token=token)

        return False

    def resolve_file(self, product_id: str) -> Path:
        path = self.downloads_dir / f"{product_id}.json"
        if not path.is_file():
            logger.error(f"Workflow file missing for purchased product {product_id}")
            raise NotFoundError("Workflow file", product_id)
        return path

    def authorize(
        self,
        product_id: str,
        user_id: Optional[str] = None,
        token: Optional[str] = None,
        bearer_user_id: Optional[str] = None,
    ) -> Path:
        """
        Return the file to serve for an authorized request

        Raises:
            ValidationError: If the product id is malformed
            AccessDeniedError: If no credential proves the purchase
            NotFoundError: If access is granted but the file is missing
        """
        self.validate_product_id(product_id)

        if not self.has_access(product_id, user_id=user_id, token=token, bearer_user_id=bearer_user_id):
            logger.warning(f"Download denied for product {product_id}")
            metrics.track_download("denied")
            raise AccessDeniedError(product_id)

        try:
            path = self.resolve_file(product_id)
        except NotFoundError:
            metrics.track_download("missing")
            raise

        metrics.track_download("served")
        logger.info(f"Serving product {product_id} to user {bearer_user_id or user_id}")
        return path

    @staticmethod
    def download_filename(product_id: str) -> str:
        return DOWNLOAD_FILENAME_TEMPLATE.format(product_id=product_id)
