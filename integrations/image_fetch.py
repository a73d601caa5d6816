"""
Image fetch follow-up.

After an import creates products that have a UPC but no images, the route
schedules one request per product to an external image service. Runs as a
background task once the response has gone out, so failures are logged
and reported as False, never raised.
"""

from typing import Optional
import requests
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


def build_payload(upc: str, title: Optional[str], product_id: str) -> dict:
    return {
        "product_id": product_id,
        "upc": upc,
        "title": title or "",
    }


def request_image_fetch(
    url: Optional[str],
    upc: str,
    title: Optional[str],
    product_id: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> bool:
    """
    Ask the image service to find images for one product.

    Args:
        url: Image service endpoint (skipped when not configured)
        upc: Product UPC to look up
        title: Product title, helps disambiguate
        product_id: Store id the images belong to
        timeout: Seconds before giving up

    Returns:
        True if the service accepted the request
    """
    if not url:
        logger.debug("image_fetch_not_configured", product_id=product_id)
        return False

    try:
        logger.info("requesting_image_fetch", product_id=product_id, upc=upc)

        response = requests.post(url, json=build_payload(upc, title, product_id), timeout=timeout)
        response.raise_for_status()

        logger.info("image_fetch_requested", product_id=product_id, status=response.status_code)
        return True

    except requests.exceptions.RequestException as e:
        logger.error("image_fetch_request_failed", product_id=product_id, upc=upc, error=str(e))
        return False
