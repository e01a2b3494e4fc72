from typing import Optional

from crafture.constants.networks import (
    DEFAULT_WARM_STORAGE_ADDRESS,
    FILBEAM_DOMAIN,
    FILECOIN_URL_SCHEME,
)


def extract_content_id(value: Optional[str]) -> Optional[str]:
    """
    Extract a piece CID from a stored URL

    Supports filecoin://<pieceCid>, Filbeam gateway URLs of the form
    https://<warmStorageAddress>.<network>.filbeam.io/<pieceCid>, and
    bare piece CIDs, which are returned unchanged.
    """
    if not value:
        return None

    if value.startswith(FILECOIN_URL_SCHEME):
        return value[len(FILECOIN_URL_SCHEME):]

    if f".{FILBEAM_DOMAIN}/" in value:
        without_query = value.split("?")[0]
        return without_query.split("/")[-1] or None

    return value


def build_gateway_url(content_id: Optional[str], network: Optional[str],
                      storage_address: str = DEFAULT_WARM_STORAGE_ADDRESS) -> Optional[str]:
    """Compose the Filbeam retrieval URL for a piece CID"""
    if not content_id:
        return None

    network_slug = (network or "calibration").lower()
    return f"https://{storage_address.lower()}.{network_slug}.{FILBEAM_DOMAIN}/{content_id}"
