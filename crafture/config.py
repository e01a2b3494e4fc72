import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from crafture.constants.networks import FILECOIN_NETWORKS, DEFAULT_WARM_STORAGE_ADDRESS

logger = logging.getLogger("config")

DEFAULT_TABLE_NAME = "AI Generated Content"
DEFAULT_IMAGE_MODEL = "gemini-2.0-flash-preview-image-generation"
DEFAULT_PORT = 3001


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {value!r}. Using default {default}")
        return default


@dataclass
class Settings:
    """Process configuration, read from the environment (and .env)"""

    filecoin_private_key: Optional[str] = None
    filecoin_network: str = "calibration"
    filecoin_rpc_url: Optional[str] = None
    filecoin_provider_id: int = 1
    filecoin_provider_url: Optional[str] = None
    filecoin_payments_address: Optional[str] = None
    warm_storage_address: str = DEFAULT_WARM_STORAGE_ADDRESS
    database_url: Optional[str] = None
    history_table_name: str = DEFAULT_TABLE_NAME
    gemini_api_key: Optional[str] = None
    gemini_image_model: str = DEFAULT_IMAGE_MODEL
    fetch_timeout_s: float = 10.0
    generation_timeout_s: float = 120.0
    storage_timeout_s: float = 120.0
    tx_timeout_s: float = 300.0
    app_env: str = "production"
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        network = os.getenv("FILECOIN_NETWORK", "calibration").lower()
        if network not in FILECOIN_NETWORKS:
            logger.warning(f"Invalid network '{network}'. Using calibration as default.")
            network = "calibration"

        try:
            port = int(os.getenv("PORT", DEFAULT_PORT))
        except ValueError:
            logger.warning(f"Invalid PORT value. Using default {DEFAULT_PORT}")
            port = DEFAULT_PORT

        settings = cls(
            filecoin_private_key=os.getenv("FILECOIN_PRIVATE_KEY") or None,
            filecoin_network=network,
            filecoin_rpc_url=os.getenv("FILECOIN_RPC_URL") or FILECOIN_NETWORKS[network]["rpc_url"],
            filecoin_provider_id=int(os.getenv("FILECOIN_PROVIDER_ID", "1")),
            filecoin_provider_url=os.getenv("FILECOIN_PROVIDER_URL") or None,
            filecoin_payments_address=os.getenv("FILECOIN_PAYMENTS_ADDRESS") or None,
            warm_storage_address=os.getenv("WARM_STORAGE_ADDRESS") or DEFAULT_WARM_STORAGE_ADDRESS,
            database_url=os.getenv("DATABASE_URL") or None,
            history_table_name=os.getenv("HISTORY_TABLE_NAME") or DEFAULT_TABLE_NAME,
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_image_model=os.getenv("GEMINI_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            generation_timeout_s=_get_float("GENERATION_TIMEOUT_S", 120.0),
            storage_timeout_s=_get_float("STORAGE_TIMEOUT_S", 120.0),
            tx_timeout_s=_get_float("TX_TIMEOUT_S", 300.0),
            app_env=os.getenv("APP_ENV", "production").lower(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
        )

        if not settings.database_url:
            logger.warning("⚠️  WARNING: DATABASE_URL environment variable is not set")
        return settings

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def storage_enabled(self) -> bool:
        return bool(self.filecoin_private_key)
