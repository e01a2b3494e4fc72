import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import aiohttp

from crafture.config import Settings
from crafture.connections.synapse_session import SynapseSession
from crafture.constants.networks import MIN_UPLOAD_SIZE
from crafture.errors import ConfigurationError, StorageError
from crafture.helpers.filbeam import build_gateway_url
from crafture.helpers.piece_cid import piece_cid
from crafture.models.artifacts import StorageRecord

logger = logging.getLogger("connections.storage_connection")

STORAGE_CATEGORY = "ai-generated-images"
STORAGE_VERSION = "1.0"
PIECE_POLL_INTERVAL_S = 2


def pad_payload(data: bytes, minimum: int = MIN_UPLOAD_SIZE) -> bytes:
    """Zero-pad payloads shorter than the Filecoin minimum piece size"""
    if len(data) >= minimum:
        return data
    return data + b"\x00" * (minimum - len(data))


class StorageContext:
    """Provider selection, CDN flag and metadata for one upload or download"""

    def __init__(self, session: SynapseSession, provider_id: int, with_cdn: bool,
                 metadata: Dict[str, Any], timeout: float):
        self.session = session
        self.provider_id = provider_id
        self.with_cdn = with_cdn
        self.metadata = metadata
        self.timeout = timeout

    async def upload(self, data: bytes) -> Dict[str, Any]:
        """Park a piece with the provider: announce its CID, send the bytes, wait until it is indexed"""
        provider_url = self.session.get_provider_url(self.provider_id)
        content_id = piece_cid(data)
        logger.info(f"Uploading piece {content_id} to provider {self.provider_id} with metadata {self.metadata}")

        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as http:
            async with http.post(f"{provider_url}/pdp/piece", json={"pieceCid": content_id}) as response:
                if response.status == 200:
                    logger.info(f"Provider already holds piece {content_id}")
                    return {"pieceCid": content_id, "size": len(data)}
                if response.status != 201:
                    error_text = await response.text()
                    raise StorageError(f"Storage provider error ({response.status}): {error_text}")
                location = response.headers.get("Location")
            if not location:
                raise StorageError("Storage provider did not return an upload location")

            upload_url = location if location.startswith("http") else f"{provider_url}{location}"
            async with http.put(upload_url, data=data,
                                headers={"Content-Type": "application/octet-stream"}) as response:
                if response.status not in (200, 204):
                    error_text = await response.text()
                    raise StorageError(f"Piece upload failed ({response.status}): {error_text}")

            await self._wait_for_piece(http, provider_url, content_id)
        return {"pieceCid": content_id, "size": len(data)}

    async def _wait_for_piece(self, http: aiohttp.ClientSession, provider_url: str, content_id: str):
        while True:
            async with http.get(f"{provider_url}/pdp/piece", params={"pieceCid": content_id}) as response:
                if response.status == 200:
                    logger.info(f"Piece {content_id} is parked with the provider")
                    return
                if response.status != 404:
                    error_text = await response.text()
                    raise StorageError(f"Piece lookup failed ({response.status}): {error_text}")
            await asyncio.sleep(PIECE_POLL_INTERVAL_S)

    async def download(self, content_id: str) -> bytes:
        if self.with_cdn:
            url = build_gateway_url(content_id, self.session.get_network(),
                                    self.session.get_warm_storage_address())
        else:
            url = f"{self.session.get_provider_url(self.provider_id)}/piece/{content_id}"

        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as http:
            async with http.get(url) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise StorageError(f"Retrieval error ({response.status}): {error_text}")
                return await response.read()


class StorageConnection:
    """Filecoin warm storage backed by one process-wide session"""

    def __init__(self, settings: Settings,
                 session_factory: Optional[Callable[[Settings], SynapseSession]] = None):
        self.settings = settings
        self._session_factory = session_factory or SynapseSession.create
        self._session: Optional[SynapseSession] = None
        self._lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return self.settings.storage_enabled

    async def get_session(self) -> SynapseSession:
        """Create the session on first use; concurrent callers share one creation"""
        if self._session is not None:
            return self._session

        async with self._lock:
            if self._session is None:
                if not self.settings.filecoin_private_key:
                    raise ConfigurationError("FILECOIN_PRIVATE_KEY environment variable is not set")
                self._session = await asyncio.wait_for(
                    asyncio.to_thread(self._session_factory, self.settings),
                    timeout=self.settings.storage_timeout_s,
                )
        return self._session

    def create_context(self, session: SynapseSession, metadata: Dict[str, Any]) -> StorageContext:
        logger.info(f"Creating storage context with provider ID {self.settings.filecoin_provider_id} and CDN enabled...")
        return StorageContext(
            session,
            provider_id=self.settings.filecoin_provider_id,
            with_cdn=True,
            metadata={"category": STORAGE_CATEGORY, "version": STORAGE_VERSION, **metadata},
            timeout=self.settings.storage_timeout_s,
        )

    async def upload(self, data: bytes, file_name: str, mime_type: str) -> StorageRecord:
        logger.info(f"Uploading file to Filecoin Onchain Cloud: {file_name}")
        logger.info(f"File size: {len(data)} bytes, MIME type: {mime_type}")

        if len(data) < MIN_UPLOAD_SIZE:
            logger.info(f"Padded file to meet minimum size requirement ({MIN_UPLOAD_SIZE} bytes)")
        payload = pad_payload(data)

        try:
            session = await self.get_session()
            context = self.create_context(session, {"fileName": file_name, "mimeType": mime_type})
            result = await asyncio.wait_for(context.upload(payload), timeout=self.settings.storage_timeout_s)
            # TODO: add the parked piece to the client data set (POST /pdp/data-sets/{id}/pieces with signed AddPieces extraData)

            content_id = result.get("pieceCid")
            if not content_id:
                raise StorageError(f"Upload response did not include a piece CID: {result}")

            network = session.get_network()
            record = StorageRecord(
                content_id=content_id,
                size=result.get("size") or len(payload),
                gateway_url=build_gateway_url(content_id, network, session.get_warm_storage_address()),
                network=network,
            )
            logger.info(f"Filecoin upload successful. Piece CID: {record.content_id}")
            logger.info(f"Gateway URL: {record.gateway_url}")
            return record
        except asyncio.TimeoutError as e:
            logger.error(f"Error uploading to Filecoin: timed out after {self.settings.storage_timeout_s}s")
            raise StorageError(f"Failed to upload to Filecoin: timed out after {self.settings.storage_timeout_s}s") from e
        except Exception as e:
            logger.error(f"Error uploading to Filecoin: {e}", exc_info=True)
            raise StorageError(f"Failed to upload to Filecoin: {e}") from e

    async def download(self, content_id: str) -> bytes:
        logger.info(f"Downloading file from Filecoin Onchain Cloud: {content_id}")
        try:
            session = await self.get_session()
            context = self.create_context(session, {})
            data = await asyncio.wait_for(context.download(content_id), timeout=self.settings.storage_timeout_s)
            logger.info(f"Filecoin download successful, size: {len(data)} bytes")
            return data
        except asyncio.TimeoutError as e:
            logger.error(f"Error downloading from Filecoin: timed out after {self.settings.storage_timeout_s}s")
            raise StorageError(f"Failed to download from Filecoin: timed out after {self.settings.storage_timeout_s}s") from e
        except Exception as e:
            logger.error(f"Error downloading from Filecoin: {e}", exc_info=True)
            raise StorageError(f"Failed to download from Filecoin: {e}") from e

    async def wallet_balance(self) -> int:
        session = await self.get_session()
        return await asyncio.wait_for(
            asyncio.to_thread(session.payments.wallet_balance),
            timeout=self.settings.storage_timeout_s,
        )
