import asyncio
import json
import logging
import re
import time
import traceback
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from crafture.config import Settings
from crafture.connections.gemini_connection import GeminiImageConnection
from crafture.connections.payment_setup import MIN_WALLET_BALANCE, PaymentSetup
from crafture.connections.storage_connection import StorageConnection
from crafture.database import create_session_factory
from crafture.errors import DecodeError, FetchError, ValidationError
from crafture.helpers.image_normalizer import normalize
from crafture.models.artifacts import GeneratedArtifact, PNG_MIME_TYPE, StepResult, StorageRecord
from crafture.models.requests import GenerateImageRequest, MetadataRequest
from crafture.server import responses
from crafture.stores.history_store import HistoryStore

logger = logging.getLogger("server/app")


class ServerState:
    """The collaborators every request is routed through"""

    def __init__(self, settings: Settings, generator: GeminiImageConnection, storage: StorageConnection,
                 payment_setup: PaymentSetup, history: HistoryStore,
                 normalizer: Callable[[str], Awaitable[bytes]] = normalize):
        self.settings = settings
        self.generator = generator
        self.storage = storage
        self.payment_setup = payment_setup
        self.history = history
        self.normalizer = normalizer

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServerState":
        storage = StorageConnection(settings)
        return cls(
            settings=settings,
            generator=GeminiImageConnection(
                settings.gemini_api_key,
                settings.gemini_image_model,
                timeout=settings.generation_timeout_s,
            ),
            storage=storage,
            payment_setup=PaymentSetup(storage),
            history=HistoryStore(
                create_session_factory(settings.database_url, settings.history_table_name),
                settings.history_table_name,
            ),
        )

    async def initialize_storage(self):
        """Create the storage session and run payment setup once, logging failures only"""
        logger.info("🚀 Starting storage initialization...")
        try:
            await self.storage.get_session()
            logger.info("✅ Storage session initialized")
            logger.info("💰 Setting up payment automatically...")
            await self.payment_setup.ensure_funded()
            logger.info("✅ Payment setup completed successfully on startup")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"⚠️  Storage initialization or payment setup failed: {e}")
            logger.warning("⚠️  The server will continue running, storage uploads may fail until setup is retried")

    async def normalize_references(self, image_urls: List[str]) -> List[bytes]:
        image_buffers = []
        for image_url in image_urls:
            try:
                image_buffers.append(await self.normalizer(image_url))
            except (FetchError, DecodeError) as e:
                logger.warning(f"Skipping image {image_url}: {e}")
        return image_buffers

    async def archive(self, artifact: GeneratedArtifact) -> StepResult:
        if not artifact.has_image:
            return StepResult.skipped("No image data to upload")

        file_name = f"ai-generated-{int(time.time() * 1000)}.png"
        try:
            return StepResult.ok(await self.storage.upload(artifact.image_bytes, file_name, PNG_MIME_TYPE))
        except Exception as e:
            logger.error(f"Filecoin upload failed: {e}", exc_info=True)
            return StepResult.skipped(str(e))

    async def record_history(self, wallet_address: str, storage: StepResult, prompt: str) -> StepResult:
        if not storage.is_ok:
            logger.warning("Skipping database save - storage URL is not available")
            return StepResult.skipped("Storage URL is not available")

        if not self.history.is_configured:
            logger.warning("Skipping database save - DATABASE_URL is not set")
            return StepResult.skipped("Database is not configured")

        record: StorageRecord = storage.value
        try:
            row = await asyncio.to_thread(self.history.save, wallet_address, record.gateway_url, prompt)
            logger.info(f"Successfully saved to database with storage URL: {record.gateway_url}")
            return StepResult.ok(row)
        except Exception as e:
            logger.error(f"Database save failed: {e}", exc_info=True)
            logger.warning("Continuing with response despite database error")
            return StepResult.skipped(str(e))


class CraftureServer:
    def __init__(self, state: Optional[ServerState] = None, settings: Optional[Settings] = None):
        self.state = state or ServerState.from_settings(settings or Settings.from_env())
        self._init_task: Optional[asyncio.Task] = None
        self.app = FastAPI(title="Crafture AI Image API", lifespan=self.lifespan)
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        self.setup_exception_handlers()
        self.setup_routes()

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        if not self.state.generator.is_configured():
            logger.warning("⚠️  GEMINI_API_KEY not set - image generation requests will fail")
        if self.state.storage.is_configured:
            logger.info("📦 Filecoin private key detected, initializing storage in background...")
            self._init_task = asyncio.create_task(self.state.initialize_storage())
        else:
            logger.warning("⚠️  FILECOIN_PRIVATE_KEY not set - storage initialization skipped")
            logger.warning("⚠️  Storage features will not work until FILECOIN_PRIVATE_KEY is configured")
        yield
        if self._init_task:
            if not self._init_task.done():
                self._init_task.cancel()
            try:
                await self._init_task
            except asyncio.CancelledError:
                logger.info("Storage initialization cancelled on shutdown")

    def internal_error(self, e: Exception, summary: str = "Internal server error") -> JSONResponse:
        details = traceback.format_exc() if self.state.settings.is_development else None
        return JSONResponse(status_code=500, content=responses.error_body(summary, str(e), details))

    def setup_exception_handlers(self):
        @self.app.exception_handler(ValidationError)
        async def validation_error_handler(request: Request, exc: ValidationError):
            return JSONResponse(status_code=400, content=responses.error_body(str(exc)))

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_error_handler(request: Request, exc: RequestValidationError):
            errors = exc.errors()
            first = errors[0] if errors else {}
            field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"Invalid {field}: {first.get('msg')}" if field else "Invalid request body"
            return JSONResponse(status_code=400, content=responses.error_body(message))

    def setup_routes(self):
        @self.app.post("/api/generate-image")
        async def generate_image(request: GenerateImageRequest):
            """Generate an image from a prompt and optional reference images"""
            logger.info("=== IMAGE GENERATION REQUEST ===")
            if not request.prompt:
                raise ValidationError("Prompt is required")
            if not request.walletAddress:
                raise ValidationError("Wallet address is required")

            image_urls = request.imageUrls or []
            try:
                if image_urls:
                    logger.info(f"Processing image URLs: {image_urls}")
                else:
                    logger.info("No reference images provided - generating from prompt only")
                image_buffers = await self.state.normalize_references(image_urls)
                logger.info(f"Successfully processed {len(image_buffers)} images")

                artifact = await self.state.generator.generate(request.prompt, image_buffers)
                logger.info("=== IMAGE GENERATION COMPLETED ===")
            except Exception as e:
                logger.error(f"Error in image generation endpoint: {e}", exc_info=True)
                return self.internal_error(e)

            storage = await self.state.archive(artifact)
            saved = await self.state.record_history(request.walletAddress, storage, request.prompt)
            return responses.generation_response(artifact, len(image_buffers), storage, saved)

        @self.app.get("/api/health")
        async def health():
            return {"status": "OK", "message": "AI Image Generation API is running"}

        @self.app.get("/api/storage-stats")
        async def storage_stats():
            """Wallet balance, network identity and archived file count"""
            try:
                balance = await self.state.storage.wallet_balance()
                session = await self.state.storage.get_session()
                total_files = await asyncio.to_thread(self.state.history.count)
                return responses.storage_stats_response(
                    balance,
                    MIN_WALLET_BALANCE,
                    session.get_network(),
                    session.get_warm_storage_address(),
                    total_files,
                )
            except Exception as e:
                logger.error(f"Error fetching storage stats: {e}", exc_info=True)
                return self.internal_error(e)

        @self.app.post("/api/setup-payment")
        async def setup_payment():
            """Deposit USDFC and approve the warm storage service"""
            logger.info("=== PAYMENT SETUP REQUEST ===")
            logger.info(f"- FILECOIN_PRIVATE_KEY: {'✅ Set' if self.state.settings.storage_enabled else '❌ Missing'}")
            try:
                await self.state.payment_setup.ensure_funded()
                return {
                    "success": True,
                    "message": "Payment setup completed successfully. USDFC deposited and service approved.",
                }
            except Exception as e:
                logger.error(f"❌ Error in payment setup endpoint: {e}", exc_info=True)
                return self.internal_error(e)

        @self.app.post("/api/metadata")
        async def upload_metadata(request: MetadataRequest):
            """Upload ERC-721 metadata JSON to Filecoin"""
            if not request.name or not request.description or not request.image:
                raise ValidationError("name, description and image are required")

            metadata = {
                "name": request.name,
                "description": request.description,
                "image": request.image,
                "attributes": request.attributes if isinstance(request.attributes, list) else [],
            }
            file_name = f"{re.sub(r'[^a-zA-Z0-9_-]', '_', request.name) or 'metadata'}.json"

            try:
                logger.info(f"[METADATA] Uploading metadata to Filecoin: {metadata}")
                record = await self.state.storage.upload(
                    json.dumps(metadata, indent=2).encode("utf-8"),
                    file_name,
                    "application/json",
                )
                logger.info(f"[METADATA] Uploaded to Filecoin. pieceCid: {record.content_id} url: {record.gateway_url}")
                return responses.metadata_response(record)
            except Exception as e:
                logger.error(f"[METADATA] Error: {e}", exc_info=True)
                return self.internal_error(e)

        @self.app.get("/api/history/")
        @self.app.get("/api/history/{wallet_address}")
        async def get_history(wallet_address: str = ""):
            """Fetch a wallet's generation history, newest first"""
            if not wallet_address.strip():
                raise ValidationError("Wallet address is required")

            try:
                rows = await asyncio.to_thread(self.state.history.query_by_wallet, wallet_address)
            except Exception as e:
                logger.error(f"Error fetching history: {e}", exc_info=True)
                return self.internal_error(e, "Failed to fetch history")

            logger.info(f"[HISTORY] Rows fetched: {len(rows)}")
            return {"success": True, "items": [responses.history_item(row) for row in rows]}

        @self.app.get("/api/download/{content_id}")
        async def download(content_id: str):
            """Stream a stored piece back through the CDN gateway"""
            try:
                data = await self.state.storage.download(content_id)
            except Exception as e:
                logger.error(f"Error downloading {content_id}: {e}", exc_info=True)
                return self.internal_error(e)
            return Response(content=data, media_type="application/octet-stream")


def create_app(state: Optional[ServerState] = None, settings: Optional[Settings] = None) -> FastAPI:
    server = CraftureServer(state=state, settings=settings)
    return server.app
