"""In-process stand-ins for Gemini, the Filecoin session and storage"""
import io
from typing import List

from PIL import Image

from crafture.connections.synapse_session import TxOutcome
from crafture.errors import FetchError, StorageError
from crafture.helpers.filbeam import build_gateway_url
from crafture.models.artifacts import GeneratedArtifact, StorageRecord

WALLET = "0xabc"


def make_png(size=(4, 4), color=(255, 0, 0)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class MockPayments:
    """Records payment calls instead of sending transactions"""

    def __init__(self, wallet_balance=3 * 10 ** 18, account_funds=0, approved=False, receipt_status=1):
        self.balance = wallet_balance
        self.funds = account_funds
        self.approved = approved
        self.receipt_status = receipt_status
        self.deposits: List[int] = []
        self.approvals: List[tuple] = []

    def wallet_balance(self):
        return self.balance

    def account_funds(self):
        return self.funds

    def operator_approval(self, operator):
        if not self.approved:
            return {"isApproved": False, "rateAllowance": 0, "lockupAllowance": 0,
                    "rateUsage": 0, "lockupUsage": 0, "maxLockupPeriod": 0}
        return {"isApproved": True, "rateAllowance": 10 * 10 ** 18, "lockupAllowance": 1000 * 10 ** 18,
                "rateUsage": 0, "lockupUsage": 0, "maxLockupPeriod": 86400}

    def deposit_with_permit(self, amount):
        self.deposits.append(amount)
        return TxOutcome(tx_hash=f"0xdeposit{len(self.deposits)}", status=self.receipt_status, block_number=1)

    def approve_service(self, operator, rate_allowance, lockup_allowance, max_lockup_period):
        self.approvals.append((operator, rate_allowance, lockup_allowance, max_lockup_period))
        return TxOutcome(tx_hash=f"0xapprove{len(self.approvals)}", status=self.receipt_status, block_number=2)


class MockSession:
    def __init__(self, payments=None, network="calibration",
                 warm_storage_address="0x5233e4253bc38e8cf517c0768dbc8acc886f32b3"):
        self.payments = payments or MockPayments()
        self.network = network
        self.warm_storage_address = warm_storage_address

    def get_network(self):
        return self.network

    def get_warm_storage_address(self):
        return self.warm_storage_address


class MockGenerator:
    def __init__(self, artifact: GeneratedArtifact = None, error: Exception = None):
        self.artifact = artifact or GeneratedArtifact.from_png(make_png())
        self.error = error
        self.calls = []

    def is_configured(self):
        return True

    async def generate(self, prompt, reference_images):
        self.calls.append((prompt, list(reference_images)))
        if self.error:
            raise self.error
        return self.artifact


class MockStorage:
    """Stands in for StorageConnection at the HTTP layer"""

    def __init__(self, fail: bool = False, session: MockSession = None,
                 configured: bool = True, session_error: Exception = None):
        self.fail = fail
        self.session = session or MockSession()
        self.configured = configured
        self.session_error = session_error
        self.session_requests = 0
        self.uploads = []
        self.blobs = {}

    @property
    def is_configured(self):
        return self.configured

    async def get_session(self):
        self.session_requests += 1
        if self.session_error:
            raise self.session_error
        return self.session

    async def wallet_balance(self):
        return self.session.payments.wallet_balance()

    async def upload(self, data, file_name, mime_type):
        self.uploads.append((data, file_name, mime_type))
        if self.fail:
            raise StorageError("Failed to upload to Filecoin: provider unavailable")
        content_id = f"bafkzcibtest{len(self.uploads)}"
        self.blobs[content_id] = data
        return StorageRecord(
            content_id=content_id,
            size=len(data),
            gateway_url=build_gateway_url(content_id, self.session.get_network()),
            network=self.session.get_network(),
        )

    async def download(self, content_id):
        if content_id not in self.blobs:
            raise StorageError(f"Failed to download from Filecoin: {content_id} not found")
        return self.blobs[content_id]


class MockPaymentSetup:
    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = 0

    async def ensure_funded(self, force_deposit=False):
        self.calls += 1
        if self.error:
            raise self.error


def mock_normalizer(failing_urls=()):
    async def normalize(url):
        if url in failing_urls:
            raise FetchError(f"Failed to fetch {url}: HTTP 404")
        return make_png()
    return normalize


