import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from crafture.connections.storage_connection import StorageConnection
from crafture.connections.synapse_session import format_usdfc, parse_usdfc
from crafture.constants.networks import EPOCHS_PER_MONTH
from crafture.errors import InsufficientFundsError, TransactionError

logger = logging.getLogger("connections.payment_setup")

MIN_WALLET_BALANCE = parse_usdfc(2)
DEPOSIT_AMOUNT = parse_usdfc(2)
RATE_ALLOWANCE = parse_usdfc(10)
LOCKUP_ALLOWANCE = parse_usdfc(1000)
MAX_LOCKUP_PERIOD = EPOCHS_PER_MONTH

SUBMIT_MARGIN_S = 60


@dataclass
class PaymentSetupResult:
    wallet_balance: int
    deposit_tx: Optional[str] = None
    approval_tx: Optional[str] = None


class PaymentSetup:
    """
    Deposit USDFC into Filecoin Pay and approve the warm storage service.

    Each step is an on-chain transaction awaited to confirmation:
    1. Check the wallet holds at least 2 USDFC
    2. Deposit 2 USDFC with an EIP-2612 permit
    3. Approve the warm storage operator (10 USDFC/epoch, 1000 USDFC lockup, 30 days)

    The deposit is skipped when the payment account already holds the
    minimum, and the approval when an equal or larger one is in place,
    unless force_deposit is set.
    """

    def __init__(self, storage: StorageConnection):
        self.storage = storage
        self._lock = asyncio.Lock()

    async def _call(self, fn, *args):
        # Receipt waits carry tx_timeout_s themselves; leave room for signing and submission
        return await asyncio.wait_for(
            asyncio.to_thread(fn, *args),
            timeout=self.storage.settings.tx_timeout_s + SUBMIT_MARGIN_S,
        )

    async def ensure_funded(self, force_deposit: bool = False) -> PaymentSetupResult:
        async with self._lock:
            try:
                return await self._ensure_funded(force_deposit)
            except Exception as e:
                logger.error(f"❌ Error setting up payment: {e}", exc_info=True)
                raise

    async def _ensure_funded(self, force_deposit: bool) -> PaymentSetupResult:
        session = await self.storage.get_session()
        payments = session.payments

        logger.info("=== SETTING UP PAYMENT ===")
        logger.info("1) Checking wallet USDFC balance...")
        wallet_balance = await self._call(payments.wallet_balance)
        logger.info(f"Wallet USDFC balance: {format_usdfc(wallet_balance)} USDFC")
        result = PaymentSetupResult(wallet_balance=wallet_balance)

        account_funds = await self._call(payments.account_funds)
        if account_funds >= DEPOSIT_AMOUNT and not force_deposit:
            logger.info(f"2) Payment account already holds {format_usdfc(account_funds)} USDFC, skipping deposit")
        else:
            if wallet_balance < MIN_WALLET_BALANCE:
                raise InsufficientFundsError(
                    f"Insufficient USDFC in wallet. Need at least {format_usdfc(MIN_WALLET_BALANCE)} USDFC, "
                    f"but wallet only has {format_usdfc(wallet_balance)} USDFC. "
                    "Please fund your wallet with USDFC tokens first."
                )

            logger.info(f"2) Depositing {format_usdfc(DEPOSIT_AMOUNT)} USDFC to Filecoin Pay contract (on-chain)...")
            deposit = await self._call(payments.deposit_with_permit, DEPOSIT_AMOUNT)
            logger.info(f"Deposit transaction confirmed. Block: {deposit.block_number}")
            if not deposit.succeeded:
                raise TransactionError(
                    f"Deposit transaction failed. Transaction hash: {deposit.tx_hash}", tx_hash=deposit.tx_hash
                )
            result.deposit_tx = deposit.tx_hash

        warm_storage_address = session.get_warm_storage_address()
        approval = await self._call(payments.operator_approval, warm_storage_address)
        if (
            approval["isApproved"]
            and approval["rateAllowance"] >= RATE_ALLOWANCE
            and approval["lockupAllowance"] >= LOCKUP_ALLOWANCE
            and approval["maxLockupPeriod"] >= MAX_LOCKUP_PERIOD
            and not force_deposit
        ):
            logger.info(f"3) Warm storage service at {warm_storage_address} is already approved")
        else:
            logger.info("3) Approving Warm Storage service (on-chain)...")
            logger.info(f"   Warm Storage address: {warm_storage_address}")
            approve = await self._call(
                payments.approve_service,
                warm_storage_address,
                RATE_ALLOWANCE,
                LOCKUP_ALLOWANCE,
                MAX_LOCKUP_PERIOD,
            )
            logger.info(f"Service approval complete. Block: {approve.block_number}")
            if not approve.succeeded:
                raise TransactionError(
                    f"Service approval transaction failed. Transaction hash: {approve.tx_hash}",
                    tx_hash=approve.tx_hash,
                )
            result.approval_tx = approve.tx_hash

        logger.info("=== PAYMENT SETUP COMPLETE ===")
        return result
