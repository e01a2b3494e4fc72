import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from crafture.config import Settings
from crafture.constants.abi import FILECOIN_PAY_ABI, USDFC_ABI
from crafture.constants.networks import CHAIN_ID_TO_NETWORK, FILECOIN_NETWORKS, USDFC_DECIMALS
from crafture.errors import ConfigurationError, TransactionError

logger = logging.getLogger("connections.synapse_session")

RPC_TIMEOUT_S = 30
PERMIT_VALIDITY_S = 3600


@dataclass(frozen=True)
class TxOutcome:
    tx_hash: str
    status: int
    block_number: Optional[int]

    @property
    def succeeded(self) -> bool:
        return self.status == 1


def format_usdfc(amount: int) -> str:
    return str(Decimal(amount) / Decimal(10 ** USDFC_DECIMALS))


def parse_usdfc(amount) -> int:
    return int(Decimal(str(amount)) * 10 ** USDFC_DECIMALS)


class PaymentsClient:
    """USDFC wallet and Filecoin Pay account operations for one signer"""

    def __init__(self, web3: Web3, account, token_address: str,
                 payments_address: Optional[str], tx_timeout: float = 300.0,
                 explorer_url: Optional[str] = None):
        self.web3 = web3
        self.account = account
        self.tx_timeout = tx_timeout
        self.explorer_url = explorer_url
        self.token = web3.eth.contract(address=Web3.to_checksum_address(token_address), abi=USDFC_ABI)
        self._payments_address = Web3.to_checksum_address(payments_address) if payments_address else None

    def explorer_link(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url}/message/{tx_hash}"

    @property
    def payments(self):
        if not self._payments_address:
            raise ConfigurationError("FILECOIN_PAYMENTS_ADDRESS environment variable is not set")
        return self.web3.eth.contract(address=self._payments_address, abi=FILECOIN_PAY_ABI)

    def wallet_balance(self) -> int:
        return self.token.functions.balanceOf(self.account.address).call()

    def account_funds(self) -> int:
        funds, _, _, _ = self.payments.functions.accounts(self.token.address, self.account.address).call()
        return funds

    def operator_approval(self, operator: str) -> Dict[str, Any]:
        approved, rate, lockup, rate_usage, lockup_usage, max_period = self.payments.functions.operatorApprovals(
            self.token.address, self.account.address, Web3.to_checksum_address(operator)
        ).call()
        return {
            "isApproved": approved,
            "rateAllowance": rate,
            "lockupAllowance": lockup,
            "rateUsage": rate_usage,
            "lockupUsage": lockup_usage,
            "maxLockupPeriod": max_period,
        }

    def _sign_permit(self, amount: int, deadline: int):
        """EIP-2612 permit letting the payments contract pull `amount` USDFC"""
        try:
            version = self.token.functions.version().call()
        except Exception as e:
            logger.debug(f"Token has no version(), signing permit with version 1: {e}")
            version = "1"

        typed_data = {
            "types": {
                "EIP712Domain": [
                    {"name": "name", "type": "string"},
                    {"name": "version", "type": "string"},
                    {"name": "chainId", "type": "uint256"},
                    {"name": "verifyingContract", "type": "address"},
                ],
                "Permit": [
                    {"name": "owner", "type": "address"},
                    {"name": "spender", "type": "address"},
                    {"name": "value", "type": "uint256"},
                    {"name": "nonce", "type": "uint256"},
                    {"name": "deadline", "type": "uint256"},
                ],
            },
            "primaryType": "Permit",
            "domain": {
                "name": self.token.functions.name().call(),
                "version": version,
                "chainId": self.web3.eth.chain_id,
                "verifyingContract": self.token.address,
            },
            "message": {
                "owner": self.account.address,
                "spender": self._payments_address,
                "value": amount,
                "nonce": self.token.functions.nonces(self.account.address).call(),
                "deadline": deadline,
            },
        }
        return self.account.sign_message(encode_typed_data(full_message=typed_data))

    def _send(self, function) -> TxOutcome:
        tx = function.build_transaction({
            "from": self.account.address,
            "nonce": self.web3.eth.get_transaction_count(self.account.address),
            "chainId": self.web3.eth.chain_id,
        })
        signed = self.account.sign_transaction(tx)
        tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"   Transaction submitted: {tx_hex}")
        link = self.explorer_link(tx_hex)
        if link:
            logger.info(f"   Explorer: {link}")
        logger.info("   Waiting for confirmation...")
        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.tx_timeout)
        except Exception as e:
            raise TransactionError(f"No receipt for transaction {tx_hex}: {e}", tx_hash=tx_hex) from e
        return TxOutcome(tx_hash=tx_hex, status=receipt["status"], block_number=receipt.get("blockNumber"))

    def deposit_with_permit(self, amount: int) -> TxOutcome:
        payments = self.payments
        deadline = int(time.time()) + PERMIT_VALIDITY_S
        signature = self._sign_permit(amount, deadline)
        return self._send(payments.functions.depositWithPermit(
            self.token.address,
            self.account.address,
            amount,
            deadline,
            signature.v,
            signature.r.to_bytes(32, "big"),
            signature.s.to_bytes(32, "big"),
        ))

    def approve_service(self, operator: str, rate_allowance: int, lockup_allowance: int,
                        max_lockup_period: int) -> TxOutcome:
        return self._send(self.payments.functions.setOperatorApproval(
            self.token.address,
            Web3.to_checksum_address(operator),
            True,
            rate_allowance,
            lockup_allowance,
            max_lockup_period,
        ))


class SynapseSession:
    """A funded signer connected to one Filecoin network"""

    def __init__(self, web3: Web3, account, network: str, settings: Settings):
        self.web3 = web3
        self.account = account
        self.network = network
        self.settings = settings
        self.payments = PaymentsClient(
            web3,
            account,
            FILECOIN_NETWORKS[network]["usdfc_address"],
            settings.filecoin_payments_address,
            tx_timeout=settings.tx_timeout_s,
            explorer_url=FILECOIN_NETWORKS[network]["scanner_url"],
        )

    @classmethod
    def create(cls, settings: Settings) -> "SynapseSession":
        """Connect to the configured RPC endpoint and load the signer"""
        private_key = settings.filecoin_private_key
        if not private_key:
            raise ConfigurationError("FILECOIN_PRIVATE_KEY environment variable is not set")
        if not private_key.startswith("0x"):
            private_key = f"0x{private_key}"

        logger.info("Initializing Synapse session...")
        logger.info(f"Using RPC URL: {settings.filecoin_rpc_url}")
        web3 = Web3(Web3.HTTPProvider(settings.filecoin_rpc_url, request_kwargs={"timeout": RPC_TIMEOUT_S}))
        if not web3.is_connected():
            raise ConfigurationError(f"Failed to connect to RPC endpoint {settings.filecoin_rpc_url}")

        chain_id = web3.eth.chain_id
        network = CHAIN_ID_TO_NETWORK.get(chain_id)
        if network is None:
            raise ConfigurationError(f"Unsupported chain ID {chain_id}")
        if network != settings.filecoin_network:
            logger.warning(f"Connected to {network} but FILECOIN_NETWORK is {settings.filecoin_network}")

        try:
            account = Account.from_key(private_key)
        except Exception as e:
            raise ConfigurationError(f"Invalid FILECOIN_PRIVATE_KEY: {e}") from e

        logger.info("✅ Synapse session initialized successfully!")
        logger.info(f"Connected to network: {network}")
        return cls(web3, account, network, settings)

    def get_network(self) -> str:
        return self.network

    def get_warm_storage_address(self) -> str:
        return self.settings.warm_storage_address

    def get_provider_url(self, provider_id: int) -> str:
        if provider_id != self.settings.filecoin_provider_id or not self.settings.filecoin_provider_url:
            raise ConfigurationError(f"No service URL configured for storage provider {provider_id}")
        return self.settings.filecoin_provider_url.rstrip("/")
