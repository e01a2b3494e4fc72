"""
Response shaping for the HTTP API.

Handlers build one canonical payload (storageUrl, contentId, ...). The
frontend still reads the older ipfsUrl/filecoinUrl/pieceCid names, so the
aliases are added here and nowhere else.
"""

from typing import Any, Dict, Optional

from crafture.connections.synapse_session import format_usdfc
from crafture.helpers.filbeam import extract_content_id
from crafture.models.artifacts import GeneratedArtifact, HistoryRow, StepResult, StorageRecord


def error_body(error: str, message: Optional[str] = None, details: Optional[str] = None) -> Dict[str, Any]:
    body = {"error": error}
    if message is not None:
        body["message"] = message
    if details is not None:
        body["details"] = details
    return body


def generation_response(artifact: GeneratedArtifact, processed_images: int,
                        storage: StepResult, saved: StepResult) -> Dict[str, Any]:
    record: Optional[StorageRecord] = storage.value if storage.is_ok else None
    storage_url = record.gateway_url if record else None
    content_id = record.content_id if record else None

    return {
        "success": artifact.success,
        "message": artifact.message,
        "generatedImage": artifact.data_url,
        "processedImages": processed_images,
        "storageUrl": storage_url,
        "contentId": content_id,
        "savedToDatabase": saved.is_ok,
        # legacy
        "filecoinUrl": storage_url,
        "pieceCid": content_id,
        "ipfsUrl": storage_url,
        "ipfsHash": content_id,
    }


def metadata_response(record: StorageRecord) -> Dict[str, Any]:
    return {
        "success": True,
        "contentId": record.content_id,
        "storageUrl": record.gateway_url,
        # legacy
        "pieceCid": record.content_id,
        "ipfsUrl": record.gateway_url,
        "gatewayUrl": record.gateway_url,
    }


def history_item(row: HistoryRow) -> Dict[str, Any]:
    content_id = extract_content_id(row.storage_url)
    created_at = row.created_at.isoformat() if row.created_at else None
    return {
        "id": row.id,
        "walletAddress": row.wallet_address,
        "storageUrl": row.storage_url,
        "contentId": content_id,
        "prompt": row.prompt,
        "createdAt": created_at,
        # legacy
        "filecoinUrl": row.storage_url,
        "gatewayUrl": row.storage_url,
        "ipfsUrl": row.storage_url,
        "pieceCid": content_id,
        "cid": content_id,
    }


def storage_stats_response(balance: int, minimum_balance: int, network: str,
                           storage_service_address: str, total_files: int) -> Dict[str, Any]:
    formatted = format_usdfc(balance)
    return {
        "success": True,
        "balance": {
            "token": formatted,
            "tokenRaw": str(balance),
            # legacy
            "usdfc": formatted,
            "usdfcRaw": str(balance),
        },
        "network": network,
        "storageServiceAddress": storage_service_address,
        "warmStorageAddress": storage_service_address,
        "storage": {
            "totalFiles": total_files,
        },
        "paymentSetup": {
            "hasBalance": balance > 0,
            "sufficientBalance": balance >= minimum_balance,
        },
    }
