import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from crafture.errors import PersistenceError, ValidationError
from crafture.models.artifacts import HistoryRow
from crafture.config import DEFAULT_TABLE_NAME
from crafture.models.history import history_model

logger = logging.getLogger("stores.history_store")

HISTORY_LIMIT = 100


class HistoryStore:
    """Append-only record of generations, keyed by wallet address"""

    def __init__(self, session_factory: Optional[sessionmaker], table_name: str = DEFAULT_TABLE_NAME):
        self._session_factory = session_factory
        self.model = history_model(table_name)

    @property
    def is_configured(self) -> bool:
        return self._session_factory is not None

    def _session(self):
        if not self._session_factory:
            raise PersistenceError("Database is not configured", details="DATABASE_URL is not set")
        return self._session_factory()

    def save(self, wallet_address: str, storage_url: str, prompt: str) -> HistoryRow:
        if not wallet_address:
            raise ValidationError("Wallet address is required")
        if not storage_url:
            raise ValidationError("Storage URL is required")
        if not prompt:
            raise ValidationError("Prompt is required")

        logger.info(f"Saving generation for {wallet_address} to {self.model.__tablename__}")
        session = self._session()
        try:
            row = self.model(
                wallet_address=wallet_address,
                ipfs_url=storage_url,
                prompt=prompt,
                created_at=datetime.now(timezone.utc),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.info(f"Saved history row {row.id}")
            return HistoryRow.from_model(row)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database insert failed: {e}")
            raise PersistenceError(f"Failed to save to database: {e}", details=str(e)) from e
        finally:
            session.close()

    def query_by_wallet(self, wallet_address: str) -> List[HistoryRow]:
        """Newest first, capped at HISTORY_LIMIT rows"""
        session = self._session()
        try:
            rows = (
                session.query(self.model)
                .filter(self.model.wallet_address == wallet_address)
                .order_by(self.model.created_at.desc(), self.model.id.desc())
                .limit(HISTORY_LIMIT)
                .all()
            )
            return [HistoryRow.from_model(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Database select failed: {e}")
            raise PersistenceError(f"Failed to fetch history: {e}", details=str(e)) from e
        finally:
            session.close()

    def count(self) -> int:
        session = self._session()
        try:
            return session.query(func.count(self.model.id)).scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Database count failed: {e}")
            raise PersistenceError(f"Failed to count history rows: {e}", details=str(e)) from e
        finally:
            session.close()
