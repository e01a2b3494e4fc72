from functools import lru_cache

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

from crafture.config import DEFAULT_TABLE_NAME


@lru_cache(maxsize=None)
def history_model(table_name: str = DEFAULT_TABLE_NAME):
    """Mapped history class for one table name, each on its own metadata"""
    Base = declarative_base()

    class GenerationHistory(Base):
        __tablename__ = table_name

        id = Column(Integer, primary_key=True, autoincrement=True)
        wallet_address = Column(String, nullable=False, index=True)
        # Holds the Filbeam gateway URL; the column name is kept for backward compatibility
        ipfs_url = Column(String, nullable=False)
        prompt = Column(String, nullable=False)
        created_at = Column(DateTime(timezone=True), nullable=False, index=True)

        def __repr__(self):
            return f"<GenerationHistory {self.id} {self.wallet_address}>"

    return GenerationHistory
