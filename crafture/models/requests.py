from typing import Any, List, Optional

from pydantic import BaseModel, Field


class GenerateImageRequest(BaseModel):
    """Request model for image generation"""
    prompt: Optional[str] = None
    imageUrls: Optional[List[str]] = Field(default_factory=list)
    walletAddress: Optional[str] = None


class MetadataRequest(BaseModel):
    """Request model for ERC-721 metadata uploads"""
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = Field(None, description="Piece CID, filecoin:// URL or Filbeam gateway URL")
    attributes: Optional[Any] = None
