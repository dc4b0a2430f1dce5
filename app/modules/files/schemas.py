"""
Pydantic schemas for stored documents
"""
from pydantic import BaseModel, Field


class StoredDocument(BaseModel):
    """Objeto subido al storage"""
    key: str = Field(..., description="Object key dentro del bucket")
    size: int
    content_type: str
