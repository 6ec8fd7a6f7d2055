from datetime import datetime
from typing import Optional

from .common import CamelModel


class DocumentOut(CamelModel):
    id: int
    title: str
    group_id: int
    uploader_id: Optional[int] = None
    file_path: str
    uploader_name: Optional[str] = None
    uploader_tg_id: Optional[str] = None
    group_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DocumentInfo(CamelModel):
    id: int
    title: str
    file_name: str
    file_size: int
    file_exists: bool
    uploader_name: Optional[str] = None
    group_name: Optional[str] = None
    created_at: Optional[datetime] = None
    download_url: str
