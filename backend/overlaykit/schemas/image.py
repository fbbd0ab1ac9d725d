from datetime import datetime

from overlaykit.schemas.base import CamelModel


class ImageAssetOut(CamelModel):
    id: str
    url: str
    filename: str
    original_name: str
    user_id: str
    created_at: datetime
