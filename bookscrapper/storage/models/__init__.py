from .website_model import ScrapperWebsite
from .queue_model import MAX_KEY_LENGTH, QueueItem, QueueStatus
from .metadata_model import ScrapperMetadata, ScrapperMetadataStatus

__all__ = [
    "ScrapperWebsite",
    "QueueItem",
    "QueueStatus",
    "MAX_KEY_LENGTH",
    "ScrapperMetadata",
    "ScrapperMetadataStatus",
]
