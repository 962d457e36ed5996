from enum import Enum

from tortoise import fields, models

from bookscrapper.records import ResourceKind


class QueueStatus(str, Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    ANALYZED = "ANALYZED"
    ERROR = "ERROR"


MAX_KEY_LENGTH = 2048


class QueueItem(models.Model):
    """
    Crawl frontier entry. (website, key) is unique so re-discovery is a no-op.
    """
    website = fields.ForeignKeyField(
        "models.ScrapperWebsite",
        related_name="queue_items",
        on_delete=fields.CASCADE,
    )
    key = fields.CharField(max_length=MAX_KEY_LENGTH)
    kind = fields.CharEnumField(ResourceKind, max_length=32, default=ResourceKind.URL)
    priority = fields.IntField(default=0)
    status = fields.CharEnumField(QueueStatus, max_length=16, default=QueueStatus.NEW)
    attempts = fields.IntField(default=0)
    last_error = fields.CharField(max_length=512, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "scrapper_queue"
        unique_together = (("website", "key"),)
        indexes = (("website", "status", "priority"),)

    def __str__(self):
        return f"{self.key} [{self.status.value}, priority={self.priority}]"
