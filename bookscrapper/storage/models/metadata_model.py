from enum import Enum

from tortoise import fields, models

from bookscrapper.records import ResourceKind


class ScrapperMetadataStatus(str, Enum):
    NEW = "NEW"
    PROCESSED = "PROCESSED"
    ERROR = "ERROR"


class ScrapperMetadata(models.Model):
    """
    One row per scraped remote item, checked before re-importing it.
    """
    website = fields.ForeignKeyField(
        "models.ScrapperWebsite",
        related_name="metadata",
        on_delete=fields.CASCADE,
    )
    remote_id = fields.CharField(max_length=2048)
    kind = fields.CharEnumField(ResourceKind, max_length=32)
    status = fields.CharEnumField(
        ScrapperMetadataStatus, max_length=16, default=ScrapperMetadataStatus.NEW
    )
    content = fields.JSONField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "scrapper_metadata"
        unique_together = (("website", "remote_id"),)
        indexes = (("website", "kind", "status"),)
