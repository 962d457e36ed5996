from tortoise import fields, models


class ScrapperWebsite(models.Model):
    """
    Remote website shared by queue items and metadata rows.
    """
    url = fields.CharField(max_length=512, unique=True)
    hostname = fields.CharField(max_length=255)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "scrapper_website"
        indexes = (("hostname",),)

    def __str__(self):
        return self.url
