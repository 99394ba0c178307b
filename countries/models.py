from django.db import models


def normalize_name(name):
    """Case-insensitive identity of a country name, Unicode-aware."""
    return name.casefold()


class Country(models.Model):
    """Stores the reconciled snapshot of a single country."""
    name = models.CharField(max_length=255)
    # unique lookup key; always normalize_name(name)
    name_key = models.CharField(max_length=255, unique=True, editable=False)
    capital = models.CharField(max_length=255, null=True, blank=True)
    region = models.CharField(max_length=100, null=True, blank=True)
    population = models.BigIntegerField()

    currency_code = models.CharField(max_length=10, null=True, blank=True)
    exchange_rate = models.FloatField(null=True, blank=True)
    # derived; only present when exchange_rate is present and non-zero
    estimated_gdp = models.FloatField(null=True, blank=True, db_index=True)

    flag_url = models.URLField(max_length=500, null=True, blank=True)
    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name_plural = "countries"

    def save(self, *args, **kwargs):
        self.name_key = normalize_name(self.name)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "name" in update_fields:
            kwargs["update_fields"] = set(update_fields) | {"name_key"}
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Metadata(models.Model):
    """Key/value facts about the snapshot, one row per key."""
    LAST_REFRESHED_AT = "last_refreshed_at"

    key = models.CharField(max_length=50, unique=True)
    value = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        verbose_name_plural = "metadata"

    def __str__(self):
        return f"{self.key}={self.value}"
