from .models import Metadata


def set_last_refreshed(timestamp):
    """Records the timestamp of the last successful refresh cycle."""
    value = timestamp.isoformat() if hasattr(timestamp, "isoformat") else str(timestamp)
    Metadata.objects.update_or_create(
        key=Metadata.LAST_REFRESHED_AT,
        defaults={"value": value},
    )
    return value


def get_last_refreshed():
    return (
        Metadata.objects.filter(key=Metadata.LAST_REFRESHED_AT)
        .values_list("value", flat=True)
        .first()
    )
