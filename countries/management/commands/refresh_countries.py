from django.core.management.base import BaseCommand, CommandError

from countries.exceptions import StorageError, UpstreamUnavailable
from countries.services import refresh_country_data


class Command(BaseCommand):
    help = "Fetch countries and exchange rates, then reconcile the local snapshot."

    def handle(self, *args, **options):
        try:
            result = refresh_country_data()
        except UpstreamUnavailable as e:
            raise CommandError(f"External data source unavailable: {e}") from e
        except StorageError as e:
            raise CommandError(str(e)) from e

        self.stdout.write(self.style.SUCCESS(
            f"Refreshed {result.total} countries "
            f"({result.created} created, {result.updated} updated, {result.skipped} skipped) "
            f"at {result.last_refreshed_at.isoformat()}"
        ))
        if result.image_path is None:
            self.stderr.write("Summary image could not be written.")
