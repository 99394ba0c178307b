from django.conf import settings
from django.core.management.commands.runserver import Command as RunserverCommand


class Command(RunserverCommand):
    """``runserver`` listening on ``settings.PORT`` unless an address is given."""

    @property
    def default_port(self):
        return str(settings.PORT)
