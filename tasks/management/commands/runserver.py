import logging

from django.conf import settings
from django.core.management.commands.runserver import Command as BaseRunserverCommand

from tasks.db import connect

logger = logging.getLogger(__name__)


class Command(BaseRunserverCommand):
    help = "Connects to the task database, then starts the development server on PORT."

    default_port = str(settings.PORT)

    def handle(self, *args, **options):
        # runs on the main thread of both the reloader and the served process,
        # so a failed connection ends the process before the port is bound
        connect()
        super().handle(*args, **options)

    def inner_run(self, *args, **options):
        logger.info("backend listening on port %s", self.port)
        logger.info("task API available at http://%s:%s/api/tasks", self.addr or "localhost", self.port)
        super().inner_run(*args, **options)
