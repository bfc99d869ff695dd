import logging
import time

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError, connections

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Ждет, пока база данных начнет принимать соединения'

    def add_arguments(self, parser):
        parser.add_argument('--retries', type=int, default=settings.DB_MAX_RETRIES)
        parser.add_argument('--interval', type=float, default=settings.DB_RETRY_INTERVAL)
        parser.add_argument('--database', default='default')

    def handle(self, *args, **options):
        connection = connections[options['database']]
        retries = options['retries']

        for attempt in range(1, retries + 1):
            try:
                connection.ensure_connection()
            except DatabaseError as e:
                logger.warning('db connect attempt %d/%d failed: %s', attempt, retries, e)
                if attempt < retries:
                    time.sleep(options['interval'])
                continue

            self.stdout.write(self.style.SUCCESS('db connected'))
            return

        raise CommandError(f'db connect failed after {retries} attempts')
