from django.core.management.base import BaseCommand

from feeding.counters import recount_global


class Command(BaseCommand):
    help = "Reset the global feed count to the sum of all visitor counts"

    def handle(self, *args, **options):
        old_total, new_total = recount_global()
        if old_total == new_total:
            self.stdout.write("Global count already correct: {}".format(new_total))
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    "Global count changed from {} to {}".format(old_total, new_total)
                )
            )
