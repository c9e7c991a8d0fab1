from django.core.management.base import BaseCommand
from django.db.models import Sum

from feeding.counters import get_global_count
from feeding.models import Visitor


class Command(BaseCommand):
    help = "Show the global feed count and check it against the per-visitor counts"

    def handle(self, *args, **options):
        global_count = get_global_count()
        visitors = Visitor.objects.count()
        visitor_total = Visitor.objects.aggregate(total=Sum("count"))["total"] or 0

        self.stdout.write("Global feeds: {}".format(global_count))
        self.stdout.write("Visitors: {}".format(visitors))
        self.stdout.write("Sum of visitor feeds: {}".format(visitor_total))
        if global_count != visitor_total:
            self.stdout.write(
                self.style.WARNING(
                    "Global count is off by {}, run recount_feeds to fix".format(
                        global_count - visitor_total
                    )
                )
            )
        else:
            self.stdout.write(self.style.SUCCESS("Counts are consistent."))
