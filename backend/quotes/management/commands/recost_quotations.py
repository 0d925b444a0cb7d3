from datetime import date

from django.core.management.base import BaseCommand, CommandError

from pricing.exceptions import QuoteEngineError
from quotes.models import QuotationHeader
from quotes.services.recompute import recompute_quotation


class Command(BaseCommand):
    help = "Re-run costing for every open (draft / pending_costing) quotation, e.g. after a tariff or FX upload."

    def add_arguments(self, parser):
        parser.add_argument("--quote-id", action="append", dest="quote_ids", default=[],
                            help="Only recost this quote id (repeatable)")
        parser.add_argument("--as-of", type=str, default=None, help="Costing date YYYY-MM-DD (defaults to today)")

    def handle(self, *args, **options):
        as_of = None
        if options.get("as_of"):
            try:
                as_of = date.fromisoformat(options["as_of"])
            except ValueError as e:
                raise CommandError(f"Invalid --as-of: {e}")

        qs = QuotationHeader.objects.filter(quote_status__in=QuotationHeader.EDITABLE_STATUSES)
        if options["quote_ids"]:
            qs = qs.filter(quote_id__in=options["quote_ids"])
        ids = list(qs.order_by("id").values_list("id", "quote_id"))
        if not ids:
            self.stdout.write(self.style.WARNING("No open quotations to recost."))
            return

        failures = 0
        for pk, quote_id in ids:
            try:
                result = recompute_quotation(pk, as_of=as_of)
            except QuoteEngineError as e:
                failures += 1
                self.stdout.write(self.style.ERROR(f"{quote_id}: {e}"))
                continue
            t = result.totals
            self.stdout.write(
                f"{quote_id}: cost {t.total_cost} sale {t.total_sale} "
                f"({t.costed_lines} costed, {t.uncosted_lines} uncosted)"
            )
            for warning in result.warnings:
                self.stdout.write(self.style.WARNING(f"  {warning}"))

        summary = f"Recosted {len(ids) - failures} of {len(ids)} quotations."
        if failures:
            self.stdout.write(self.style.WARNING(summary))
        else:
            self.stdout.write(self.style.SUCCESS(summary))
