from django.core.management.base import BaseCommand, CommandError
from django.db.models import Count
from django.utils import timezone

from caja.models import CashCut, Debt, Deposit


def find_violations() -> list[str]:
    """Return one line per row that breaks a ledger invariant."""
    problems = []
    for d in Debt.objects.order_by('id').iterator():
        if d.covered_amount < 0 or d.covered_amount > d.amount:
            problems.append(f"debt {d.id}: covered {d.covered_amount} outside 0..{d.amount}")
        if d.is_paid != (d.covered_amount == d.amount):
            problems.append(f"debt {d.id}: is_paid={d.is_paid} but covered {d.covered_amount} of {d.amount}")
    for dep in Deposit.objects.order_by('id').iterator():
        if dep.applied_amount < 0 or dep.credit_remaining < 0:
            problems.append(f"deposit {dep.id}: negative balance")
        if dep.applied_amount + dep.credit_remaining != dep.amount:
            problems.append(
                f"deposit {dep.id}: applied {dep.applied_amount} + credit {dep.credit_remaining} != {dep.amount}"
            )
    dupes = (
        CashCut.objects.filter(resolved=False)
        .values('patient_id').annotate(n=Count('id')).filter(n__gt=1)
    )
    for row in dupes:
        problems.append(f"patient {row['patient_id']}: {row['n']} pending cuts")
    return problems


class Command(BaseCommand):
    help = "Check debt, deposit and cash-cut rows against the ledger invariants."

    def handle(self, *args, **options):
        now = timezone.now()
        problems = find_violations()
        for line in problems:
            self.stderr.write(line)
        if problems:
            raise CommandError(f"{len(problems)} ledger invariant violation(s) at {now}")
        self.stdout.write(self.style.SUCCESS(f"Ledger consistent at {now}"))
