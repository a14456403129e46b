"""Loan list views and text search."""

from typing import Iterable, Mapping

from kredi.dates import DateLike, resolve_reference
from kredi.engine.status import effective_status, is_fully_paid
from kredi.models import Loan, LoanStatus, LoanView

UNKNOWN_NAME = "Desconhecido"


def matches_view(loan: Loan, view: LoanView | str, reference_date: DateLike | None = None) -> bool:
    """Whether ``loan`` belongs in ``view``.

    Archived loans only appear in the archived view, and every loan in the
    archived view matches regardless of status.
    """
    view = LoanView(view)
    if view == LoanView.ARCHIVED:
        return loan.is_archived
    if loan.is_archived:
        return False

    paid = is_fully_paid(loan)
    if view == LoanView.OPEN:
        return not paid
    if view == LoanView.PAID:
        return paid
    return not paid and effective_status(loan, reference_date).value == view.value


def filter_loans(
    loans: Iterable[Loan],
    view: LoanView | str = LoanView.OPEN,
    query: str = "",
    client_names: Mapping[str, str] | None = None,
    reference_date: DateLike | None = None,
) -> list[Loan]:
    """Loans in ``view`` matching ``query``, ordered by due date.

    ``query`` is a case-insensitive substring of the client name or loan id.
    """
    reference = resolve_reference(reference_date)
    names = client_names or {}
    needle = query.strip().lower()

    selected = []
    for loan in loans:
        if not matches_view(loan, view, reference):
            continue
        if needle:
            name = names.get(loan.client_id, UNKNOWN_NAME).lower()
            if needle not in name and needle not in loan.loan_id.lower():
                continue
        selected.append(loan)

    return sorted(selected, key=lambda loan: loan.due_date)


def status_counts(loans: Iterable[Loan], reference_date: DateLike | None = None) -> dict[LoanStatus, int]:
    """Count non-archived loans per effective status."""
    reference = resolve_reference(reference_date)
    counts = {status: 0 for status in LoanStatus}
    for loan in loans:
        if not loan.is_archived:
            counts[effective_status(loan, reference)] += 1
    return counts
