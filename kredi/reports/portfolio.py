"""Portfolio reports: delinquency, installments, profitability and cash flow.

All reports are read-only over loan snapshots and evaluated at a
``reference_date`` (today in Brasília by default). Archived loans are left
out everywhere.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Mapping

from kredi.dates import DateLike, days_overdue, parse_date, parse_optional_date, resolve_reference
from kredi.engine.balance import (
    balance_breakdown,
    installment_due_info,
    next_due_date,
    next_pending_installment,
    outstanding_balance,
)
from kredi.engine.status import effective_status, is_fully_paid
from kredi.models import (
    Account,
    Direction,
    Installment,
    Loan,
    LoanModality,
    LoanStatus,
    TransactionIntent,
)
from kredi.money import ZERO, to_money

UNKNOWN_NAME = "Desconhecido"


@dataclass(frozen=True)
class ReportFilter:
    """Client and inclusive date-range filter shared by the reports."""

    client_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_date", parse_optional_date(self.start_date))
        object.__setattr__(self, "end_date", parse_optional_date(self.end_date))

    def matches(self, client_id: str, day: DateLike) -> bool:
        if self.client_id and client_id != self.client_id:
            return False
        when = parse_date(day)
        if self.start_date and when < self.start_date:
            return False
        if self.end_date and when > self.end_date:
            return False
        return True


NO_FILTER = ReportFilter()


def _active(loans: Iterable[Loan]) -> list[Loan]:
    return [loan for loan in loans if not loan.is_archived]


# Delinquency


@dataclass(frozen=True)
class DelinquencyItem:
    """One overdue obligation: a whole loan or a single installment."""

    loan_id: str
    client_id: str
    client_name: str
    description: str
    due_date: date
    days_overdue: int
    original_amount: Decimal
    late_fee: Decimal
    total_to_receive: Decimal
    installment_number: int | None = None

    @property
    def item_id(self) -> str:
        if self.installment_number is None:
            return self.loan_id
        return f"{self.loan_id}-{self.installment_number}"


@dataclass(frozen=True)
class DelinquentClient:
    client_id: str
    name: str
    count: int
    total: Decimal


def delinquency_report(
    loans: Iterable[Loan],
    client_names: Mapping[str, str] | None = None,
    reference_date: DateLike | None = None,
    filters: ReportFilter = NO_FILTER,
) -> list[DelinquencyItem]:
    """Overdue items, largest amount owed first.

    Installment loans contribute one item per overdue pending installment;
    other loans contribute themselves once past their due date. The filter
    date range applies to the item due date.
    """
    reference = resolve_reference(reference_date)
    names = client_names or {}
    items = []

    for loan in _active(loans):
        if loan.status == LoanStatus.PAID:
            continue
        name = names.get(loan.client_id, UNKNOWN_NAME)

        if loan.is_installment and loan.installments_details:
            for installment in loan.installments_details:
                if installment.is_paid or installment.due_date >= reference:
                    continue
                due = installment_due_info(installment, loan, reference)
                items.append(
                    DelinquencyItem(
                        loan_id=loan.loan_id,
                        client_id=loan.client_id,
                        client_name=name,
                        description=f"Parcela {installment.installment_number}",
                        due_date=installment.due_date,
                        days_overdue=due.days_overdue,
                        original_amount=installment.amount,
                        late_fee=due.late_fee,
                        total_to_receive=due.total_due,
                        installment_number=installment.installment_number,
                    )
                )
        elif loan.due_date < reference:
            breakdown = balance_breakdown(loan, reference)
            items.append(
                DelinquencyItem(
                    loan_id=loan.loan_id,
                    client_id=loan.client_id,
                    client_name=name,
                    description=loan.modality.label,
                    due_date=loan.due_date,
                    days_overdue=days_overdue(loan.due_date, reference),
                    original_amount=breakdown.principal_and_interest,
                    late_fee=breakdown.late_fee,
                    total_to_receive=breakdown.total,
                )
            )

    items = [item for item in items if filters.matches(item.client_id, item.due_date)]
    return sorted(items, key=lambda item: item.total_to_receive, reverse=True)


def delinquent_clients(items: Iterable[DelinquencyItem]) -> list[DelinquentClient]:
    """Aggregate delinquency items per client, largest total first."""
    counts: dict[str, int] = defaultdict(int)
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    names: dict[str, str] = {}
    for item in items:
        counts[item.client_id] += 1
        totals[item.client_id] += item.total_to_receive
        names[item.client_id] = item.client_name

    clients = [
        DelinquentClient(client_id=cid, name=names[cid], count=counts[cid], total=totals[cid])
        for cid in counts
    ]
    return sorted(clients, key=lambda c: c.total, reverse=True)


# Installments


@dataclass(frozen=True)
class InstallmentLine:
    loan_id: str
    client_id: str
    client_name: str
    installment: Installment
    days_overdue: int = 0


@dataclass
class InstallmentReport:
    overdue: list[InstallmentLine] = field(default_factory=list)
    upcoming: list[InstallmentLine] = field(default_factory=list)
    paid: list[InstallmentLine] = field(default_factory=list)

    @property
    def total_overdue(self) -> Decimal:
        return sum((line.installment.amount for line in self.overdue), ZERO)

    @property
    def total_upcoming(self) -> Decimal:
        return sum((line.installment.amount for line in self.upcoming), ZERO)

    @property
    def total_paid(self) -> Decimal:
        return sum(
            (
                line.installment.amount_paid
                if line.installment.amount_paid is not None
                else line.installment.amount
                for line in self.paid
            ),
            ZERO,
        )


def installment_report(
    loans: Iterable[Loan],
    client_names: Mapping[str, str] | None = None,
    reference_date: DateLike | None = None,
    filters: ReportFilter = NO_FILTER,
    window_days: int = 30,
    period: bool = False,
) -> InstallmentReport:
    """Overdue, upcoming and paid installments across installment loans.

    Upcoming installments fall within ``window_days`` of the reference date,
    or anywhere in the filter's date range when ``period`` is true.
    """
    reference = resolve_reference(reference_date)
    horizon = reference + timedelta(days=window_days)
    names = client_names or {}
    report = InstallmentReport()

    for loan in _active(loans):
        if not loan.is_installment:
            continue
        name = names.get(loan.client_id, UNKNOWN_NAME)
        for installment in loan.installments_details:
            if not filters.matches(loan.client_id, installment.due_date):
                continue
            if installment.is_paid:
                report.paid.append(InstallmentLine(loan.loan_id, loan.client_id, name, installment))
            elif installment.due_date < reference:
                report.overdue.append(
                    InstallmentLine(
                        loan.loan_id,
                        loan.client_id,
                        name,
                        installment,
                        days_overdue(installment.due_date, reference),
                    )
                )
            elif period or installment.due_date <= horizon:
                report.upcoming.append(InstallmentLine(loan.loan_id, loan.client_id, name, installment))

    report.overdue.sort(key=lambda line: line.installment.due_date)
    report.upcoming.sort(key=lambda line: line.installment.due_date)
    report.paid.sort(key=lambda line: line.installment.payment_date or date.min, reverse=True)
    return report


# Profitability and per-client


@dataclass(frozen=True)
class ProfitabilitySummary:
    total_capital_lent: Decimal
    total_capital_returned: Decimal
    net_profit: Decimal
    profitability: Decimal  # Percent of capital lent
    total_loans: int
    paid_loans_count: int


def _received(loan: Loan) -> Decimal:
    if loan.modality == LoanModality.MONTHLY_INTEREST:
        return sum((p.amount_paid for p in loan.interest_payments_history), ZERO)
    if loan.is_installment:
        return sum(
            (
                i.amount_paid if i.amount_paid is not None else i.amount
                for i in loan.installments_details
                if i.is_paid
            ),
            ZERO,
        )
    return ZERO


def _returned(loan: Loan) -> Decimal:
    """Total collected on a settled loan."""
    if loan.modality == LoanModality.MONTHLY_INTEREST:
        # Settlement pays principal plus the last period, after any rollovers
        return loan.amount_borrowed + loan.amount_to_receive + _received(loan)
    if loan.is_installment:
        return _received(loan)
    return loan.amount_to_receive


def profitability_summary(
    loans: Iterable[Loan],
    filters: ReportFilter = NO_FILTER,
) -> ProfitabilitySummary:
    """Capital lent against capital returned by settled loans.

    The date range applies to the origination date.
    """
    selected = [
        loan for loan in _active(loans) if filters.matches(loan.client_id, loan.origination_date)
    ]
    paid = [loan for loan in selected if is_fully_paid(loan)]

    lent = sum((loan.amount_borrowed for loan in selected), ZERO)
    returned = sum((_returned(loan) for loan in paid), ZERO)
    profit = returned - sum((loan.amount_borrowed for loan in paid), ZERO)
    rate = to_money(profit / lent * 100) if lent > 0 else ZERO

    return ProfitabilitySummary(
        total_capital_lent=lent,
        total_capital_returned=returned,
        net_profit=profit,
        profitability=rate,
        total_loans=len(selected),
        paid_loans_count=len(paid),
    )


@dataclass(frozen=True)
class ClientSummary:
    client_id: str
    client_name: str
    total_borrowed: Decimal
    total_paid: Decimal
    total_outstanding: Decimal
    loan_count: int


def client_summaries(
    loans: Iterable[Loan],
    client_names: Mapping[str, str],
    reference_date: DateLike | None = None,
    filters: ReportFilter = NO_FILTER,
) -> list[ClientSummary]:
    """Per-client totals, largest outstanding balance first.

    Clients without loans in range are omitted.
    """
    reference = resolve_reference(reference_date)
    by_client: dict[str, list[Loan]] = defaultdict(list)
    for loan in _active(loans):
        if filters.matches(loan.client_id, loan.origination_date):
            by_client[loan.client_id].append(loan)

    summaries = []
    for client_id, name in client_names.items():
        client_loans = by_client.get(client_id)
        if not client_loans:
            continue
        summaries.append(
            ClientSummary(
                client_id=client_id,
                client_name=name,
                total_borrowed=sum((loan.amount_borrowed for loan in client_loans), ZERO),
                total_paid=sum(
                    (_returned(loan) for loan in client_loans if is_fully_paid(loan)), ZERO
                ),
                total_outstanding=sum(
                    (outstanding_balance(loan, reference) for loan in client_loans), ZERO
                ),
                loan_count=len(client_loans),
            )
        )
    return sorted(summaries, key=lambda s: s.total_outstanding, reverse=True)


# Modality summary


@dataclass(frozen=True)
class ModalityStats:
    modality: LoanModality
    count: int
    total_outstanding: Decimal
    overdue_count: int
    overdue_amount: Decimal
    total_received: Decimal


def modality_summary(
    loans: Iterable[Loan],
    reference_date: DateLike | None = None,
    filters: ReportFilter = NO_FILTER,
) -> dict[LoanModality, ModalityStats]:
    """Open-loan statistics per modality.

    Received amounts are interest payments for monthly-interest loans and
    paid installments for installment loans.
    """
    reference = resolve_reference(reference_date)
    grouped: dict[LoanModality, list[Loan]] = {modality: [] for modality in LoanModality}
    for loan in _active(loans):
        if is_fully_paid(loan) or not filters.matches(loan.client_id, loan.origination_date):
            continue
        grouped[loan.modality].append(loan)

    summary = {}
    for modality, group in grouped.items():
        overdue = [loan for loan in group if effective_status(loan, reference) == LoanStatus.OVERDUE]
        summary[modality] = ModalityStats(
            modality=modality,
            count=len(group),
            total_outstanding=sum((outstanding_balance(loan, reference) for loan in group), ZERO),
            overdue_count=len(overdue),
            overdue_amount=sum((outstanding_balance(loan, reference) for loan in overdue), ZERO),
            total_received=sum((_received(loan) for loan in group), ZERO),
        )
    return summary


# Cash flow and accounts


@dataclass
class DailyFlow:
    day: date
    transactions: list[TransactionIntent] = field(default_factory=list)
    credit: Decimal = ZERO
    debit: Decimal = ZERO

    @property
    def net_change(self) -> Decimal:
        return self.credit - self.debit


@dataclass
class CashFlowReport:
    days: list[DailyFlow]
    total_credit: Decimal
    total_debit: Decimal

    @property
    def net_total(self) -> Decimal:
        return self.total_credit - self.total_debit


def cash_flow(
    transactions: Iterable[TransactionIntent],
    account_id: str | None = None,
) -> CashFlowReport:
    """Credits and debits grouped by day, newest day first."""
    selected = [t for t in transactions if account_id is None or t.account_id == account_id]

    days: dict[date, DailyFlow] = {}
    for transaction in sorted(selected, key=lambda t: t.date, reverse=True):
        flow = days.setdefault(transaction.date, DailyFlow(day=transaction.date))
        flow.transactions.append(transaction)
        if transaction.direction == Direction.CREDIT:
            flow.credit += transaction.amount
        else:
            flow.debit += transaction.amount

    return CashFlowReport(
        days=list(days.values()),
        total_credit=sum((flow.credit for flow in days.values()), ZERO),
        total_debit=sum((flow.debit for flow in days.values()), ZERO),
    )


def account_balances(
    accounts: Iterable[Account],
    transactions: Iterable[TransactionIntent],
) -> dict[str, Decimal]:
    """Initial balance plus credits minus debits, per account."""
    balances = {account.account_id: account.initial_balance for account in accounts}
    for transaction in transactions:
        if transaction.account_id in balances:
            balances[transaction.account_id] += transaction.signed_amount
    return balances


@dataclass(frozen=True)
class DashboardSummary:
    open_loans_count: int
    pending_count: int
    overdue_count: int
    total_capital: Decimal
    receivables_next_days: Decimal
    total_receivables: Decimal
    account_balances: dict[str, Decimal]


def dashboard_summary(
    loans: Iterable[Loan],
    accounts: Iterable[Account],
    transactions: Iterable[TransactionIntent],
    reference_date: DateLike | None = None,
    window_days: int = 7,
) -> DashboardSummary:
    """Headline figures for the dashboard.

    Receivables due within ``window_days`` count the next pending installment
    of installment loans and ``amount_to_receive`` of other loans.
    """
    reference = resolve_reference(reference_date)
    horizon = reference + timedelta(days=window_days)
    open_loans = [loan for loan in _active(loans) if not is_fully_paid(loan)]

    pending = overdue = 0
    receivables = ZERO
    for loan in open_loans:
        if effective_status(loan, reference) == LoanStatus.OVERDUE:
            overdue += 1
        else:
            pending += 1

        if reference <= next_due_date(loan) <= horizon:
            if loan.is_installment:
                installment = next_pending_installment(loan)
                receivables += installment.amount if installment else ZERO
            else:
                receivables += loan.amount_to_receive

    balances = account_balances(accounts, transactions)
    return DashboardSummary(
        open_loans_count=len(open_loans),
        pending_count=pending,
        overdue_count=overdue,
        total_capital=sum(balances.values(), ZERO),
        receivables_next_days=receivables,
        total_receivables=sum((loan.amount_to_receive for loan in open_loans), ZERO),
        account_balances=balances,
    )
