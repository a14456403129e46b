"""Loan financial-state engine: balances, schedules, status and mutations."""

from kredi.engine.balance import (
    BalanceBreakdown,
    InstallmentDue,
    amount_due_now,
    balance_breakdown,
    installment_due_info,
    interest_value,
    late_fee,
    next_due_date,
    next_pending_installment,
    outstanding_balance,
)
from kredi.engine.mutations import (
    AccountDirectory,
    ClientDirectory,
    LoanEngine,
    MutationResult,
)
from kredi.engine.schedule import (
    apply_schedule,
    check_schedule,
    compute_amount_to_receive,
    generate_schedule,
    requires_regeneration_confirmation,
    sync_aggregate,
    update_installment,
)
from kredi.engine.status import effective_status, is_fully_paid, is_urgent

__all__ = [
    "AccountDirectory",
    "BalanceBreakdown",
    "ClientDirectory",
    "InstallmentDue",
    "LoanEngine",
    "MutationResult",
    "amount_due_now",
    "apply_schedule",
    "balance_breakdown",
    "check_schedule",
    "compute_amount_to_receive",
    "effective_status",
    "generate_schedule",
    "installment_due_info",
    "interest_value",
    "is_fully_paid",
    "is_urgent",
    "late_fee",
    "next_due_date",
    "next_pending_installment",
    "outstanding_balance",
    "requires_regeneration_confirmation",
    "sync_aggregate",
    "update_installment",
]
