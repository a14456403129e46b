"""Read-only reports over loan snapshots."""

from kredi.reports.history import TimelineEntry, TimelineEntryType, has_history, loan_timeline
from kredi.reports.portfolio import (
    CashFlowReport,
    ClientSummary,
    DailyFlow,
    DashboardSummary,
    DelinquencyItem,
    DelinquentClient,
    InstallmentLine,
    InstallmentReport,
    ModalityStats,
    ProfitabilitySummary,
    ReportFilter,
    account_balances,
    cash_flow,
    client_summaries,
    dashboard_summary,
    delinquency_report,
    delinquent_clients,
    installment_report,
    modality_summary,
    profitability_summary,
)
from kredi.reports.views import filter_loans, matches_view, status_counts

__all__ = [
    "CashFlowReport",
    "ClientSummary",
    "DailyFlow",
    "DashboardSummary",
    "DelinquencyItem",
    "DelinquentClient",
    "InstallmentLine",
    "InstallmentReport",
    "ModalityStats",
    "ProfitabilitySummary",
    "ReportFilter",
    "TimelineEntry",
    "TimelineEntryType",
    "account_balances",
    "cash_flow",
    "client_summaries",
    "dashboard_summary",
    "delinquency_report",
    "delinquent_clients",
    "filter_loans",
    "has_history",
    "installment_report",
    "loan_timeline",
    "matches_view",
    "modality_summary",
    "profitability_summary",
    "status_counts",
]
