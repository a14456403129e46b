"""In-memory loan book."""

from kredi.store.loan_book import LoanBook

__all__ = ["LoanBook"]
