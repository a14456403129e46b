"""Demo data generators backed by Faker."""

from kredi.generators.parties import AccountGenerator, ClientGenerator
from kredi.generators.portfolio import DemoPortfolioGenerator

__all__ = ["AccountGenerator", "ClientGenerator", "DemoPortfolioGenerator"]
