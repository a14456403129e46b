"""Shared setup for the Faker-backed demo generators."""

from __future__ import annotations

import random
from abc import ABC
from decimal import Decimal

from faker import Faker

from kredi.money import to_money


class BaseGenerator(ABC):
    """Faker instance plus seeding shared by the demo generators.

    Parameters
    ----------
    seed : int | None
        Seeds both Faker and the ``random`` module so a portfolio can be
        regenerated exactly.
    locale : str
        Faker locale; ``pt_BR`` gives Brazilian names, phones and CEPs.
    """

    def __init__(self, seed: int | None = None, locale: str = "pt_BR") -> None:
        self.fake = Faker(locale)
        if seed is not None:
            self.fake.seed_instance(seed)
            random.seed(seed)

    @staticmethod
    def money(low: int, high: int, step: int = 100) -> Decimal:
        """Random round amount in ``[low, high]``, a multiple of ``step``."""
        return to_money(random.randint(low // step, high // step) * step)
