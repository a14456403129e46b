"""Client and account generators."""

from __future__ import annotations

import random
from typing import Iterator

from kredi.generators.base import BaseGenerator
from kredi.models import Account, Address, Client


class ClientGenerator(BaseGenerator):
    """Generate borrowers with Brazilian names, phones and addresses."""

    def generate(self) -> Client:
        """Generate a single client.

        Returns
        -------
        Client
            Generated client.
        """
        return Client(
            client_id=f"client-{self.fake.uuid4()}",
            name=self.fake.name(),
            phone=self.fake.phone_number(),
            email=self.fake.email(),
            address=self._address(),
        )

    def generate_batch(self, count: int) -> Iterator[Client]:
        """Generate multiple clients.

        Parameters
        ----------
        count : int
            Number of clients to generate.

        Yields
        ------
        Client
            Generated clients.
        """
        for _ in range(count):
            yield self.generate()

    def _address(self) -> Address:
        return Address(
            street=self.fake.street_name(),
            number=str(random.randint(1, 9999)),
            neighborhood=self.fake.bairro(),
            city=self.fake.city(),
            state=self.fake.estado_sigla(),
            postal_code=self.fake.postcode(),
            complement=random.choice(["", "", "", f"Apto {random.randint(1, 500)}"]),
        )


class AccountGenerator(BaseGenerator):
    """Generate funding accounts at Brazilian banks."""

    BANKS = ["Nubank", "Itaú", "Bradesco", "Banco do Brasil", "Caixa", "Inter"]

    def generate(self, name: str | None = None) -> Account:
        bank = random.choice(self.BANKS)
        return Account(
            account_id=f"account-{self.fake.uuid4()}",
            name=name or f"Conta {bank}",
            bank=bank,
            initial_balance=self.money(10_000, 100_000, step=500),
        )
