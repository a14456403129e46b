"""Console sink for inspecting an exported loan book."""

import sys
from typing import Any, TextIO

from kredi.sinks.serialization import to_json

RULE = "=" * 60


class ConsoleSink:
    """Print loan-book batches as JSON, one record per line (or block).

    Parameters
    ----------
    pretty : bool
        Indent each record.
    max_records : int | None
        Records shown per batch; the rest are only counted.
    stream : TextIO | None
        Where to print; stdout when omitted.
    """

    def __init__(
        self,
        pretty: bool = True,
        max_records: int | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.pretty = pretty
        self.max_records = max_records
        self.stream = stream
        self._counts: dict[str, int] = {}

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        self._print(f"\n{RULE}\nEntity: {entity_type} ({len(records)} records)\n{RULE}")

        shown = records if self.max_records is None else records[: self.max_records]
        for record in shown:
            self._print(to_json(record, pretty=self.pretty))

        hidden = len(records) - len(shown)
        if hidden > 0:
            self._print(f"... and {hidden} more records")

        self._counts[entity_type] = self._counts.get(entity_type, 0) + len(records)

    def close(self) -> None:
        """Print how many records each entity batch carried."""
        lines = [f"\n{RULE}", "Console Sink Summary", RULE]
        lines += [f"  {entity_type}: {count} records" for entity_type, count in self._counts.items()]
        self._print("\n".join(lines))

    def _print(self, text: str) -> None:
        print(text, file=self.stream or sys.stdout)
