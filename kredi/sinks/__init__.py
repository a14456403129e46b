"""Output sinks for exporting the loan book."""

from kredi.sinks.console import ConsoleSink
from kredi.sinks.json_file import JsonFileSink
from kredi.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
