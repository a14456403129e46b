"""Configuration management for kredi."""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

from kredi.exceptions import ConfigurationError

BRASILIA_TIMEZONE = "America/Sao_Paulo"


@dataclass
class EngineConfig:
    """Calendar and presentation windows used by the engine and reports."""

    timezone: str = BRASILIA_TIMEZONE
    urgent_window_days: int = 3
    upcoming_window_days: int = 30
    receivables_window_days: int = 7
    default_interest_rate: Decimal = Decimal("10")
    default_daily_late_fee: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        for name in ("urgent_window_days", "upcoming_window_days", "receivables_window_days"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be non-negative")


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    topic_prefix: str = "dev.kredi"

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class KrediConfig:
    """Main configuration for kredi."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    seed: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "KrediConfig":
        """Create config from environment variables."""
        import os

        try:
            engine = EngineConfig(
                timezone=os.getenv("KREDI_TIMEZONE", BRASILIA_TIMEZONE),
                urgent_window_days=int(os.getenv("KREDI_URGENT_DAYS", "3")),
                upcoming_window_days=int(os.getenv("KREDI_UPCOMING_DAYS", "30")),
                receivables_window_days=int(os.getenv("KREDI_RECEIVABLES_DAYS", "7")),
                default_interest_rate=Decimal(os.getenv("KREDI_DEFAULT_INTEREST_RATE", "10")),
                default_daily_late_fee=Decimal(os.getenv("KREDI_DEFAULT_LATE_FEE", "1")),
            )
        except (ValueError, ArithmeticError) as exc:
            raise ConfigurationError(f"Invalid engine configuration: {exc}") from exc

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            topic_prefix=os.getenv("TOPIC_PREFIX", "dev.kredi"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        return cls(
            engine=engine,
            kafka=kafka,
            output=output,
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
