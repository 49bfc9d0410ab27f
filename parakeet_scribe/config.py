"""Engine configuration."""

from dataclasses import dataclass

from .agreement import TIMESTAMP_TOLERANCE, TOKEN_CONFIRMATIONS_NEEDED

SAMPLE_RATE = 16000


@dataclass(frozen=True)
class EngineConfig:
    """Tuning knobs for a reconciliation engine."""

    sample_rate: int = SAMPLE_RATE
    """Sample rate of the audio buffers (Hz)."""

    poll_interval: float = 0.1
    """Sleep after every tick, once the decode has returned (seconds)."""

    min_new_seconds: float = 1.0
    """A tick is skipped unless strictly more new audio than this has arrived."""

    confirmations_needed: int = TOKEN_CONFIRMATIONS_NEEDED
    """Agreeing words held back before the rest of a common prefix is confirmed."""

    timestamp_tolerance: float = TIMESTAMP_TOLERANCE
    """Maximum start time difference for two words to agree (seconds)."""

    decode_timeout: float | None = 30.0
    """Upper bound on one speech engine call, or None to wait forever."""

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {self.poll_interval}")
        if self.min_new_seconds < 0:
            raise ValueError(f"min_new_seconds must be >= 0, got {self.min_new_seconds}")
        if self.confirmations_needed < 1:
            raise ValueError(
                f"confirmations_needed must be >= 1, got {self.confirmations_needed}"
            )
        if self.timestamp_tolerance <= 0:
            raise ValueError(
                f"timestamp_tolerance must be positive, got {self.timestamp_tolerance}"
            )
        if self.decode_timeout is not None and self.decode_timeout <= 0:
            raise ValueError(
                f"decode_timeout must be positive or None, got {self.decode_timeout}"
            )

    @property
    def min_new_samples(self) -> float:
        return self.min_new_seconds * self.sample_rate


DEFAULT_CONFIG = EngineConfig()
