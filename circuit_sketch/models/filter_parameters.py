from __future__ import annotations
from dataclasses import dataclass
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_float(key: str, default: str) -> float:
    raw = os.getenv(key, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class FilterParameters:
    """
    Value-object holding the knobs of the normalization filters.

    contrast        1.0 = unchanged, 1.1 = +10 %
    brightness      offset added after contrast, 0.0 = unchanged
    edge_intensity  multiplier on the edge magnitude, 1.0 = full strength
    """
    contrast:       float = 1.1
    brightness:     float = 0.0
    edge_intensity: float = 1.0

    @classmethod
    def from_env(cls) -> "FilterParameters":
        return cls(
            contrast=_env_float("CONTRAST_FACTOR", "1.1"),
            brightness=_env_float("BRIGHTNESS_OFFSET", "0.0"),
            edge_intensity=_env_float("EDGE_INTENSITY", "1.0"),
        )
