from __future__ import annotations
from dataclasses import dataclass
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_TARGET_SIZE = 768  # Standard input size for many recognition models


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class TargetDimensions:
    """
    Output size required by the downstream model.
    Not validated here: a non-positive side is reported when the final buffer is rendered.
    """
    width: int = DEFAULT_TARGET_SIZE
    height: int = DEFAULT_TARGET_SIZE

    @property
    def area(self) -> int:
        return self.width * self.height

    @classmethod
    def from_env(cls) -> "TargetDimensions":
        return cls(
            width=_env_int("TARGET_WIDTH", DEFAULT_TARGET_SIZE),
            height=_env_int("TARGET_HEIGHT", DEFAULT_TARGET_SIZE),
        )
