from __future__ import annotations
from typing import Dict, Iterable, Optional
import logging
import os

from dotenv import load_dotenv

from ..exceptions import FilterConstructionError
from ..models.image_filters import ColorControls, Edges, MultiplyBlend

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

COLOR_CONTROLS = ColorControls.name
EDGES = Edges.name
MULTIPLY_BLEND = MultiplyBlend.name


class FilterRepository:
    """
    Builds filters by name.

    ``create`` never raises: an unknown, disabled or mis-configured filter
    comes back as None and the caller skips that step.
    """

    _REGISTRY: Dict[str, type] = {
        COLOR_CONTROLS: ColorControls,
        EDGES: Edges,
        MULTIPLY_BLEND: MultiplyBlend,
    }

    def __init__(self, disabled: Iterable[str] | None = None):
        if disabled is None:
            disabled = os.getenv("DISABLED_FILTERS", "").split(",")
        self.disabled = {name.strip() for name in disabled if name and name.strip()}

    def available(self, name: str) -> bool:
        return name in self._REGISTRY and name not in self.disabled

    def create(self, name: str, **params) -> Optional[object]:
        if name not in self._REGISTRY:
            logger.warning(f"Unknown filter '{name}'")
            return None
        if name in self.disabled:
            logger.debug(f"Filter '{name}' is disabled")
            return None
        try:
            return self._REGISTRY[name](**params)
        except (FilterConstructionError, TypeError) as err:
            logger.warning(f"Could not build filter '{name}': {err}")
            return None
