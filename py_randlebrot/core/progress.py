"""
Per-layer progress counters for long-running parallel generation.

Workers increment in batches (one call per band) and a UI loop polls
``fraction``. Counters are monotonic within a run and reset only at its start.
"""

from __future__ import annotations

import threading
from enum import IntEnum
from typing import Dict

import numpy as np


class LayerId(IntEnum):
    CONTINENTALNESS = 0
    TEMPERATURE = 1
    TECTONIC = 2
    PEAKS_VALLEYS = 3
    EROSION = 4
    HUMIDITY = 5
    RESOURCES = 6

    @property
    def display_name(self) -> str:
        return LAYER_NAMES[self]


LAYER_NAMES: Dict[LayerId, str] = {
    LayerId.CONTINENTALNESS: "Continentalness",
    LayerId.TEMPERATURE: "Temperature",
    LayerId.TECTONIC: "Tectonic",
    LayerId.PEAKS_VALLEYS: "Peaks & Valleys",
    LayerId.EROSION: "Erosion",
    LayerId.HUMIDITY: "Humidity",
    LayerId.RESOURCES: "Resources",
}


class LayerProgress:
    """Thread-safe pixel counters, one per ``LayerId``."""

    def __init__(self, total_pixels: int):
        if total_pixels < 0:
            raise ValueError("total_pixels must be non-negative")
        self._total = int(total_pixels)
        self._counts = np.zeros(len(LayerId), dtype=np.int64)
        self._lock = threading.Lock()

    @property
    def total_pixels(self) -> int:
        return self._total

    def increment(self, layer: LayerId, count: int) -> None:
        with self._lock:
            self._counts[layer] += count

    def get(self, layer: LayerId) -> int:
        with self._lock:
            return int(self._counts[layer])

    def fraction(self, layer: LayerId) -> float:
        """Completed share of ``layer`` in [0, 1]; 0 when there is nothing to do."""
        if self._total == 0:
            return 0.0
        return min(self.get(layer) / self._total, 1.0)

    def overall(self) -> float:
        if self._total == 0:
            return 0.0
        with self._lock:
            done = np.minimum(self._counts, self._total).sum()
        return float(done) / (self._total * len(LayerId))

    def is_complete(self) -> bool:
        return self._total > 0 and all(self.get(layer) >= self._total for layer in LayerId)

    def snapshot(self) -> Dict[str, float]:
        return {layer.display_name: self.fraction(layer) for layer in LayerId}

    def reset(self) -> None:
        with self._lock:
            self._counts[:] = 0
