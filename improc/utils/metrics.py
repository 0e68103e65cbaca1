"""Error metrics and timing helpers."""

from time import perf_counter
from typing import Callable, Dict

from skimage.metrics import mean_squared_error

from improc.exceptions import PreconditionError
from improc.image.buffer import PixelBuffer


def mse(a: PixelBuffer, b: PixelBuffer) -> float:
    """Mean squared error between two buffers, measured in the float domain."""
    if a.shape != b.shape:
        raise PreconditionError(f"Cannot compare buffers of shape {a.shape} and {b.shape}")
    return float(mean_squared_error(a.as_f32_array(), b.as_f32_array()))


def time_one(func: Callable[[], object]) -> float:
    """Seconds taken by a single call."""
    start = perf_counter()
    func()
    return perf_counter() - start


def time_many(func: Callable[[], object], iterations: int) -> float:
    """Mean seconds per call over several calls."""
    if iterations <= 0:
        raise ValueError("iterations must be positive")
    start = perf_counter()
    for _ in range(iterations):
        func()
    return (perf_counter() - start) / iterations


class PerformanceMetrics:
    """Track performance metrics."""

    def __init__(self):
        self.start_times = {}
        self.durations = {}

    def start_timer(self, name: str):
        """Start timing an operation."""
        self.start_times[name] = perf_counter()

    def stop_timer(self, name: str) -> float:
        """Stop timing and return duration in milliseconds."""
        if name not in self.start_times:
            return 0.0
        duration = (perf_counter() - self.start_times.pop(name)) * 1000
        self.durations[name] = duration
        return duration

    def get_summary(self) -> Dict[str, float]:
        """Get summary of all timings."""
        return self.durations.copy()
