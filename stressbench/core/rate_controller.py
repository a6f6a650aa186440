"""Target request rate as a function of elapsed run time."""

import math
from typing import List, Optional, Tuple

from .models import RampUpConfig


class RateController:
    """
    Computes the instantaneous target QPS for a run.

    Without ramp-up the target is constant. With ramp-up the rate climbs
    from start_qps to the target either linearly or in discrete steps and
    stays at the target once the ramp duration has elapsed.
    """

    def __init__(self, target_qps: float, ramp_up: Optional[RampUpConfig] = None):
        self.target_qps = float(target_qps)
        self.ramp_up = ramp_up if ramp_up is not None and ramp_up.enabled else None
        self._step_size = (
            self.ramp_up.resolved_step_size(self.target_qps)
            if self.ramp_up is not None and self.ramp_up.mode == "step"
            else None
        )

    @property
    def start_qps(self) -> float:
        """Rate at elapsed time zero."""
        if self.ramp_up is None:
            return self.target_qps
        return self.ramp_up.start_qps

    @property
    def step_size(self) -> Optional[float]:
        return self._step_size

    def target_qps_at(self, elapsed: float) -> float:
        """Target rate after `elapsed` seconds of active run time."""
        ramp = self.ramp_up
        if ramp is None or elapsed >= ramp.duration:
            return self.target_qps

        elapsed = max(0.0, elapsed)
        if ramp.mode == "linear":
            qps = ramp.start_qps + (self.target_qps - ramp.start_qps) * (elapsed / ramp.duration)
            return min(self.target_qps, max(ramp.start_qps, qps))

        steps = math.floor(elapsed / ramp.step_interval)
        return min(self.target_qps, ramp.start_qps + steps * self._step_size)

    def preview(self, total_duration: float, max_points: int = 50) -> List[Tuple[float, float]]:
        """
        Sample the planned rate curve for display before a run.

        Args:
            total_duration: Seconds to cover, ramp-up included
            max_points: Upper bound on the number of intervals sampled

        Returns:
            List of (elapsed_seconds, target_qps) pairs, both ends included
        """
        if total_duration <= 0:
            return [(0.0, self.target_qps_at(0.0))]

        point_count = max(1, min(max_points, int(math.ceil(total_duration))))
        interval = total_duration / point_count
        return [
            (round(i * interval, 3), self.target_qps_at(i * interval))
            for i in range(point_count + 1)
        ]
