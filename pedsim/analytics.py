"""
Analytics
Travel-time samples, trimmed statistics and summary reports
"""

import numpy as np
from collections import defaultdict
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple


class TimingSample(NamedTuple):
    """Time taken between two timing boundaries by one walker."""

    duration: float
    group: int
    completion_time: float


def parse_results(samples: Sequence, trim: int = 0) -> Tuple[float, float, float]:
    """
    Reduce raw timing samples to summary statistics.

    Walkers at the very start and end of a run meet fewer other walkers, so
    `trim` samples are dropped from each temporal end first.

    Args:
        samples: Sequence of (duration, group, completion_time) in completion order
        trim: Number of samples to drop from each end

    Returns:
        (total travel time, mean travel time, standard deviation)
    """
    if trim < 0:
        raise ValueError("trim must be non-negative")
    if len(samples) <= 2 * trim:
        raise ValueError(f"Cannot trim {trim} samples from each end of {len(samples)} samples")

    durations = np.array([s[0] for s in samples[trim:len(samples) - trim]], dtype=float)
    total = float(durations.sum())
    mean = total / len(durations)
    std = float(np.sqrt(np.mean((durations - mean) ** 2)))
    return total, mean, std


class TravelTimeReport:
    """
    Summary of a full run, built from the output of CrowdSim.simulate_full.
    """

    def __init__(
        self,
        elapsed: float,
        finished: int,
        samples: Sequence,
        trim: int = 0,
        target: Optional[float] = None,
        tolerance: Optional[float] = None
    ):
        self.elapsed = elapsed
        self.finished = finished
        self.samples: List[TimingSample] = [TimingSample(*s) for s in samples]
        self.trim = trim
        self.target = target
        self.tolerance = tolerance

        self.total, self.mean, self.std = parse_results(self.samples, trim)

    @classmethod
    def from_results(cls, results: Tuple, trim: int = 0, **kwargs) -> 'TravelTimeReport':
        elapsed, finished, samples = results
        return cls(elapsed, finished, samples, trim=trim, **kwargs)

    def group_means(self) -> Dict[int, float]:
        """Mean untrimmed travel time per start/end group."""
        by_group = defaultdict(list)
        for sample in self.samples:
            by_group[sample.group].append(sample.duration)
        return {group: float(np.mean(durations)) for group, durations in sorted(by_group.items())}

    def within_target(self) -> Optional[bool]:
        if self.target is None or self.tolerance is None:
            return None
        return abs(self.mean - self.target) <= self.tolerance

    def summary(self) -> str:
        """
        Generate text summary of the run.

        Returns:
            Formatted summary string
        """
        report = []
        report.append("=" * 60)
        report.append("TRAVEL TIME SUMMARY REPORT")
        report.append("=" * 60)
        report.append("")

        report.append("OVERALL STATISTICS:")
        report.append(f"  Finished Pedestrians: {self.finished}")
        report.append(f"  Timing Samples: {len(self.samples)} ({self.trim} trimmed from each end)")
        report.append(f"  Simulation Time: {self.elapsed / 3600.0:.2f} hours")
        report.append(f"  Total Pedestrian Time: {self.total / 3600.0:.2f} man-hours")
        report.append("")

        report.append("TRAVEL TIME:")
        report.append(f"  Average: {self.mean:.2f} ± {self.std:.2f}s")
        for group, mean in self.group_means().items():
            report.append(f"  Group {group}: {mean:.2f}s")
        report.append("")

        verdict = self.within_target()
        if verdict is not None:
            report.append("CALIBRATION:")
            report.append(f"  Target: {self.target:.2f} ± {self.tolerance:.2f}s")
            report.append(f"  Within Target: {'yes' if verdict else 'no'}")
            report.append("")

        report.append("=" * 60)

        return "\n".join(report)
