"""
Exception types raised by the simulator
"""


class ScenarioError(ValueError):
    """Invalid scenario construction: bad indices, degenerate walls, frozen environment."""


class SimulationTimeout(RuntimeError):
    """A full run exceeded the simulated time limit given by the caller."""
