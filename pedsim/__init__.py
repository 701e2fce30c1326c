"""
Pedestrian Etiquette Simulator
Micro-scale crowd simulation for comparing keep-left, keep-right and unbiased walking
"""

__version__ = "1.0.0"
__author__ = "Crowd Simulation Team"

from .errors import ScenarioError, SimulationTimeout
from .geometry import Wall, distance_and_normal, wrap_angle, bearing
from .environment import Environment
from .agent import Etiquette, Walker, WalkerBehaviour
from .analytics import TimingSample, TravelTimeReport, parse_results
from .simulator import CrowdSim
from .scenarios import SCENARIOS, build_scenario, run_rate_sweep, compare_etiquettes

__all__ = [
    'ScenarioError',
    'SimulationTimeout',
    'Wall',
    'distance_and_normal',
    'wrap_angle',
    'bearing',
    'Environment',
    'Etiquette',
    'Walker',
    'WalkerBehaviour',
    'TimingSample',
    'TravelTimeReport',
    'parse_results',
    'CrowdSim',
    'SCENARIOS',
    'build_scenario',
    'run_rate_sweep',
    'compare_etiquettes'
]
