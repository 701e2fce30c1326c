"""
Visualization System
Draws walls, timing boundaries, waypoints and walkers with matplotlib
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation
from matplotlib.patches import Circle, Wedge
from pathlib import Path
from typing import Optional

from .agent import Etiquette


ETIQUETTE_COLOURS = {
    Etiquette.LEFT_BIAS: 'tab:blue',
    Etiquette.RIGHT_BIAS: 'tab:red',
    Etiquette.NO_BIAS: 'tab:green',
}


class Visualizer:
    """
    Renders a CrowdSim from its read-only draw surface.

    The simulation uses screen-style coordinates (y grows downward), so the
    y axis is inverted.
    """

    def __init__(self, config: dict, environment):
        self.enabled = config.get('enabled', True)
        self.figsize = tuple(config.get('figsize', (15, 5)))
        self.interval = config.get('interval', 20)
        self.frame_path = config.get('frame_path', 'output/frame.png')
        self.show_look_ahead = config.get('show_look_ahead', True)
        self.margin = config.get('margin', 1.0)

        self.environment = environment
        self.fig = None
        self.ax = None

        if self.enabled:
            self.fig, self.ax = plt.subplots(figsize=self.figsize)
            self.setup_plot()

    def setup_plot(self):
        """Initialize plot settings and draw the static environment."""
        min_x, min_y, max_x, max_y = self.environment.bounds()
        self.ax.set_xlim(min_x - self.margin, max_x + self.margin)
        self.ax.set_ylim(max_y + self.margin, min_y - self.margin)
        self.ax.set_aspect('equal')
        self.ax.set_xlabel('X (meters)')
        self.ax.set_ylabel('Y (meters)')
        self.ax.set_title('Pedestrian Etiquette Simulation')
        self.ax.grid(True, alpha=0.3)

        for wall in self.environment.walls:
            (x1, y1), (x2, y2) = wall.endpoints()
            self.ax.plot([x1, x2], [y1, y2], color='black', linewidth=2)

        for boundary in self.environment.timing_boundaries:
            (x1, y1), (x2, y2) = boundary.endpoints()
            self.ax.plot([x1, x2], [y1, y2], color='orange', linestyle='--', linewidth=1)

        for starts in self.environment.start_positions:
            points = np.array(starts)
            self.ax.scatter(points[:, 0], points[:, 1], marker='^', color='grey', s=20)
        for ends in self.environment.end_positions:
            points = np.array(ends)
            self.ax.scatter(points[:, 0], points[:, 1], marker='x', color='grey', s=20)

    def render_frame(self, sim, show: bool = False):
        """
        Render the active walkers of a simulation.

        Args:
            sim: CrowdSim to draw
            show: Whether to display the frame
        """
        if not self.enabled:
            return

        self.ax.clear()
        self.setup_plot()

        for walker in sim.active_walkers:
            colour = ETIQUETTE_COLOURS[walker.etiquette]
            self.ax.add_patch(Circle((walker.x, walker.y), walker.radius,
                                     facecolor=colour, edgecolor='black', alpha=0.7))

            dx = np.cos(walker.heading) * walker.radius * 1.5
            dy = np.sin(walker.heading) * walker.radius * 1.5
            self.ax.plot([walker.x, walker.x + dx], [walker.y, walker.y + dy], color='black', linewidth=1)

            if self.show_look_ahead:
                heading_deg = np.degrees(walker.heading)
                half_fov = np.degrees(walker.behaviour.field_of_view) / 2.0
                self.ax.add_patch(Wedge((walker.x, walker.y), walker.look_ahead,
                                        heading_deg - half_fov, heading_deg + half_fov,
                                        facecolor=colour, alpha=0.05))

        available, active, finished = sim.get_pedestrian_counts()
        self.ax.text(
            0.01, 0.98,
            f"t = {sim.time_elapsed:.2f}s   available/active/finished: {available}/{active}/{finished}",
            transform=self.ax.transAxes,
            va='top',
            fontsize=9
        )

        if show:
            plt.pause(0.001)

    def save_frame(self, path: Optional[str] = None) -> Optional[Path]:
        if not self.enabled:
            return None
        path = Path(path or self.frame_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.fig.savefig(path, dpi=100)
        return path

    def animate(self, sim, dt: float, frames: Optional[int] = None):
        """
        Step and draw the simulation live until it empties or `frames` runs out.

        Returns:
            The FuncAnimation (keep a reference while it plays)
        """
        if not self.enabled:
            return None

        def remaining():
            count = 0
            while (frames is None or count < frames) and (sim.available or sim.active):
                yield count
                count += 1

        def update(_):
            sim.simulate_timestep(dt)
            self.render_frame(sim)
            return []

        animation = FuncAnimation(self.fig, update, frames=remaining, interval=self.interval,
                                  repeat=False, cache_frame_data=False)
        plt.show()
        return animation

    def close(self):
        """Close visualization."""
        if self.fig is not None:
            plt.close(self.fig)
