"""
Force-Directed Layout
=====================

ForceAtlas2 with optional Barnes-Hut approximation.

FORCES:
=======
- Repulsion between every node pair: scaling_ratio * (deg1+1)(deg2+1) / d
- Attraction along every edge: weight * d
- Gravity toward the origin: gravity * (deg+1)
- Adaptive global speed from swinging vs. traction

The simulation contains no randomness: the same snapshot and config
always yield the same positions. Nodes without a position get the
deterministic hydration position first.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import math

import numpy as np

from ..ingestion.hydrator import HydratorConfig, initial_position
from ..ingestion.seeds import SeededRandom
from ..observability.logging import get_logger
from .snapshot import GraphSnapshot

logger = get_logger(__name__)

_MAX_TREE_DEPTH = 32
_MIN_REGION_SIZE = 1e-9


@dataclass
class LayoutConfig:
    """Configuration for ForceAtlas2."""
    iterations: int = 500
    gravity: float = 1.0
    scaling_ratio: float = 10.0
    barnes_hut: bool = True
    theta: float = 0.5
    strong_gravity: bool = False
    lin_log: bool = False
    outbound_attraction_distribution: bool = False
    edge_weight_influence: float = 1.0
    jitter_tolerance: float = 1.0

    def __post_init__(self):
        if self.iterations < 0:
            raise ValueError(f"iterations must be non-negative: {self.iterations}")
        if self.theta <= 0:
            raise ValueError(f"theta must be positive: {self.theta}")


# =============================================================================
# BARNES-HUT QUADTREE
# =============================================================================

class _Region:
    """Quadtree cell summarised by its total mass and centre of mass."""

    __slots__ = ("indices", "mass", "cx", "cy", "size", "children")

    def __init__(self, indices: np.ndarray, pos: np.ndarray, mass: np.ndarray, depth: int = 0):
        self.indices = indices
        weights = mass[indices]
        points = pos[indices]
        self.mass = float(weights.sum())
        center = (points * weights[:, None]).sum(axis=0) / self.mass
        self.cx, self.cy = float(center[0]), float(center[1])
        self.size = 2.0 * float(np.sqrt(((points - center) ** 2).sum(axis=1)).max())
        self.children: List[_Region] = []

        if len(indices) > 1 and self.size > _MIN_REGION_SIZE and depth < _MAX_TREE_DEPTH:
            left = points[:, 0] < self.cx
            top = points[:, 1] < self.cy
            for quadrant in (left & top, ~left & top, left & ~top, ~left & ~top):
                if quadrant.any():
                    self.children.append(_Region(indices[quadrant], pos, mass, depth + 1))

    def repulse(self, i: int, x: float, y: float, m: float, pos, mass, k: float, theta: float) -> Tuple[float, float]:
        if not self.children:
            fx = fy = 0.0
            for j in self.indices:
                if j == i:
                    continue
                dx, dy = x - pos[j, 0], y - pos[j, 1]
                dist2 = dx * dx + dy * dy
                if dist2 > 0:
                    factor = k * m * mass[j] / dist2
                    fx += dx * factor
                    fy += dy * factor
            return fx, fy

        dx, dy = x - self.cx, y - self.cy
        dist = math.sqrt(dx * dx + dy * dy)
        if dist * theta > self.size:
            factor = k * m * self.mass / (dist * dist)
            return dx * factor, dy * factor

        fx = fy = 0.0
        for child in self.children:
            cfx, cfy = child.repulse(i, x, y, m, pos, mass, k, theta)
            fx += cfx
            fy += cfy
        return fx, fy


# =============================================================================
# FORCES
# =============================================================================

def _repulsion_exact(pos: np.ndarray, mass: np.ndarray, k: float) -> np.ndarray:
    delta = pos[:, None, :] - pos[None, :, :]
    dist2 = (delta ** 2).sum(axis=-1)
    np.fill_diagonal(dist2, np.inf)
    coincident = dist2 == 0
    dist2[coincident] = np.inf
    factor = k * mass[:, None] * mass[None, :] / dist2
    return (delta * factor[..., None]).sum(axis=1)


def _repulsion_barnes_hut(pos: np.ndarray, mass: np.ndarray, k: float, theta: float) -> np.ndarray:
    root = _Region(np.arange(len(pos)), pos, mass)
    forces = np.zeros_like(pos)
    for i in range(len(pos)):
        forces[i] = root.repulse(i, pos[i, 0], pos[i, 1], mass[i], pos, mass, k, theta)
    return forces


def _gravity(pos: np.ndarray, mass: np.ndarray, config: LayoutConfig) -> np.ndarray:
    if config.strong_gravity:
        factor = config.scaling_ratio * config.gravity * mass
    else:
        dist = np.sqrt((pos ** 2).sum(axis=1))
        factor = np.zeros_like(dist)
        nonzero = dist > 0
        factor[nonzero] = config.gravity * mass[nonzero] / dist[nonzero]
    return -pos * factor[:, None]


def _attraction(
    pos: np.ndarray,
    mass: np.ndarray,
    edges: np.ndarray,
    weights: np.ndarray,
    config: LayoutConfig,
) -> np.ndarray:
    forces = np.zeros_like(pos)
    if len(edges) == 0:
        return forces
    src, dst = edges[:, 0], edges[:, 1]
    delta = pos[src] - pos[dst]
    factor = -weights.copy()
    if config.outbound_attraction_distribution:
        factor = factor * mass.mean() / mass[src]
    if config.lin_log:
        dist = np.sqrt((delta ** 2).sum(axis=1))
        scale = np.ones_like(dist)
        nonzero = dist > 0
        scale[nonzero] = np.log1p(dist[nonzero]) / dist[nonzero]
        factor = factor * scale
    contribution = delta * factor[:, None]
    np.add.at(forces, src, contribution)
    np.add.at(forces, dst, -contribution)
    return forces


# =============================================================================
# SIMULATION
# =============================================================================

def force_atlas2(
    positions: np.ndarray,
    edges: np.ndarray,
    weights: np.ndarray,
    config: Optional[LayoutConfig] = None,
) -> np.ndarray:
    """
    Run ForceAtlas2 on index-based inputs.

    positions: (n, 2) starting coordinates
    edges: (m, 2) integer endpoint indices, self-loops already removed
    weights: (m,) edge weights
    """
    config = config or LayoutConfig()
    pos = np.array(positions, dtype=float)
    n = len(pos)
    if n == 0:
        return pos

    degree = np.zeros(n)
    if len(edges):
        np.add.at(degree, edges[:, 0], 1)
        np.add.at(degree, edges[:, 1], 1)
    mass = degree + 1.0

    weights = np.asarray(weights, dtype=float)
    if config.edge_weight_influence == 0:
        weights = np.ones_like(weights)
    elif config.edge_weight_influence != 1:
        weights = weights ** config.edge_weight_influence

    previous = np.zeros_like(pos)
    speed, speed_efficiency = 1.0, 1.0

    for _ in range(config.iterations):
        if config.barnes_hut:
            forces = _repulsion_barnes_hut(pos, mass, config.scaling_ratio, config.theta)
        else:
            forces = _repulsion_exact(pos, mass, config.scaling_ratio)
        forces += _gravity(pos, mass, config)
        forces += _attraction(pos, mass, edges, weights, config)

        swinging = mass * np.sqrt(((previous - forces) ** 2).sum(axis=1))
        traction = 0.5 * mass * np.sqrt(((previous + forces) ** 2).sum(axis=1))
        total_swinging = float(swinging.sum())
        total_traction = float(traction.sum())

        # Gephi's adaptive speed: tolerate more jitter on larger graphs.
        estimated_jitter = 0.05 * math.sqrt(n)
        min_jitter = math.sqrt(estimated_jitter)
        jitter = config.jitter_tolerance * max(
            min_jitter, min(10.0, estimated_jitter * total_traction / (n * n))
        )
        min_speed_efficiency = 0.05
        if total_traction > 0 and total_swinging / total_traction > 2.0:
            if speed_efficiency > min_speed_efficiency:
                speed_efficiency *= 0.5
            jitter = max(jitter, config.jitter_tolerance)

        if total_swinging > 0:
            target_speed = jitter * speed_efficiency * total_traction / total_swinging
        else:
            target_speed = speed

        if total_swinging > jitter * total_traction:
            if speed_efficiency > min_speed_efficiency:
                speed_efficiency *= 0.7
        elif speed < 1000:
            speed_efficiency *= 1.3

        speed = speed + min(target_speed - speed, 0.5 * speed)

        factor = speed / (1.0 + np.sqrt(speed * swinging))
        pos += forces * factor[:, None]
        previous = forces

    return pos


def run_layout(snapshot: GraphSnapshot, config: Optional[LayoutConfig] = None) -> Dict[str, Tuple[float, float]]:
    """Compute a position for every node in the snapshot."""
    config = config or LayoutConfig()
    keys = snapshot.node_keys
    index = {key: i for i, key in enumerate(keys)}

    rng = SeededRandom()
    hydration = HydratorConfig()
    start = np.zeros((len(keys), 2))
    for i, (key, attributes) in enumerate(snapshot.node_items()):
        x, y = attributes.get("x"), attributes.get("y")
        if x is None or y is None:
            x, y = initial_position(key, rng, hydration)
        start[i] = (x, y)

    edge_list, weight_list = [], []
    for _, source, target, attributes in snapshot.edge_items():
        if source == target:
            continue
        edge_list.append((index[source], index[target]))
        weight_list.append(float(attributes.get("weight", 1)))
    edges = np.array(edge_list, dtype=int).reshape(-1, 2)

    result = force_atlas2(start, edges, np.array(weight_list), config)
    logger.debug("layout_computed", nodes=len(keys), edges=len(edge_list), iterations=config.iterations)
    return {key: (float(result[i, 0]), float(result[i, 1])) for i, key in enumerate(keys)}
