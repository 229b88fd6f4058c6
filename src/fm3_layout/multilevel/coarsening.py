"""
Solar-system coarsening.

A level is partitioned into solar systems: a sun, the planets adjacent to
it, and moons adjacent to one of the planets. Every solar system collapses
into one vertex of the next coarser level. Edges between solar systems
become coarse edges whose length is the path length sun - u - v - sun.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

import numpy as np

from ..graph import LayoutGraph
from ..options import FMMMOptions, GalaxyChoice

MAX_LEVEL = 30
MAX_BAD_LEVELS = 5
EDGE_REDUCTION_RATIO = 0.8


class Role(IntEnum):
    """Role of a vertex inside its solar system."""

    unassigned = 0
    sun = 1
    planet = 2
    moon = 3


@dataclass(eq=False)
class Level:
    """
    One level of the multilevel hierarchy.

    Attributes:
        graph: The graph of this level; ``graph.origin`` is unused here
        mass: Number of level-0 vertices each vertex represents
        sun_of: Index of the coarser-level vertex each vertex collapses into
        role: Role of each vertex in its solar system
        sun_distance: Distance from each vertex to its sun
        lambdas: Per vertex, (lambda, other coarse vertex) for every edge
            that leaves the solar system
    """

    graph: LayoutGraph
    mass: np.ndarray
    sun_of: Optional[np.ndarray] = None
    role: Optional[np.ndarray] = None
    sun_distance: Optional[np.ndarray] = None
    lambdas: list[list[tuple[float, int]]] = field(default_factory=list)


class _CandidateSet:
    """Set of sun candidates with O(1) removal and uniform sampling."""

    def __init__(self, n: int) -> None:
        self.items = list(range(n))
        self.position = list(range(n))

    def __len__(self) -> int:
        return len(self.items)

    def remove(self, v: int) -> None:
        pos = self.position[v]
        if pos < 0:
            return
        last = self.items.pop()
        if last != v:
            self.items[pos] = last
            self.position[last] = pos
        self.position[v] = -1

    def sample(self, rng: random.Random) -> int:
        return self.items[rng.randrange(len(self.items))]


def select_sun(
    candidates: _CandidateSet,
    graph: LayoutGraph,
    mass: np.ndarray,
    choice: GalaxyChoice,
    random_tries: int,
    rng: random.Random,
) -> int:
    """
    Pick the next sun among the candidates.

    With uniform choice a random candidate is taken. Otherwise up to
    ``random_tries`` random candidates are drawn and the one with the lowest
    (or highest) star mass, its own mass plus its neighbours', wins.
    """
    if choice == GalaxyChoice.UNIFORM_PROB:
        return candidates.sample(rng)

    adj = graph.adjacency()
    best = -1
    best_mass = 0.0
    for _ in range(random_tries):
        v = candidates.sample(rng)
        star_mass = float(mass[v]) + sum(float(mass[u]) for u, _ in adj[v])
        if best < 0:
            best, best_mass = v, star_mass
        elif choice == GalaxyChoice.NON_UNIFORM_PROB_LOWER_MASS and star_mass < best_mass:
            best, best_mass = v, star_mass
        elif choice == GalaxyChoice.NON_UNIFORM_PROB_HIGHER_MASS and star_mass > best_mass:
            best, best_mass = v, star_mass
    return best


def partition_into_solar_systems(
    level: Level,
    choice: GalaxyChoice,
    random_tries: int,
    rng: random.Random,
) -> list[int]:
    """
    Assign every vertex of ``level`` a role and a sun.

    Fills ``role``, ``sun_distance`` and, temporarily in ``sun_of``, the
    fine-level index of each vertex's sun.

    Returns:
        The suns in the order they were chosen
    """
    graph = level.graph
    n = graph.n
    adj = graph.adjacency()
    role = np.full(n, Role.unassigned, dtype=np.int64)
    sun = np.full(n, -1, dtype=np.int64)
    distance = np.zeros(n)
    candidates = _CandidateSet(n)
    suns: list[int] = []

    while len(candidates):
        s = select_sun(candidates, graph, level.mass, choice, random_tries, rng)
        suns.append(s)
        role[s] = Role.sun
        sun[s] = s
        candidates.remove(s)
        for p, e in adj[s]:
            role[p] = Role.planet
            sun[p] = s
            distance[p] = graph.lengths[e]
            candidates.remove(p)
        for p, _ in adj[s]:
            for q, _ in adj[p]:
                candidates.remove(q)

    # Remaining vertices are moons of their nearest planet
    for v in range(n):
        if role[v] != Role.unassigned:
            continue
        nearest = -1
        nearest_length = 0.0
        for u, e in adj[v]:
            if role[u] == Role.planet:
                length = float(graph.lengths[e])
                if nearest < 0 or length < nearest_length:
                    nearest, nearest_length = u, length
        assert nearest >= 0, f"vertex {v} is not adjacent to any planet"
        role[v] = Role.moon
        sun[v] = sun[nearest]
        distance[v] = distance[nearest] + nearest_length

    level.role = role
    level.sun_of = sun
    level.sun_distance = distance
    return suns


def collapse(level: Level, suns: list[int]) -> Level:
    """
    Build the next coarser level from a partitioned level.

    Rewrites ``level.sun_of`` to coarse vertex indices and fills
    ``level.lambdas``. Parallel coarse edges are merged by averaging.
    """
    assert level.sun_of is not None and level.sun_distance is not None
    graph = level.graph
    coarse_index = np.full(graph.n, -1, dtype=np.int64)
    coarse_index[np.asarray(suns, dtype=np.int64)] = np.arange(len(suns), dtype=np.int64)
    sun_of = coarse_index[level.sun_of]
    level.sun_of = sun_of

    mass = np.zeros(len(suns))
    np.add.at(mass, sun_of, level.mass)

    lambdas: list[list[tuple[float, int]]] = [[] for _ in range(graph.n)]
    totals: dict[tuple[int, int], list[float]] = {}
    first: dict[tuple[int, int], tuple[int, int]] = {}
    dist = level.sun_distance
    for e, (u, v) in enumerate(zip(graph.sources.tolist(), graph.targets.tolist())):
        su, sv = int(sun_of[u]), int(sun_of[v])
        if su == sv:
            continue
        new_length = float(dist[u] + graph.lengths[e] + dist[v])
        lambdas[u].append((float(dist[u]) / new_length, sv))
        lambdas[v].append((float(dist[v]) / new_length, su))
        key = (min(su, sv), max(su, sv))
        if key in totals:
            totals[key][0] += new_length
            totals[key][1] += 1
        else:
            totals[key] = [new_length, 1]
            first[key] = (su, sv)
    level.lambdas = lambdas

    edges = [first[key] for key in totals]
    lengths = [total / count for total, count in totals.values()]
    sun_array = np.asarray(suns, dtype=np.int64)
    coarse = LayoutGraph.create(
        len(suns),
        edges,
        lengths=lengths,
        width=graph.width[sun_array],
        height=graph.height[sun_array],
        x=graph.x[sun_array],
        y=graph.y[sun_array],
        origin=sun_array,
    )
    return Level(graph=coarse, mass=mass)


def edge_count_is_shrinking(levels: list[Level], bad_levels: int) -> tuple[bool, int]:
    """
    Check that the edge count of the newest level dropped enough.

    Up to MAX_BAD_LEVELS levels may keep more than 80% of the previous
    level's edges.

    Returns:
        (continue coarsening, updated bad level counter)
    """
    if len(levels) < 2:
        return True, bad_levels
    if levels[-1].graph.m <= EDGE_REDUCTION_RATIO * levels[-2].graph.m:
        return True, bad_levels
    if bad_levels < MAX_BAD_LEVELS:
        return True, bad_levels + 1
    return False, bad_levels


def build_hierarchy(graph: LayoutGraph, options: FMMMOptions, rng: random.Random) -> list[Level]:
    """
    Coarsen a connected graph into a list of levels, finest first.

    Coarsening stops when a level has at most ``min_graph_size`` vertices,
    when level MAX_LEVEL is reached or when the edge count stops shrinking.
    With ``single_level`` only the input level is returned.
    """
    levels = [Level(graph=graph, mass=np.ones(graph.n))]
    min_size = graph.n if options.single_level else options.min_graph_size
    bad_levels = 0
    while len(levels) <= MAX_LEVEL and levels[-1].graph.n > min_size:
        proceed, bad_levels = edge_count_is_shrinking(levels, bad_levels)
        if not proceed:
            break
        current = levels[-1]
        suns = partition_into_solar_systems(
            current, options.galaxy_choice, options.random_tries, rng
        )
        levels.append(collapse(current, suns))
    return levels


__all__ = [
    "MAX_LEVEL",
    "Level",
    "Role",
    "build_hierarchy",
    "collapse",
    "partition_into_solar_systems",
    "select_sun",
]
