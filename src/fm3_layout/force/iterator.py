"""
Force iteration on one level of the multilevel hierarchy.

Each iteration computes spring and repulsive forces, scales them by the
current temperature, damps oscillations, moves every vertex and re-derives
the computation box. The loop ends according to the configured stop
criterion; the threshold criterion is bounded by ITERBOUND iterations.
"""

from __future__ import annotations

import random
import warnings
from typing import Callable, Optional

import numpy as np

from ..geometry import (
    POS_BIG_LIMIT,
    POS_SMALL_LIMIT,
    ComputationBox,
    integer_bound,
    make_positions_integer,
    separate_coincident,
)
from ..graph import LayoutGraph
from ..options import AllowedPositions, FMMMOptions, MaxIterChange, StopCriterion
from ..types import Event, EventType
from .damping import damp_oscillations
from .models import attractive_forces
from .repulsion import RepulsionStrategy, make_repulsion

ITERBOUND = 10000
POSTPROCESSING_ITERATIONS = 10
DEFAULT_AVERAGE_EDGE_LENGTH = 50.0


class ConvergenceWarning(RuntimeWarning):
    """Warning issued when the threshold stop criterion hits the iteration ceiling."""


def max_mult_iter(options: FMMMOptions, level: int, max_level: int, n: int) -> int:
    """
    Iteration bound for ``level`` out of ``max_level`` levels.

    Coarse levels may run up to ``max_iter_factor`` times the fixed number of
    iterations. Graphs with at most 500 vertices run at least 100 iterations.
    """
    fixed = options.fixed_iterations
    extra = (options.max_iter_factor - 1) * fixed
    if options.max_iter_change == MaxIterChange.CONSTANT:
        iterations = fixed
    elif options.max_iter_change == MaxIterChange.LINEARLY_DECREASING:
        if max_level == 0:
            iterations = fixed + extra
        else:
            iterations = fixed + int(level / max_level * extra)
    else:
        if level == max_level:
            iterations = fixed + extra
        elif level == max_level - 1:
            iterations = fixed + int(0.5 * extra)
        elif level == max_level - 2:
            iterations = fixed + int(0.25 * extra)
        else:
            iterations = fixed

    if n <= 500 and iterations < 100:
        return 100
    return iterations


def average_ideal_edge_length(graph: LayoutGraph) -> float:
    """Mean ideal edge length, or 50 for graphs without edges."""
    if graph.m == 0:
        return DEFAULT_AVERAGE_EDGE_LENGTH
    return float(graph.lengths.mean())


class ForceIterator:
    """
    Damped force simulation for the graphs of one connected component.

    The iterator owns the temperature (cool factor), the previous movement
    of every vertex and the repulsion strategy; the computation box is
    returned to the caller after every level.

    Example:
        iterator = ForceIterator(options, random.Random(1))
        box = iterator.run_level(graph, level=0, max_level=0, box=box)
        box = iterator.postprocess(graph, box)
    """

    def __init__(
        self,
        options: FMMMOptions,
        rng: random.Random,
        listener: Optional[Callable[[Event], None]] = None,
        repulsion: Optional[RepulsionStrategy] = None,
    ) -> None:
        self.options = options
        self.rng = rng
        self.listener = listener
        self.repulsion = repulsion if repulsion is not None else make_repulsion(options)
        self.cool_factor = 1.0
        self.level = 0
        self.box: Optional[ComputationBox] = None
        self.average_length = DEFAULT_AVERAGE_EDGE_LENGTH
        self._last_x = np.zeros(0)
        self._last_y = np.zeros(0)
        self.iterations_run = 0

    # -------------------------------------------------------------------------
    # Levels
    # -------------------------------------------------------------------------

    def run_level(
        self,
        graph: LayoutGraph,
        level: int,
        max_level: int,
        box: ComputationBox,
    ) -> ComputationBox:
        """
        Run the force iteration on ``graph`` until the stop criterion holds.

        Returns:
            The computation box around the final positions
        """
        self.box = box
        if graph.n <= 1:
            return box

        opts = self.options
        self.level = level
        self.average_length = average_ideal_edge_length(graph)
        self.repulsion.prepare(box)
        self._last_x = np.zeros(graph.n)
        self._last_y = np.zeros(graph.n)

        bound = max_mult_iter(opts, level, max_level, graph.n)
        criterion = opts.stop_criterion
        threshold = opts.threshold
        average_force = threshold + 1
        iteration = 1

        while True:
            if criterion == StopCriterion.FIXED_ITERATIONS:
                if iteration > bound:
                    break
            elif criterion == StopCriterion.THRESHOLD:
                if average_force < threshold:
                    break
                if iteration > ITERBOUND:
                    warnings.warn(
                        f"Force iteration on level {level} stopped after {ITERBOUND} "
                        f"iterations without reaching threshold {threshold} "
                        f"(average force {average_force:.4g})",
                        ConvergenceWarning,
                        stacklevel=2,
                    )
                    break
            elif iteration > bound or average_force < threshold:
                break
            average_force = self.step(graph, iteration, 0)
            iteration += 1

        assert self.box is not None
        return self.box

    def postprocess(self, graph: LayoutGraph, box: ComputationBox) -> ComputationBox:
        """
        Polish the finest level.

        Runs ten further iterations at a tenth of the temperature, optionally
        resizes the drawing to the ideal average edge length, then runs the
        fine-tuning iterations with the post-processing strengths and
        resizes again.
        """
        self.box = box
        if graph.n <= 1:
            return box

        opts = self.options
        self.average_length = average_ideal_edge_length(graph)
        self.repulsion.prepare(box)
        if self._last_x.shape[0] != graph.n:
            self._last_x = np.zeros(graph.n)
            self._last_y = np.zeros(graph.n)

        for i in range(1, POSTPROCESSING_ITERATIONS + 1):
            self.step(graph, i, 1)

        if opts.resize_drawing:
            self.resize_to_ideal_edge_length(graph)

        for i in range(1, opts.fine_tuning_iterations + 1):
            self.step(graph, i, 2)

        if opts.resize_drawing:
            self.resize_to_ideal_edge_length(graph)

        assert self.box is not None
        return self.box

    # -------------------------------------------------------------------------
    # Single iteration
    # -------------------------------------------------------------------------

    def step(self, graph: LayoutGraph, iteration: int, fine_tuning_step: int) -> float:
        """
        Perform one force iteration and move the vertices.

        Args:
            graph: Graph whose positions are updated in place
            iteration: 1-based iteration number within the current phase
            fine_tuning_step: 0 for the main loop, 1 for post-processing,
                2 for fine tuning

        Returns:
            Average length of the applied displacement vectors
        """
        opts = self.options
        if self.box is None:
            self.box = ComputationBox.from_positions(graph.x, graph.y)
            self.repulsion.prepare(self.box)

        if opts.allowed_positions != AllowedPositions.ALL:
            self._snap_to_integer(graph)
        if np.unique(graph.x + 1j * graph.y).shape[0] < graph.n:
            separate_coincident(graph.x, graph.y, self.rng)

        fax, fay = attractive_forces(graph, opts.force_model)
        frx, fry = self.repulsion.compute(graph.x, graph.y)

        spring, rep = self._strengths(graph.n, fine_tuning_step)
        self._update_cool_factor(iteration, fine_tuning_step)

        scale = self.average_length * self.average_length
        fx = scale * (spring * fax + rep * frx)
        fy = scale * (spring * fay + rep * fry)
        bad = ~(np.isfinite(fx) & np.isfinite(fy))
        fx[bad] = 0.0
        fy[bad] = 0.0

        norm = np.hypot(fx, fy)
        usable = (norm > POS_SMALL_LIMIT) & (norm < POS_BIG_LIMIT)
        radius = self.box.max_radius(iteration)
        factor = np.zeros_like(norm)
        factor[usable] = (
            np.minimum(norm[usable] * self.cool_factor * opts.force_scaling_factor, radius)
            / norm[usable]
        )
        fx = fx * factor
        fy = fy * factor

        if iteration == 1 or self._last_x.shape[0] != graph.n:
            self._last_x, self._last_y = fx.copy(), fy.copy()
        else:
            fx, fy = damp_oscillations(fx, fy, self._last_x, self._last_y)
            self._last_x, self._last_y = fx.copy(), fy.copy()

        graph.x = graph.x + fx
        graph.y = graph.y + fy
        self.box = ComputationBox.from_positions(graph.x, graph.y)
        self.repulsion.prepare(self.box)
        self.iterations_run += 1

        average_force = float(np.hypot(fx, fy).mean())
        if self.listener is not None:
            self.listener(
                {
                    "type": EventType.tick,
                    "alpha": self.cool_factor,
                    "level": self.level,
                    "iteration": iteration,
                    "average_force": average_force,
                }
            )
        return average_force

    def _strengths(self, n: int, fine_tuning_step: int) -> tuple[float, float]:
        opts = self.options
        if fine_tuning_step <= 1:
            return opts.spring_strength, opts.rep_forces_strength
        if opts.adjust_post_rep_strength_dynamically:
            return opts.post_spring_strength, min(0.2, 400.0 / n)
        return opts.post_spring_strength, opts.post_strength_of_rep_forces

    def _update_cool_factor(self, iteration: int, fine_tuning_step: int) -> None:
        opts = self.options
        if not opts.cool_temperature:
            self.cool_factor = 1.0
        elif fine_tuning_step == 0:
            if iteration == 1:
                self.cool_factor = opts.cool_value
            else:
                self.cool_factor *= opts.cool_value

        if fine_tuning_step == 1:
            self.cool_factor /= 10.0
        elif fine_tuning_step == 2:
            if iteration <= opts.fine_tuning_iterations - 5:
                self.cool_factor = opts.fine_tune_scalar
            else:
                self.cool_factor = opts.fine_tune_scalar / 10.0

    def _snap_to_integer(self, graph: LayoutGraph) -> None:
        opts = self.options
        if opts.allowed_positions == AllowedPositions.EXPONENT:
            bound = integer_bound(self.average_length, graph.n, opts.max_int_pos_exponent)
        else:
            bound = integer_bound(self.average_length, graph.n)
        make_positions_integer(graph.x, graph.y, bound)

    # -------------------------------------------------------------------------
    # Resizing
    # -------------------------------------------------------------------------

    def resize_to_ideal_edge_length(self, graph: LayoutGraph) -> None:
        """
        Scale the drawing so the summed edge lengths match the ideal ones.

        The scaling is about the origin and multiplied by the resizing scalar.
        """
        dx, dy = graph.edge_vectors()
        real = float(np.hypot(dx, dy).sum())
        ideal = float(graph.lengths.sum())
        factor = 1.0 if real == 0 else ideal / real
        factor *= self.options.resizing_scalar
        graph.x = graph.x * factor
        graph.y = graph.y * factor
        self.box = ComputationBox.from_positions(graph.x, graph.y)
        self.repulsion.prepare(self.box)


__all__ = [
    "ConvergenceWarning",
    "ForceIterator",
    "ITERBOUND",
    "average_ideal_edge_length",
    "max_mult_iter",
]
