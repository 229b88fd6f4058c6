"""
Packing of connected component drawings.

After every component has been laid out on its own, each one gets a
bounding rectangle (optionally after searching for the rotation with the
smallest rectangle) and the rectangles are packed into rows with a
best-fit strategy that aims at the requested page ratio. Finally every
component is translated, and possibly turned by 90 degrees, into its slot.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .graph import LayoutGraph
from .options import FMMMOptions, PreSort, TipOver


@dataclass
class Rectangle:
    """
    Bounding rectangle of one component.

    Attributes:
        width: Rectangle width
        height: Rectangle height
        old_x: x of the down-left corner in the component's own coordinates
        old_y: y of the down-left corner in the component's own coordinates
        component: Index of the component
        tipped: True if the component is turned by 90 degrees when exported
        new_x: x of the down-left corner after packing
        new_y: y of the down-left corner after packing
    """

    width: float
    height: float
    old_x: float
    old_y: float
    component: int
    tipped: bool = False
    new_x: float = 0.0
    new_y: float = 0.0

    def tip_over(self) -> None:
        """
        Turn the rectangle by 90 degrees about the origin.

        Matches the point map (x, y) -> (-y, x) applied to the component.
        """
        self.old_x, self.old_y = -self.old_y - self.height, self.old_x
        self.width, self.height = self.height, self.width
        self.tipped = not self.tipped

    def overlaps(self, other: Rectangle) -> bool:
        """True if the packed rectangles share interior points."""
        return (
            self.new_x < other.new_x + other.width
            and other.new_x < self.new_x + self.width
            and self.new_y < other.new_y + other.height
            and other.new_y < self.new_y + self.height
        )


def bounding_rectangle(
    x: np.ndarray,
    y: np.ndarray,
    width: np.ndarray,
    height: np.ndarray,
    min_dist: float,
    component: int,
) -> Rectangle:
    """
    Rectangle around the vertices, padded by half the component distance.

    Every vertex counts with a square of side max(width, height) so that the
    rectangle stays valid when the component is turned.
    """
    boundary = np.maximum(width, height) / 2.0
    x_min = float((x - boundary).min()) - min_dist / 2.0
    x_max = float((x + boundary).max()) + min_dist / 2.0
    y_min = float((y - boundary).min()) - min_dist / 2.0
    y_max = float((y + boundary).max()) + min_dist / 2.0
    return Rectangle(x_max - x_min, y_max - y_min, x_min, y_min, component)


def aspect_ratio_area(width: float, height: float, page_ratio: float) -> float:
    """Area of the smallest rectangle with ratio ``page_ratio`` around width x height."""
    ratio = width / height
    if ratio < page_ratio:
        return width * height * (page_ratio / ratio)
    return width * height * (ratio / page_ratio)


def _area(width: float, height: float, page_ratio: float, single: bool) -> float:
    if single:
        return aspect_ratio_area(width, height, page_ratio)
    return width * height


def rotate_component(
    graph: LayoutGraph,
    component: int,
    steps: int,
    page_ratio: float,
    min_dist: float,
    single: bool,
) -> Rectangle:
    """
    Turn a component drawing to the rotation with the best bounding rectangle.

    Tries ``steps`` rotations about the origin at angles j * (pi/2) / (steps + 1)
    and keeps the one with the smallest area; a lone component is judged by
    its aspect ratio area, including the variant turned by a further 90
    degrees. Afterwards the drawing is turned by 90 degrees when that moves
    its ratio to the same side of 1 as ``page_ratio``. Positions are
    updated in place.
    """
    old_x, old_y = graph.x.copy(), graph.y.copy()
    best = bounding_rectangle(old_x, old_y, graph.width, graph.height, min_dist, component)
    best_area = _area(best.width, best.height, page_ratio, single)
    best_x, best_y = old_x, old_y

    for j in range(1, steps + 1):
        angle = (math.pi / 2.0) * j / (steps + 1)
        sin_j, cos_j = math.sin(angle), math.cos(angle)
        new_x = cos_j * old_x - sin_j * old_y
        new_y = sin_j * old_x + cos_j * old_y
        current = bounding_rectangle(new_x, new_y, graph.width, graph.height, min_dist, component)
        area = _area(current.width, current.height, page_ratio, single)
        turned_area = _area(current.height, current.width, page_ratio, single) if single else area
        if area < best_area:
            best, best_area, best_x, best_y = current, area, new_x, new_y
        elif single and turned_area < best_area:
            best, best_area, best_x, best_y = current, turned_area, new_x, new_y

    ratio = best.width / best.height
    if (page_ratio < 1 and ratio > 1) or (page_ratio >= 1 and ratio < 1):
        best_x, best_y = -best_y, best_x
        best = Rectangle(best.height, best.width, -best.old_y - best.height, best.old_x, component)

    graph.x = np.array(best_x, dtype=float)
    graph.y = np.array(best_y, dtype=float)
    return best


def _presort(rectangles: Sequence[Rectangle], presort: PreSort) -> list[Rectangle]:
    if presort == PreSort.DECREASING_HEIGHT:
        return sorted(rectangles, key=lambda r: -r.height)
    if presort == PreSort.DECREASING_WIDTH:
        return sorted(rectangles, key=lambda r: -r.width)
    return list(rectangles)


def pack_rectangles(
    rectangles: Sequence[Rectangle],
    page_ratio: float = 1.0,
    presort: PreSort = PreSort.DECREASING_HEIGHT,
    tip_over: TipOver = TipOver.NO_GROWING_ROW,
) -> list[Rectangle]:
    """
    Pack rectangles into rows with a best-fit strategy.

    Each rectangle goes to the end of the row, or into a new row on top,
    that gives the packing the smallest aspect ratio area. Depending on
    ``tip_over``, turning a rectangle by 90 degrees is never considered,
    considered only when it does not make its row higher, or always
    considered.

    Sets ``new_x``/``new_y`` (and possibly ``tipped``) on every rectangle.

    Returns:
        The rectangles in packing order
    """
    ordered = _presort(rectangles, presort)
    rows: list[list[Rectangle]] = []
    row_width: list[float] = []
    row_height: list[float] = []
    total_width = 0.0
    total_height = 0.0

    for rect in ordered:
        # (area, tipped, new row, row index)
        best: Optional[tuple[float, int, int, int]] = None
        orientations = [(rect.width, rect.height, 0)]
        if tip_over != TipOver.NONE:
            orientations.append((rect.height, rect.width, 1))

        for w, h, tipped in orientations:
            for k in range(len(rows)):
                if tipped and tip_over == TipOver.NO_GROWING_ROW and h > row_height[k]:
                    continue
                new_w = max(total_width, row_width[k] + w)
                new_h = total_height - row_height[k] + max(row_height[k], h)
                candidate = (aspect_ratio_area(new_w, new_h, page_ratio), tipped, 0, k)
                if best is None or candidate < best:
                    best = candidate
            if tipped and tip_over == TipOver.NO_GROWING_ROW:
                continue
            new_w = max(total_width, w)
            new_h = total_height + h
            candidate = (aspect_ratio_area(new_w, new_h, page_ratio), tipped, 1, len(rows))
            if best is None or candidate < best:
                best = candidate

        assert best is not None
        _, tipped, new_row, k = best
        if tipped:
            rect.tip_over()
        if new_row:
            rows.append([])
            row_width.append(0.0)
            row_height.append(0.0)
            total_height += rect.height
        else:
            total_height += max(0.0, rect.height - row_height[k])
        rows[k].append(rect)
        row_width[k] += rect.width
        row_height[k] = max(row_height[k], rect.height)
        total_width = max(total_width, row_width[k])

    y = 0.0
    for k, row in enumerate(rows):
        x = 0.0
        for rect in row:
            rect.new_x = x
            rect.new_y = y
            x += rect.width
        y += row_height[k]
    return ordered


def pack_components(graphs: Sequence[LayoutGraph], options: FMMMOptions) -> list[Rectangle]:
    """
    Move the component drawings into a common, non-overlapping layout.

    Positions of every graph are updated in place.

    Returns:
        The packed rectangles, indexed by component
    """
    single = len(graphs) == 1
    rectangles = []
    for i, graph in enumerate(graphs):
        if options.steps_for_rotating_components == 0:
            rect = bounding_rectangle(
                graph.x, graph.y, graph.width, graph.height, options.min_dist_cc, i
            )
        else:
            rect = rotate_component(
                graph,
                i,
                options.steps_for_rotating_components,
                options.page_ratio,
                options.min_dist_cc,
                single,
            )
        rectangles.append(rect)

    pack_rectangles(rectangles, options.page_ratio, options.presort, options.tip_over)

    for rect in rectangles:
        graph = graphs[rect.component]
        if rect.tipped:
            graph.x, graph.y = -graph.y, graph.x.copy()
        graph.x = graph.x + (rect.new_x - rect.old_x)
        graph.y = graph.y + (rect.new_y - rect.old_y)
    return rectangles


__all__ = [
    "Rectangle",
    "aspect_ratio_area",
    "bounding_rectangle",
    "pack_components",
    "pack_rectangles",
    "rotate_component",
]
