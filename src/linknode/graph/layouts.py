"""Batch layout preview.

Several candidate layouts are computed in parallel on a fixed worker
pool, each against the same read-only networkx snapshot. The caller
gets every finished candidate back and adopts at most one of them.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum

import networkx as nx
import numpy as np

from linknode.errors import UnknownLayoutError
from linknode.graph.world import Point

logger = logging.getLogger(__name__)


class LayoutAlgorithm(str, Enum):
    """Whole-graph layouts available for preview."""

    SPRING = "spring"
    CIRCULAR = "circular"
    SHELL = "shell"
    SPECTRAL = "spectral"
    KAMADA_KAWAI = "kamada_kawai"
    RANDOM = "random"

    @classmethod
    def parse(cls, name: str) -> "LayoutAlgorithm":
        try:
            return cls(name)
        except ValueError as e:
            raise UnknownLayoutError(f"Unknown layout algorithm {name!r}") from e


@dataclass
class LayoutCandidate:
    """One worker's proposed world positions."""

    algorithm: LayoutAlgorithm
    positions: dict[str, Point] = field(default_factory=dict)
    duration_ms: float = 0.0
    repaired: int = 0  # NaN/inf coordinates replaced


def compute_layout(
    algorithm: LayoutAlgorithm,
    graph: nx.Graph,
    initial: dict[str, Point],
    center: Point,
    scale: float,
    seed: int | None = None,
    iterations: int = 50,
) -> LayoutCandidate:
    """Compute a single candidate layout.

    Args:
        algorithm: which networkx layout to run
        graph: snapshot to lay out (not modified)
        initial: current positions, used to seed iterative layouts
        center: world-space center of the result
        scale: world-space radius of the result
        seed: RNG seed for stochastic layouts
        iterations: iteration budget for force-directed layouts
    """
    start = time.perf_counter()
    if graph.number_of_nodes() == 0:
        return LayoutCandidate(algorithm=algorithm)

    if algorithm == LayoutAlgorithm.SPRING:
        pos_init = {n: initial[n] for n in graph if n in initial} or None
        raw = nx.spring_layout(
            graph, pos=pos_init, iterations=iterations, seed=seed,
            center=center, scale=scale, weight="weight",
        )
    elif algorithm == LayoutAlgorithm.CIRCULAR:
        raw = nx.circular_layout(graph, center=center, scale=scale)
    elif algorithm == LayoutAlgorithm.SHELL:
        shells = _shells_by_degree(graph)
        raw = nx.shell_layout(graph, nlist=shells, center=center, scale=scale)
    elif algorithm == LayoutAlgorithm.SPECTRAL:
        if graph.number_of_nodes() < 3:
            raw = nx.circular_layout(graph, center=center, scale=scale)
        else:
            raw = nx.spectral_layout(graph, center=center, scale=scale)
    elif algorithm == LayoutAlgorithm.KAMADA_KAWAI:
        raw = nx.kamada_kawai_layout(graph, center=center, scale=scale)
    else:
        raw = nx.random_layout(graph, center=None, seed=seed)
        raw = {
            n: (center[0] + (p[0] - 0.5) * 2 * scale, center[1] + (p[1] - 0.5) * 2 * scale)
            for n, p in raw.items()
        }

    positions, repaired = repair_positions(raw, center, scale, seed)

    return LayoutCandidate(
        algorithm=algorithm,
        positions=positions,
        duration_ms=(time.perf_counter() - start) * 1000,
        repaired=repaired,
    )


def repair_positions(
    raw: dict, center: Point, scale: float, seed: int | None = None
) -> tuple[dict[str, Point], int]:
    """Convert layout output to plain tuples, scattering NaN/inf points.

    Degenerate graphs can make some layouts emit non-finite coordinates;
    those nodes get a random position within ``scale`` of the center.

    Returns:
        (positions, number of repaired nodes)
    """
    nodes = list(raw)
    coords = np.array([raw[n] for n in nodes], dtype=float).reshape(len(nodes), 2)
    bad = ~np.isfinite(coords).all(axis=1)
    repaired = int(bad.sum())
    if repaired:
        rng = np.random.default_rng(seed)
        coords[bad] = np.asarray(center) + rng.uniform(-scale, scale, size=(repaired, 2))
    return {n: (float(x), float(y)) for n, (x, y) in zip(nodes, coords)}, repaired


def _shells_by_degree(graph: nx.Graph) -> list[list[str]]:
    """Concentric shells: highest-degree nodes innermost."""
    by_degree: dict[int, list[str]] = {}
    for node, degree in graph.degree():
        by_degree.setdefault(degree, []).append(node)
    return [sorted(by_degree[d]) for d in sorted(by_degree, reverse=True)]


class LayoutPreviewer:
    """Fans candidate layouts out to a worker pool and joins them."""

    def __init__(self, workers: int = 4, iterations: int = 50, seed: int | None = None) -> None:
        self.workers = max(1, workers)
        self.iterations = iterations
        self.seed = seed

    def preview(
        self,
        graph: nx.Graph,
        initial: dict[str, Point],
        algorithms: list[LayoutAlgorithm],
        center: Point = (0.5, 0.5),
        scale: float = 0.5,
    ) -> list[LayoutCandidate]:
        """Compute every requested layout and wait for all of them.

        Candidates come back in the order the algorithms were requested;
        a candidate whose worker raised is dropped with a warning.
        """
        if not algorithms:
            return []

        results: dict[int, LayoutCandidate] = {}
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {
                executor.submit(
                    compute_layout, algorithm, graph, dict(initial),
                    center, scale, self.seed, self.iterations,
                ): idx
                for idx, algorithm in enumerate(algorithms)
            }

            for future in as_completed(futures):
                idx = futures[future]
                try:
                    results[idx] = future.result()
                except Exception as e:
                    logger.warning(f"Layout {algorithms[idx].value} failed: {e}")

        candidates = [results[i] for i in sorted(results)]
        logger.info(
            f"Previewed {len(candidates)}/{len(algorithms)} layouts "
            f"for {graph.number_of_nodes()} nodes"
        )
        return candidates
