#!/usr/bin/env python3
"""
Benchmark the FM^3 layout with its repulsive force strategies.

Usage:
    python scripts/benchmark_fmmm.py [--graphs PATTERN] [--methods METHOD,...]

Examples:
    python scripts/benchmark_fmmm.py
    python scripts/benchmark_fmmm.py --graphs "grid_*"
    python scripts/benchmark_fmmm.py --methods exact,nmm --iterations 15
    python scripts/benchmark_fmmm.py --workers 4 --output results.json
"""

from __future__ import annotations

import argparse
import json
import random
import time
from fnmatch import fnmatch
from typing import Any

from fm3_layout import FMMMLayout, layout_quality_summary


def grid_graph(rows: int, cols: int) -> tuple[list[dict], list[dict]]:
    """rows x cols grid."""
    links = []
    for r in range(rows):
        for c in range(cols):
            v = r * cols + c
            if c + 1 < cols:
                links.append({"source": v, "target": v + 1})
            if r + 1 < rows:
                links.append({"source": v, "target": v + cols})
    return [{} for _ in range(rows * cols)], links


def random_tree(n: int, seed: int = 42) -> tuple[list[dict], list[dict]]:
    """Random recursive tree on n nodes."""
    rng = random.Random(seed)
    links = [{"source": rng.randrange(i), "target": i} for i in range(1, n)]
    return [{} for _ in range(n)], links


def random_sparse(n: int, m: int, seed: int = 42) -> tuple[list[dict], list[dict]]:
    """Random graph with n nodes and m links (may be disconnected)."""
    rng = random.Random(seed)
    links = [{"source": rng.randrange(n), "target": rng.randrange(n)} for _ in range(m)]
    return [{} for _ in range(n)], links


def benchmark_graphs() -> dict[str, tuple[list[dict], list[dict]]]:
    return {
        "grid_10x10": grid_graph(10, 10),
        "grid_30x30": grid_graph(30, 30),
        "tree_500": random_tree(500),
        "tree_2000": random_tree(2000),
        "sparse_1000": random_sparse(1000, 1500),
    }


def benchmark_layout(
    nodes: list[dict],
    links: list[dict],
    **options: Any,
) -> dict[str, Any]:
    """
    Benchmark a single FM^3 run.

    Returns:
        Dict with timing and quality info
    """
    # Create fresh node copies to avoid position carryover
    fresh_nodes = [dict(n) for n in nodes]

    start = time.perf_counter()
    layout = FMMMLayout(nodes=fresh_nodes, links=links, **options)
    layout.run()
    elapsed = time.perf_counter() - start

    summary = layout_quality_summary(
        layout.nodes, layout.links, unit_edge_length=layout.unit_edge_length
    )
    return {
        "time_seconds": elapsed,
        "num_nodes": len(nodes),
        "num_edges": len(links),
        "levels": layout.levels_per_component,
        "repulsion_energy": summary["repulsion_energy"],
        "mean_edge_length_ratio": summary["mean_edge_length_ratio"],
    }


def run_benchmarks(
    graph_pattern: str = "*",
    methods: list[str] | None = None,
    iterations: int = 30,
    workers: int = 1,
) -> list[dict]:
    """Run benchmarks on matching graphs."""
    all_methods = ["exact", "grid_approximation", "nmm"]
    if methods:
        selected = []
        for name in methods:
            if name in all_methods:
                selected.append(name)
            else:
                print(f"Warning: Unknown method '{name}', skipping")
        all_methods = selected

    graphs = {
        name: graph
        for name, graph in benchmark_graphs().items()
        if fnmatch(name, graph_pattern)
    }
    if not graphs:
        print(f"No graphs matching pattern '{graph_pattern}'")
        return []

    options: dict[str, Any] = {
        "random_seed": 42,
        "max_workers": workers,
        "fixed_iterations": iterations,
    }

    results = []

    print(f"\nBenchmarking {len(all_methods)} repulsion methods on {len(graphs)} graphs")
    print("=" * 80)

    for name, (nodes, links) in graphs.items():
        print(f"\n{name}: {len(nodes)} nodes, {len(links)} edges")
        print("-" * 60)

        for method in all_methods:
            # Exact repulsion is O(n^2) per iteration
            if len(nodes) > 1000 and method == "exact":
                print(f"  {method:20s}: SKIPPED (O(n^2) too slow)")
                continue

            result = benchmark_layout(nodes, links, repulsive_forces=method, **options)
            print(
                f"  {method:20s}: {result['time_seconds']:.4f}s  "
                f"energy {result['repulsion_energy']:.1f}  levels {max(result['levels'])}"
            )
            results.append({"graph": name, "method": method, **result})

    # Summary
    print("\n" + "=" * 80)
    print("SUMMARY (times in seconds)")
    print("=" * 80)

    print(f"{'Graph':<25s}", end="")
    for method in all_methods:
        print(f"{method[:18]:>20s}", end="")
    print()
    print("-" * (25 + 20 * len(all_methods)))

    for name in graphs:
        print(f"{name:<25s}", end="")
        for method in all_methods:
            matching = [r for r in results if r["graph"] == name and r["method"] == method]
            if matching:
                print(f"{matching[0]['time_seconds']:>20.4f}", end="")
            else:
                print(f"{'--':>20s}", end="")
        print()

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark FM^3 repulsion methods")
    parser.add_argument("--graphs", default="*", help="Graph name pattern (e.g., 'grid_*')")
    parser.add_argument("--methods", help="Comma-separated methods (e.g., 'exact,nmm')")
    parser.add_argument("--iterations", type=int, default=30, help="Fixed iterations per level")
    parser.add_argument("--workers", type=int, default=1, help="Threads for components")
    parser.add_argument("--output", help="Output JSON file for results")

    args = parser.parse_args()

    methods = args.methods.split(",") if args.methods else None

    results = run_benchmarks(
        graph_pattern=args.graphs,
        methods=methods,
        iterations=args.iterations,
        workers=args.workers,
    )

    if args.output and results:
        with open(args.output, "w") as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()
