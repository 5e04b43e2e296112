#!/usr/bin/env python3
"""Demo script for monocular visual odometry with timing diagnostics.

Usage:
    uv run python examples/vo_demo.py --config examples/config.yaml
"""

import argparse
import logging
from pathlib import Path

import numpy as np

from monovo import MonocularVO, RerunVisualizer, StepStatus, VideoReader, VOConfig
from monovo.frontend.visual_odometry import open_frame_source


def main() -> None:
    """Run the monocular VO demo."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("examples/config.yaml"),
        help="Pipeline configuration YAML",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Override max_steps from the config",
    )
    parser.add_argument(
        "--no-viz",
        action="store_true",
        help="Disable the rerun viewer",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    print("Initializing monocular VO pipeline...")
    config = VOConfig.from_yaml(args.config)
    if args.max_steps is not None:
        config.max_steps = args.max_steps
    if args.no_viz:
        config.visualize = False
    if config.video_path is None:
        parser.error(f"video_path is not set in {args.config}")
    source = open_frame_source(config.video_path)
    vo = MonocularVO.from_config(config, source=source)
    visualizer = RerunVisualizer("monovo") if config.visualize else None

    print(
        f"Pool size {config.pool_size}, min matches {config.min_matches}, "
        f"ratio {config.ratio_threshold}"
    )
    print()

    # Column headers
    print(
        f"{'Step':>5} {'Frame':>6} {'Status':^13} {'Init':>5} {'Match':>5} "
        f"{'Used':>4} {'Inlr':>5} {'Pts':>5} {'Map':>7} | "
        f"{'Resolve':>8} {'Pose':>6} {'Tri':>6} {'Total':>7} | "
        f"{'Position'}"
    )
    print("-" * 120)

    status_counts = {status: 0 for status in StepStatus}
    timing_totals = {"resolve": 0.0, "pose": 0.0, "tri": 0.0, "total": 0.0}

    try:
        for result in vo.iter_steps(max_steps=config.max_steps):
            status_counts[result.status] += 1

            t = result.timing
            timing_totals["resolve"] += t.resolve_ms
            timing_totals["pose"] += t.pose_ms
            timing_totals["tri"] += t.triangulation_ms
            timing_totals["total"] += t.total_ms

            if visualizer is not None and result.is_accepted:
                visualizer.log_step(result, vo.get_map())

            should_print = (result.step_id % 10 == 0) or result.status in (
                StepStatus.DEGRADED,
                StepStatus.FAILED,
            )
            if should_print:
                pos = result.position
                print(
                    f"{result.step_id:5d} {result.frame.index:6d} {result.status.value:^13} "
                    f"{result.initial_match_count:5d} {result.num_matches:5d} "
                    f"{result.consumed:4d} {result.pose_inliers:5d} "
                    f"{result.num_points:5d} {vo.get_map().num_points:7d} | "
                    f"{t.resolve_ms:6.1f}ms {t.pose_ms:4.1f}ms {t.triangulation_ms:4.1f}ms "
                    f"{t.total_ms:5.1f}ms | "
                    f"[{pos[0]:7.2f}, {pos[1]:7.2f}, {pos[2]:7.2f}]"
                )
    except KeyboardInterrupt:
        print()
        print("Interrupted, stopping early.")
    finally:
        if isinstance(source, VideoReader):
            source.release()

    # Final statistics
    n_steps = max(vo.num_steps, 1)
    sparse_map = vo.get_map()
    print()
    print("=" * 80)
    print("SUMMARY")
    print("=" * 80)
    print(f"Steps processed:   {vo.num_steps}")
    for status, count in status_counts.items():
        print(f"  {status.value:<13}  {count}")
    print(f"Trajectory points: {len(sparse_map)}")
    print(f"Point batches:     {sparse_map.num_batches}")
    print(f"Map points:        {sparse_map.num_points}")
    print()
    print("Average timing per step:")
    print(f"  Resolve:   {timing_totals['resolve']/n_steps:6.1f} ms")
    print(f"  Pose:      {timing_totals['pose']/n_steps:6.1f} ms")
    print(f"  Triangul.: {timing_totals['tri']/n_steps:6.1f} ms")
    print(f"  Total:     {timing_totals['total']/n_steps:6.1f} ms")
    print()

    trajectory = sparse_map.trajectory
    distance = float(np.sum(np.linalg.norm(np.diff(trajectory, axis=0), axis=1)))
    print(f"Final position (x, z): [{trajectory[-1][0]:.2f}, {trajectory[-1][1]:.2f}]")
    print(f"Path length (up to scale): {distance:.2f}")

    if visualizer is not None:
        visualizer.log_map_points(sparse_map.get_all_positions())
        print()
        print("Done! Check Rerun viewer.")


if __name__ == "__main__":
    main()
