"""Visualization of trajectories and point clouds."""

from .rerun_visualizer import RerunVisualizer

__all__ = ["RerunVisualizer"]
