"""Rerun-based visualization of the monocular VO map."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import rerun as rr
import rerun.blueprint as rrb

if TYPE_CHECKING:
    from ..frontend.sparse_map import SparseMap
    from ..frontend.visual_odometry import VOStep


class RerunVisualizer:
    """Rerun viewer for trajectory and sparse point cloud.

    Entity hierarchy:
        camera/
            image       - Current accepted frame
            matches     - Correspondences with the reference frame
        map/
            trajectory  - Top-down (x, z) trajectory line
            current     - Latest trajectory sample
        world/
            camera      - Current camera position
            points      - Accumulated triangulated points
    """

    def __init__(self, app_name: str = "monovo", spawn: bool = True) -> None:
        """Initialize Rerun visualization.

        Args:
            app_name: Name for the Rerun application window
            spawn: If True, automatically spawn the Rerun viewer
        """
        rr.init(app_name, spawn=spawn)
        rr.log("world", rr.ViewCoordinates.RDF, static=True)
        self._setup_layout()

    def _setup_layout(self) -> None:
        blueprint = rrb.Blueprint(
            rrb.Horizontal(
                contents=[
                    rrb.Vertical(
                        contents=[
                            rrb.Spatial2DView(name="Frame", origin="camera"),
                            rrb.Spatial2DView(name="Map", origin="map"),
                        ]
                    ),
                    rrb.Spatial3DView(name="Point Cloud", origin="world"),
                ]
            )
        )
        rr.send_blueprint(blueprint)

    def log_step(self, vo_step: VOStep, sparse_map: SparseMap) -> None:
        """Log one pipeline step: frame, trajectory and point cloud.

        Args:
            vo_step: Output of MonocularVO.step
            sparse_map: Map accumulated so far
        """
        rr.set_time("step", sequence=vo_step.step_id)

        image = vo_step.frame.image
        if image.ndim == 3:
            rr.log("camera/image", rr.Image(image, color_model="BGR"))
        else:
            rr.log("camera/image", rr.Image(image))
        self.log_matches(vo_step.reference_points, vo_step.current_points)
        self.log_trajectory(sparse_map.trajectory)
        self.log_camera_position(vo_step.position)
        self.log_map_points(sparse_map.get_all_positions())

    def log_matches(
        self,
        reference_points: np.ndarray,
        current_points: np.ndarray,
        entity_path: str = "camera/matches",
    ) -> None:
        """Draw each correspondence on the current frame.

        Matched points are shown in red, with a line back to where the
        same feature sat in the reference frame.

        Args:
            reference_points: Nx2 pixel coordinates in the reference frame
            current_points: Nx2 pixel coordinates in the current frame
            entity_path: Rerun entity path for the matches
        """
        if len(current_points) == 0:
            rr.log(entity_path, rr.Clear(recursive=True))
            return

        flow = np.stack([reference_points, current_points], axis=1)
        rr.log(
            f"{entity_path}/points",
            rr.Points2D(current_points, colors=[[255, 0, 0]], radii=3.0),
        )
        rr.log(
            f"{entity_path}/flow",
            rr.LineStrips2D(flow, colors=[[0, 255, 0]], radii=0.5),
        )

    def log_trajectory(
        self,
        positions: np.ndarray,
        entity_path: str = "map/trajectory",
    ) -> None:
        """Log the top-down trajectory as a 2D line strip.

        Args:
            positions: Mx2 array of trajectory samples
            entity_path: Rerun entity path for the trajectory
        """
        if len(positions) < 2:
            return

        rr.log(
            entity_path,
            rr.LineStrips2D([positions], colors=[[255, 255, 0]], radii=0.01),
        )
        rr.log(
            "map/current",
            rr.Points2D([positions[-1]], colors=[[0, 255, 255]], radii=0.05),
        )

    def log_camera_position(
        self, position: np.ndarray, entity_path: str = "world/camera"
    ) -> None:
        rr.log(
            entity_path,
            rr.Points3D([position], colors=[[0, 255, 255]], radii=0.05),
        )

    def log_map_points(
        self,
        positions: np.ndarray,
        entity_path: str = "world/points",
        max_abs: float = 100.0,
    ) -> None:
        """Log the accumulated point cloud colored by depth.

        Points beyond ``max_abs`` in any coordinate are not drawn; the map
        itself keeps them.

        Args:
            positions: Kx3 array of points
            entity_path: Rerun entity path for the cloud
            max_abs: Display clipping bound
        """
        if len(positions) == 0:
            return

        valid_mask = np.isfinite(positions).all(axis=1) & (
            np.abs(positions) < max_abs
        ).all(axis=1)
        valid_points = positions[valid_mask]

        if len(valid_points) == 0:
            return

        depths = valid_points[:, 2]
        depth_min, depth_max = np.percentile(depths, [5, 95])
        depth_range = max(depth_max - depth_min, 0.1)
        normalized = np.clip((depths - depth_min) / depth_range, 0, 1)

        # blue (close) -> red (far)
        colors = np.zeros((len(valid_points), 3), dtype=np.uint8)
        colors[:, 0] = (normalized * 255).astype(np.uint8)
        colors[:, 1] = ((1 - np.abs(normalized - 0.5) * 2) * 255).astype(np.uint8)
        colors[:, 2] = ((1 - normalized) * 255).astype(np.uint8)

        rr.log(entity_path, rr.Points3D(valid_points, colors=colors, radii=0.02))
