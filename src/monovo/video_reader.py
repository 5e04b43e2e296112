"""Frame sources for monocular visual odometry.

Two sources are provided, both following the same pull protocol
(``get_next_frame() -> Frame | None``, ``None`` meaning end of stream):

- VideoReader: decodes a video file (or camera index) with cv2.VideoCapture
- ImageSequenceReader: reads an EuRoC-style ``cam0/data.csv`` image list
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Protocol

import cv2
import numpy as np


@dataclass(frozen=True)
class Frame:
    """A single captured image.

    Attributes:
        index: Sequence index within the source (0-based, capture order)
        image: Pixel buffer (grayscale HxW or BGR HxWx3, uint8)
        timestamp_ns: Capture timestamp in nanoseconds
    """

    index: int
    image: np.ndarray
    timestamp_ns: int = 0


class FrameSource(Protocol):
    """Anything that hands out frames one at a time."""

    def get_next_frame(self) -> Frame | None: ...


class VideoReader:
    """Sequential frame reader backed by cv2.VideoCapture."""

    def __init__(self, video_path: str | int) -> None:
        """Open a video file or camera device.

        Args:
            video_path: Path to a video file, or an integer camera index

        Raises:
            FileNotFoundError: If the video file doesn't exist
            RuntimeError: If OpenCV cannot open the stream
        """
        if not isinstance(video_path, int):
            path = Path(video_path)
            if not path.exists():
                raise FileNotFoundError(f"Video file does not exist: {path}")
            video_path = str(path)

        self.video_path = video_path
        self._capture = cv2.VideoCapture(video_path)
        if not self._capture.isOpened():
            raise RuntimeError(f"Open video error: {video_path}")

        self._current_idx = 0

    def get_next_frame(self) -> Frame | None:
        """Decode the next frame.

        Returns:
            Next Frame, or None when the stream is exhausted
        """
        ok, image = self._capture.read()
        if not ok or image is None or image.size == 0:
            return None

        timestamp_ms = self._capture.get(cv2.CAP_PROP_POS_MSEC)
        frame = Frame(
            index=self._current_idx,
            image=image,
            timestamp_ns=int(timestamp_ms * 1e6),
        )
        self._current_idx += 1
        return frame

    @property
    def fps(self) -> float:
        """Return the frame rate reported by the container (0 if unknown)."""
        return float(self._capture.get(cv2.CAP_PROP_FPS))

    def release(self) -> None:
        """Close the underlying capture."""
        self._capture.release()

    def __enter__(self) -> VideoReader:
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def __iter__(self) -> Iterator[Frame]:
        return self

    def __next__(self) -> Frame:
        frame = self.get_next_frame()
        if frame is None:
            raise StopIteration
        return frame


class ImageSequenceReader:
    """Reader for a monocular EuRoC-style image folder.

    Expected layout::

        <root>/cam0/data.csv
        <root>/cam0/data/<timestamp>.png
    """

    def __init__(self, dataset_path: str, camera: str = "cam0") -> None:
        """Initialize reader with path to the sequence root.

        Args:
            dataset_path: Path to the directory holding the camera folder
            camera: Name of the camera folder to read

        Raises:
            FileNotFoundError: If the dataset path or required files don't exist
            ValueError: If data.csv is empty or invalid
        """
        self.dataset_path = Path(dataset_path)
        self.camera_path = self.dataset_path / camera
        self.data_path = self.camera_path / "data"
        self.csv_path = self.camera_path / "data.csv"

        self._validate_paths()

        self._image_list = self._load_image_list()
        if not self._image_list:
            raise ValueError(f"No images found in {self.csv_path}")

        self._current_idx = 0

    def _validate_paths(self) -> None:
        if not self.dataset_path.exists():
            raise FileNotFoundError(f"Dataset path does not exist: {self.dataset_path}")

        if not self.data_path.exists():
            raise FileNotFoundError(
                f"{self.camera_path.name}/data directory not found: {self.data_path}"
            )

        if not self.csv_path.exists():
            raise FileNotFoundError(
                f"{self.camera_path.name}/data.csv not found: {self.csv_path}\n"
                f"This file is required to list image timestamps and filenames."
            )

    def _load_image_list(self) -> list[tuple[int, str]]:
        """Parse data.csv into (timestamp_ns, filename) tuples.

        CSV format:
            #timestamp [ns],filename
            1403636579763555584,1403636579763555584.png
        """
        image_list = []

        with open(self.csv_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                try:
                    timestamp_str, filename = line.split(",")
                    image_list.append((int(timestamp_str.strip()), filename.strip()))
                except ValueError as e:
                    raise ValueError(
                        f"Invalid line in {self.csv_path}: '{line}'\n"
                        f"Expected format: timestamp,filename"
                    ) from e

        return image_list

    def get_next_frame(self) -> Frame | None:
        """Load the next image in chronological order.

        Returns:
            Next Frame (grayscale), or None when the sequence is exhausted

        Raises:
            FileNotFoundError: If a listed image is missing on disk
            ValueError: If OpenCV fails to decode an image
        """
        if self._current_idx >= len(self._image_list):
            return None

        timestamp_ns, filename = self._image_list[self._current_idx]
        image_path = self.data_path / filename
        if not image_path.exists():
            raise FileNotFoundError(f"Image not found: {image_path}")

        image = cv2.imread(str(image_path), cv2.IMREAD_GRAYSCALE)
        if image is None:
            raise ValueError(f"Failed to load image: {image_path}")

        frame = Frame(index=self._current_idx, image=image, timestamp_ns=timestamp_ns)
        self._current_idx += 1
        return frame

    def reset(self) -> None:
        """Rewind to the first image."""
        self._current_idx = 0

    def __len__(self) -> int:
        return len(self._image_list)

    def __iter__(self) -> Iterator[Frame]:
        self.reset()
        return self

    def __next__(self) -> Frame:
        frame = self.get_next_frame()
        if frame is None:
            raise StopIteration
        return frame
