"""
Image loading and saving as per-channel float intensity arrays.
"""
from __future__ import annotations

import os
from typing import List, Sequence

import cv2
import numpy as np


_SAVE_DTYPES = {8: np.uint8, 16: np.uint16}


class ImageSource:
    """Image held as a list of equally sized single-precision channels."""

    def __init__(self, channels: Sequence[np.ndarray]) -> None:
        if len(channels) == 0:
            raise ValueError("ImageSource needs at least one channel")

        self._channels: List[np.ndarray] = [np.array(c, dtype=np.float32) for c in channels]
        shape = self._channels[0].shape
        if len(shape) != 2:
            raise ValueError("Channels must be 2D arrays")
        if any(c.shape != shape for c in self._channels):
            raise ValueError("All channels must share the same dimensions")

    @classmethod
    def load(cls, path: str) -> "ImageSource":
        """
        Read an image file.

        Color images are returned in RGB(A) channel order.

        Raises:
            FileNotFoundError: If the path does not exist
            ValueError: If the file cannot be decoded
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"Image not found: {path}")

        image = cv2.imread(path, cv2.IMREAD_UNCHANGED)
        if image is None:
            raise ValueError(f"Unable to decode image: {path}")

        if image.ndim == 2:
            return cls([image])
        if image.shape[2] == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        elif image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
        return cls([image[:, :, i] for i in range(image.shape[2])])

    def width(self) -> int:
        return self._channels[0].shape[1]

    def height(self) -> int:
        return self._channels[0].shape[0]

    def num_channels(self) -> int:
        return len(self._channels)

    def channel(self, index: int) -> np.ndarray:
        """Channel ``index`` as a (height, width) float32 array."""
        if not 0 <= index < len(self._channels):
            raise IndexError(f"channel index {index} out of range [0, {len(self._channels)})")
        return self._channels[index]

    def save(self, path: str, bits_per_channel: int = 8) -> None:
        """
        Write the image, rounding and clipping samples to the bit depth.

        Raises:
            ValueError: If bits_per_channel is not 8 or 16
            OSError: If OpenCV fails to write the file
        """
        if bits_per_channel not in _SAVE_DTYPES:
            raise ValueError("bits_per_channel must be 8 or 16")

        dtype = _SAVE_DTYPES[bits_per_channel]
        top = np.iinfo(dtype).max
        planes = [np.clip(np.rint(c), 0, top).astype(dtype) for c in self._channels]

        if len(planes) == 1:
            image = planes[0]
        else:
            image = np.dstack(planes)
            if image.shape[2] == 3:
                image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
            elif image.shape[2] == 4:
                image = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)

        if not cv2.imwrite(path, image):
            raise OSError(f"Unable to write image: {path}")
