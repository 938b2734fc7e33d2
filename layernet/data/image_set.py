"""MNIST-style CSV image sets.

Each record is ``label,p0,...,p783``: a class label followed by the 784
pixel intensities of a 28x28 grayscale image in row-major order.  A leading
header line, when present, is skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Sequence, TypeVar

import numpy as np
import pandas as pd

from ..core import matrix as mx
from ..core.errors import InvalidArgument
from ..core.types import Sample

logger = logging.getLogger(__name__)

IMG_HEIGHT = 28
IMG_WIDTH = 28
IMG_SIZE = IMG_HEIGHT * IMG_WIDTH

T = TypeVar("T")


@dataclass(frozen=True)
class ImageSetMetadata:
    """Location and record count of an image-set CSV."""

    file_name: str
    size: int

    def is_valid(self) -> bool:
        return bool(self.file_name) and self.size > 0


TRAIN_DATA = ImageSetMetadata("dataset/mnist_train.csv", 60000)
TEST_DATA = ImageSetMetadata("dataset/mnist_test.csv", 10000)


def _has_header(path: Path) -> bool:
    with path.open("r", encoding="utf-8") as handle:
        first = handle.readline().lstrip()
    return bool(first) and not (first[0].isdigit() or first[0] in "+-")


def read_csv_data(
    path: str | Path,
    rows: int,
    parse: Callable[[str], T],
    *,
    skip_header: bool = False,
) -> List[T]:
    """Call ``parse`` with the raw text of up to ``rows`` records of ``path``."""

    if rows <= 0:
        raise InvalidArgument(f"rows must be a positive integer, got {rows}")
    if parse is None:
        raise InvalidArgument("A row parsing callback is required")
    path = Path(path)
    try:
        handle = path.open("r", encoding="utf-8")
    except OSError as exc:
        raise InvalidArgument(f"Unable to open {path}: {exc}") from exc
    records: List[T] = []
    with handle:
        if skip_header:
            handle.readline()
        for line in handle:
            if len(records) >= rows:
                break
            if not line.strip():
                continue
            records.append(parse(line))
    if len(records) < rows:
        logger.warning("Expected %d records in %s but read %d", rows, path, len(records))
    return records


def parse_image_row(text: str) -> Sample:
    """Parse one ``label,pixels...`` record into a :class:`Sample`."""

    fields = text.strip().split(",")
    if len(fields) != IMG_SIZE + 1:
        raise InvalidArgument(f"Expected {IMG_SIZE + 1} fields per record, got {len(fields)}")
    try:
        label = int(fields[0])
        pixels = np.asarray(fields[1:], dtype=np.float64)
    except ValueError as exc:
        raise InvalidArgument(f"Malformed image record: {exc}") from exc
    return Sample(expected_value=label, input_values=mx.Matrix(pixels.reshape(IMG_HEIGHT, IMG_WIDTH)))


def read_image_set(
    meta: ImageSetMetadata,
    size: int | None = None,
    *,
    parse: Callable[[str], Sample] = parse_image_row,
) -> List[Sample]:
    """Read ``size`` (default ``meta.size``) images record by record."""

    if not meta.is_valid():
        raise InvalidArgument(f"Metadata contains invalid values: {meta!r}")
    path = Path(meta.file_name)
    if not path.exists():
        raise InvalidArgument(f"Unable to open {path}")
    return read_csv_data(path, size or meta.size, parse, skip_header=_has_header(path))


def load_image_frame(path: str | Path, rows: int | None = None) -> List[Sample]:
    """Bulk-load an image-set CSV with pandas."""

    path = Path(path)
    if not path.exists():
        raise InvalidArgument(f"Unable to open {path}")
    if rows is not None and rows <= 0:
        raise InvalidArgument(f"rows must be a positive integer, got {rows}")
    frame = pd.read_csv(path, header=0 if _has_header(path) else None, nrows=rows)
    if frame.shape[1] != IMG_SIZE + 1:
        raise InvalidArgument(f"Expected {IMG_SIZE + 1} columns in {path}, got {frame.shape[1]}")
    values = frame.to_numpy(dtype=np.float64)
    labels = values[:, 0].astype(int)
    images = values[:, 1:].reshape(-1, IMG_HEIGHT, IMG_WIDTH)
    logger.info("Loaded %d images from %s", len(labels), path)
    return [
        Sample(expected_value=int(label), input_values=mx.Matrix(image))
        for label, image in zip(labels, images)
    ]


def transform_image(sample: Sample, transform: Callable[[np.ndarray], object]) -> None:
    """Apply ``transform`` in place to the pixels of ``sample``."""

    if transform is None:
        raise InvalidArgument("A transform function is required")
    pixels = sample.input_values
    buffer = np.zeros(pixels.size, dtype=np.float64)
    mx.copy_matrix_to_array(pixels, buffer, pixels.size)
    transform(buffer)
    mx.copy_array_to_matrix(buffer, buffer.size, pixels)


def transform_image_set(samples: Sequence[Sample], transform: Callable[[np.ndarray], object]) -> None:
    if not samples:
        raise InvalidArgument("Cannot transform an empty image set")
    if transform is None:
        raise InvalidArgument("A transform function is required")
    for sample in samples:
        transform_image(sample, transform)


def free_image_set(samples: Sequence[Sample]) -> None:
    for sample in samples:
        sample.expected_value = 0
        mx.free(sample.input_values)


def fixture_images(rows: int, seed: int = 0, num_classes: int = 10) -> tuple[np.ndarray, np.ndarray]:
    """Return deterministic, class-separable 28x28 images and their labels.

    Class ``k`` lights a horizontal band of two pixel rows starting at row
    ``4 + 2k`` over a low-intensity noise floor.
    """

    if rows <= 0:
        raise InvalidArgument(f"rows must be a positive integer, got {rows}")
    rng = np.random.default_rng(seed)
    labels = np.arange(rows, dtype=np.int64) % num_classes
    images = rng.integers(0, 32, size=(rows, IMG_HEIGHT, IMG_WIDTH)).astype(np.int64)
    for idx, label in enumerate(labels):
        top = 4 + 2 * int(label)
        images[idx, top : top + 2, 4:24] = rng.integers(200, 256, size=(2, 20))
    return images, labels


def write_fixture_csv(path: str | Path, rows: int, seed: int = 0, *, header: bool = False) -> Path:
    """Write an MNIST-shaped CSV of :func:`fixture_images` to ``path``."""

    images, labels = fixture_images(rows, seed=seed)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        if header:
            names = ["label"] + [f"{r + 1}x{c + 1}" for r in range(IMG_HEIGHT) for c in range(IMG_WIDTH)]
            handle.write(",".join(names) + "\n")
        for label, image in zip(labels, images):
            handle.write(",".join([str(int(label))] + [str(int(v)) for v in image.reshape(-1)]) + "\n")
    return path


__all__ = [
    "IMG_HEIGHT",
    "IMG_SIZE",
    "IMG_WIDTH",
    "ImageSetMetadata",
    "TEST_DATA",
    "TRAIN_DATA",
    "fixture_images",
    "free_image_set",
    "load_image_frame",
    "parse_image_row",
    "read_csv_data",
    "read_image_set",
    "transform_image",
    "transform_image_set",
    "write_fixture_csv",
]
