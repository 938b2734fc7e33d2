"""Dataset readers and feature transforms."""

from . import image_set, stats
from .image_set import (
    TEST_DATA,
    TRAIN_DATA,
    ImageSetMetadata,
    load_image_frame,
    parse_image_row,
    read_csv_data,
    read_image_set,
    write_fixture_csv,
)
from .stats import TRANSFORMS, get_transform, normalize, standardize
from .utils import seed_everything

__all__ = [
    "ImageSetMetadata",
    "TEST_DATA",
    "TRAIN_DATA",
    "TRANSFORMS",
    "get_transform",
    "image_set",
    "load_image_frame",
    "normalize",
    "parse_image_row",
    "read_csv_data",
    "read_image_set",
    "seed_everything",
    "standardize",
    "stats",
    "write_fixture_csv",
]
