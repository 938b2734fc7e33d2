import numpy as np
import pytest

from layernet.core.errors import InvalidArgument
from layernet.data import stats
from layernet.data.image_set import (
    IMG_SIZE,
    ImageSetMetadata,
    fixture_images,
    free_image_set,
    load_image_frame,
    parse_image_row,
    read_csv_data,
    read_image_set,
    transform_image_set,
    write_fixture_csv,
)


def test_fixture_images_are_deterministic():
    first, labels = fixture_images(12, seed=3)
    second, _ = fixture_images(12, seed=3)
    assert np.array_equal(first, second)
    assert labels.tolist() == [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 0, 1]
    assert first.shape == (12, 28, 28)


def test_read_image_set_record_reader(tmp_path):
    path = write_fixture_csv(tmp_path / "train.csv", 5, seed=1)
    samples = read_image_set(ImageSetMetadata(str(path), 5))
    assert len(samples) == 5
    assert [s.expected_value for s in samples] == [0, 1, 2, 3, 4]
    assert samples[0].input_values.shape == (28, 28)


def test_header_is_skipped(tmp_path):
    path = write_fixture_csv(tmp_path / "train.csv", 3, header=True)
    records = read_image_set(ImageSetMetadata(str(path), 3))
    frame = load_image_frame(path)
    assert [s.expected_value for s in records] == [0, 1, 2]
    assert [s.expected_value for s in frame] == [0, 1, 2]
    assert records[2].input_values == frame[2].input_values


def test_short_file_returns_available_records(tmp_path):
    path = write_fixture_csv(tmp_path / "train.csv", 2)
    samples = read_image_set(ImageSetMetadata(str(path), 10))
    assert len(samples) == 2


def test_load_image_frame_limits_rows(tmp_path):
    path = write_fixture_csv(tmp_path / "test.csv", 6)
    assert len(load_image_frame(path, rows=4)) == 4


def test_malformed_and_missing_files(tmp_path):
    with pytest.raises(InvalidArgument):
        parse_image_row("1,2,3")
    with pytest.raises(InvalidArgument):
        parse_image_row("x," + ",".join(["0"] * IMG_SIZE))
    with pytest.raises(InvalidArgument):
        read_image_set(ImageSetMetadata(str(tmp_path / "missing.csv"), 1))
    with pytest.raises(InvalidArgument):
        read_image_set(ImageSetMetadata("", 1))
    with pytest.raises(InvalidArgument):
        read_csv_data(tmp_path / "missing.csv", 1, parse_image_row)


def test_read_csv_data_custom_parser(tmp_path):
    path = tmp_path / "rows.csv"
    path.write_text("1,2\n3,4\n\n5,6\n")
    rows = read_csv_data(path, 3, lambda text: text.strip().split(","))
    assert rows == [["1", "2"], ["3", "4"], ["5", "6"]]


def test_transform_and_free_image_set(tmp_path):
    path = write_fixture_csv(tmp_path / "train.csv", 2)
    samples = read_image_set(ImageSetMetadata(str(path), 2))
    transform_image_set(samples, stats.normalize)
    pixels = samples[0].input_values.entries
    assert pixels.shape == (28, 28)
    assert pixels.min() == 0.0 and pixels.max() == 1.0
    free_image_set(samples)
    assert samples[0].input_values.is_zero()
    assert samples[0].expected_value == 0
