import json
from pathlib import Path

import pytest

from layernet.core.errors import InvalidShape
from layernet.training import pipelines


def _config(run_dir, **train):
    config = json.loads(json.dumps(pipelines.load_preset("fixture-smoke")))
    config["train"]["run_dir"] = str(run_dir)
    config["train"].update(train)
    return config


def test_pipeline_produces_artifacts(tmp_path):
    config = _config(tmp_path / "run", seed=11)
    result = pipelines.run_pipeline(config)

    assert result.epochs == 2
    assert 0.0 <= result.accuracy <= 1.0
    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["seed"] == 11
    assert manifest["dataset"]["train"]["source"] == "fixture"
    assert manifest["dataset"]["train"]["records"] == 60
    assert [layer["nodes"] for layer in manifest["network"]] == [784, 12, 10]

    metrics = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines() if line]
    assert [entry["epoch"] for entry in metrics] == [1, 2]
    first = metrics[0]
    assert first["split"] == "train"
    assert first["seed"] == 11
    assert "sha" in first
    assert all({"loss", "accuracy", "test_accuracy"} <= set(entry) for entry in metrics)
    assert (tmp_path / "run" / "metrics.csv").exists()
    assert (tmp_path / "run" / "config.json").exists()


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path / "run1"))
    second = pipelines.run_pipeline(_config(tmp_path / "run2"))
    assert Path(first.metrics_path).read_text() == Path(second.metrics_path).read_text()
    assert first.history == second.history


def test_pipeline_with_plots_and_pandas_reader(tmp_path):
    config = _config(tmp_path / "run", enable_plots=True, epochs=1)
    config["data"]["reader"] = "pandas"
    pipelines.run_pipeline(config)
    assert (tmp_path / "run" / "loss.png").exists()
    assert (tmp_path / "run" / "accuracy.png").exists()


def test_pipeline_rejects_wrong_input_width(tmp_path):
    config = _config(tmp_path / "run")
    config["network"]["layers"] = [[100, "input"], [10, "output"]]
    with pytest.raises(InvalidShape):
        pipelines.run_pipeline(config)


def test_presets_include_builtin_and_file_presets():
    names = set(pipelines.presets())
    assert {"mnist-sigmoid-bias", "mnist-sigmoid-backprop", "fixture-smoke"} <= names
    assert "fixture-relu-row" in names
    with pytest.raises(KeyError):
        pipelines.load_preset("does-not-exist")


def test_file_presets_ship_inside_the_package(tmp_path):
    import layernet

    preset_file = Path(layernet.__file__).parent / "presets" / "fixture-relu-row.yaml"
    assert preset_file.exists()
    config = pipelines.load_preset("fixture-relu-row")
    assert config["network"]["options"]["node_orientation"] == "row"
    config["train"]["run_dir"] = str(tmp_path / "run")
    config["train"]["epochs"] = 1
    result = pipelines.run_pipeline(config)
    assert 0.0 <= result.accuracy <= 1.0
