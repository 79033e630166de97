import json
from pathlib import Path

import pytest

from cli.main import main


def test_cli_runs_preset_with_overrides(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    main(["--preset", "xor-adam", "--epochs", "5", "--run-dir", "out", "--seed", "2"])
    result = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert result["epochs"] == 5
    run_dir = Path("out")
    assert (run_dir / "metrics.jsonl").exists()
    assert (run_dir / "manifest.json").exists()
    assert (run_dir / "network.npz").exists()
    config = json.loads((run_dir / "config.json").read_text())
    assert config["train"]["seed"] == 2


def test_cli_yaml_override_and_dump(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.yaml"
    override.write_text("train:\n  epochs: 2\n  batch_size: 2\n")
    main(
        [
            "--preset",
            "xor-sgd",
            "--config",
            str(override),
            "--run-dir",
            "runs/yaml",
            "--dump-config",
            "resolved.json",
        ]
    )
    resolved = json.loads(Path("resolved.json").read_text())
    assert resolved["train"]["epochs"] == 2
    assert resolved["train"]["optimizer"]["name"] == "sgd"
    assert len(Path("runs/yaml/metrics.jsonl").read_text().splitlines()) == 2


def test_cli_csv_dataset(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    rows = ["x1,x2,label"] + [f"{i},{i % 3},{'a' if i % 2 else 'b'}" for i in range(20)]
    Path("data.csv").write_text("\n".join(rows) + "\n")
    main(
        [
            "--preset",
            "xor-adam",
            "--dataset",
            "csv_classification",
            "--csv-path",
            "data.csv",
            "--target-col",
            "label",
            "--epochs",
            "2",
            "--run-dir",
            "csv-run",
        ]
    )
    manifest = json.loads(Path("csv-run/manifest.json").read_text())
    assert manifest["dataset"]["target_col"] == "label"


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    out = capsys.readouterr().out.split()
    assert "xor-sgd" in out
    assert "blobs-adam" in out


def test_cli_help_describes_csv_options(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0
    out = " ".join(capsys.readouterr().out.split())
    assert "--target-col" in out
    assert "defaults to 'target'" in out
