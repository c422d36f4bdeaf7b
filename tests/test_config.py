import pytest

from activity_solver.config import TimingConfig, load_config


def test_defaults_when_no_file(tmp_path, monkeypatch):
    monkeypatch.setattr("activity_solver.config.CONFIG_PATH", tmp_path / "missing.yaml")

    config = load_config()

    assert config.timing.poll_interval == 0.1
    assert config.timing.max_animation_steps == 40
    assert config.browser.headless is False


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_yaml_overrides_merge_over_defaults(tmp_path):
    path = tmp_path / "solver.yaml"
    path.write_text(
        "timing:\n"
        "  poll_timeout: 3.5\n"
        "browser:\n"
        "  headless: true\n"
        "probes:\n"
        "  dragdrop:\n"
        "    controls:\n"
        "      reset_button: button.clear\n"
    )

    config = load_config(path)

    assert config.timing.poll_timeout == 3.5
    assert config.timing.poll_interval == 0.1
    assert config.browser.headless is True
    dragdrop = config.probes.for_type("dragdrop")
    assert dragdrop.controls["reset_button"] == "button.clear"
    assert dragdrop.controls["slot_row"] == "div.definition-row"


@pytest.mark.parametrize("body", [
    "timing:\n  poll_every: 1\n",
    "solver:\n  x: 1\n",
    "probes:\n  crossword: {}\n",
    "probes:\n  radio:\n    selector: div\n",
])
def test_unknown_keys_are_rejected(tmp_path, body):
    path = tmp_path / "bad.yaml"
    path.write_text(body)

    with pytest.raises(ValueError):
        load_config(path)


def test_inconsistent_timing_is_rejected():
    with pytest.raises(ValueError):
        TimingConfig(min_task_delay=3.0, max_task_delay=1.0)
    with pytest.raises(ValueError):
        TimingConfig(poll_interval=1.0, poll_timeout=0.5)
