import pytest

from devpulse_app.analytics.scoring.stability import stability_score
from devpulse_app.core.scoring_config import DEFAULT_WEIGHTS, load_scoring_weights


def test_missing_file_uses_defaults(tmp_path):
    weights = load_scoring_weights(tmp_path / "absent.yaml")
    assert weights == DEFAULT_WEIGHTS
    assert weights.severity_weight("critical") == 4.0


def test_yaml_overrides_merge_with_defaults(tmp_path):
    path = tmp_path / "scoring.yaml"
    path.write_text(
        "weights:\n"
        "  severity_weights:\n"
        "    critical: 6\n"
        "  stability_recurring_penalty: 20\n"
        "  unknown_knob: 1\n"
    )
    weights = load_scoring_weights(path)
    assert weights.severity_weight("critical") == 6.0
    assert weights.severity_weight("high") == 3.0
    assert weights.stability_recurring_penalty == 20.0
    assert stability_score({"critical": 1}, 1, weights) == pytest.approx(65.0)


def test_invalid_yaml_falls_back_to_defaults(tmp_path):
    path = tmp_path / "scoring.yaml"
    path.write_text("severity_weights: 3\n")
    assert load_scoring_weights(path) == DEFAULT_WEIGHTS


@pytest.mark.parametrize("content", ["- 1\n- 2\n", "weights: 7\n", "weights:\n  - critical\n", "just text\n"])
def test_non_mapping_yaml_falls_back_to_defaults(tmp_path, content):
    path = tmp_path / "scoring.yaml"
    path.write_text(content)
    assert load_scoring_weights(path) == DEFAULT_WEIGHTS
