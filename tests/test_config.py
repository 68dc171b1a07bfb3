import pytest

from cheatguardian.core.config import HEAD_MOVEMENT_THRESHOLD, EngineConfig


def test_defaults():
    config = EngineConfig()
    assert config.max_head_positions == 15
    assert config.head_movement_threshold == HEAD_MOVEMENT_THRESHOLD
    assert config.position_tracking_interval_ms == 300
    assert config.max_noise_samples == 20
    assert config.noise_threshold == 0.2
    assert config.alert_cooldown_ms == 10000


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_head_positions": 0},
        {"max_noise_samples": 0},
        {"noise_threshold": -0.1},
        {"detector_timeout_ms": -1},
        {"min_noise_samples": 20, "max_noise_samples": 20},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValueError):
        EngineConfig(**overrides)


def test_with_overrides_returns_copy():
    base = EngineConfig()
    tuned = base.with_overrides(alert_cooldown_ms=5000)
    assert tuned.alert_cooldown_ms == 5000
    assert base.alert_cooldown_ms == 10000


def test_reference_size_keeps_threshold():
    assert EngineConfig().for_frame_size(640, 480).head_movement_threshold == pytest.approx(25.0)


def test_threshold_follows_frame_diagonal():
    assert EngineConfig().for_frame_size(1280, 960).head_movement_threshold == pytest.approx(50.0)
    assert EngineConfig().for_frame_size(320, 240).head_movement_threshold == pytest.approx(12.5)


def test_custom_threshold_is_scaled():
    config = EngineConfig(head_movement_threshold=10.0).for_frame_size(1280, 960)
    assert config.head_movement_threshold == pytest.approx(20.0)


def test_invalid_frame_size():
    with pytest.raises(ValueError):
        EngineConfig().for_frame_size(0, 480)
