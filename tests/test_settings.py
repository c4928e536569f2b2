import pytest

from boids import ConfigurationError, ExecutionMode, FlockSettings


def test_derived_defaults():
    s = FlockSettings(max_speed=2.0, world_half_width=10.0, world_half_height=5.0, edge_margin=1.0)

    assert s.min_speed == pytest.approx(1.5)
    assert s.turn_speed == pytest.approx(6.0)
    assert (s.x_bound, s.y_bound) == (9.0, 4.0)
    assert s.initial_half_size == pytest.approx(11.25)


def test_from_config_applies_overrides():
    s = FlockSettings.from_config(visual_range=1.0, num_teams=3)

    assert s.visual_range == 1.0
    assert s.num_teams == 3
    s.validate()


def test_unknown_override_is_rejected():
    with pytest.raises(ConfigurationError, match="visual_rnage"):
        FlockSettings.from_config(visual_rnage=1.0)


@pytest.mark.parametrize("overrides", [
    {"min_speed": 3.0},
    {"collapse_threshold": 32},
    {"team_ratio": 1.5},
    {"inter_team_repulsion": 0.5},
    {"grid_padding": 2},
    {"max_nodes": 4},
    {"max_depth": 0},
])
def test_inconsistent_settings_raise(overrides):
    with pytest.raises(ConfigurationError):
        FlockSettings.from_config(**overrides).validate()


def test_mode_limits():
    s = FlockSettings.from_config(sequential_limit=10, parallel_limit=1000)

    assert s.limit_for(ExecutionMode.SEQUENTIAL) == 10
    assert s.limit_for(ExecutionMode.PARALLEL) == 1000
    s.validate(1000, ExecutionMode.PARALLEL)
    with pytest.raises(ConfigurationError):
        s.validate(11, ExecutionMode.SEQUENTIAL)
    with pytest.raises(ConfigurationError):
        s.validate(0)


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


def test_rebuild_interval_by_population():
    s = FlockSettings(rebuild_interval=120, high_count_rebuild_interval=180, high_count_threshold=1000)

    assert s.rebuild_interval_for(1000) == 120
    assert s.rebuild_interval_for(1001) == 180
