"""Tests for the feature state machine."""

import pytest

from voxaid.features.state import (
    FeatureId,
    FeatureStateMachine,
    FeatureTransition,
    TransitionOp,
)


@pytest.fixture
def machine():
    return FeatureStateMachine()


class TestFeatureId:
    @pytest.mark.parametrize("raw", ["screenReader", "screen_reader", "SCREEN_READER", "screen reader"])
    def test_parse_variants(self, raw):
        assert FeatureId.parse(raw) is FeatureId.SCREEN_READER

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            FeatureId.parse("telepathy")

    def test_command_names(self):
        assert FeatureTransition(TransitionOp.TOGGLE, FeatureId.HIGH_CONTRAST).command_name == "toggle_high_contrast"
        assert FeatureTransition(TransitionOp.START, FeatureId.SPEECH).command_name == "start_speech"


class TestTransitions:
    def test_start_is_idempotent(self, machine):
        calls = []
        machine.register(FeatureId.MOTOR, enable=lambda: calls.append("on"))
        assert machine.start(FeatureId.MOTOR) is True
        assert machine.start(FeatureId.MOTOR) is False
        assert calls == ["on"]
        assert machine.active == frozenset({FeatureId.MOTOR})

    def test_stop_inactive_is_noop(self, machine):
        calls = []
        machine.register(FeatureId.MOTOR, disable=lambda: calls.append("off"))
        assert machine.stop(FeatureId.MOTOR) is False
        assert calls == []

    def test_toggle_flips(self, machine):
        assert machine.toggle(FeatureId.VISUAL) is True
        assert machine.is_active(FeatureId.VISUAL)
        assert machine.toggle(FeatureId.VISUAL) is False
        assert not machine.is_active(FeatureId.VISUAL)

    def test_failed_enable_leaves_state_unchanged(self, machine):
        def boom():
            raise RuntimeError("no microphone")

        machine.register(FeatureId.SPEECH, enable=boom)
        with pytest.raises(RuntimeError):
            machine.start(FeatureId.SPEECH)
        assert not machine.is_active(FeatureId.SPEECH)

    def test_apply(self, machine):
        machine.apply(FeatureTransition(TransitionOp.START, FeatureId.COGNITIVE))
        assert machine.is_active(FeatureId.COGNITIVE)
        machine.apply(FeatureTransition(TransitionOp.STOP, FeatureId.COGNITIVE))
        assert not machine.is_active(FeatureId.COGNITIVE)

    def test_listeners_notified_on_change_only(self, machine):
        seen = []
        machine.subscribe(lambda feature, active: seen.append((feature, active)))
        machine.start(FeatureId.MOTOR)
        machine.start(FeatureId.MOTOR)
        machine.stop(FeatureId.MOTOR)
        assert seen == [(FeatureId.MOTOR, True), (FeatureId.MOTOR, False)]

    def test_listener_error_does_not_break_transition(self, machine):
        def bad_listener(feature, active):
            raise ValueError("listener bug")

        machine.subscribe(bad_listener)
        assert machine.start(FeatureId.MOTOR) is True
        assert machine.is_active(FeatureId.MOTOR)


class TestShutdown:
    def test_runs_disable_hooks_and_clears(self, machine):
        disabled = []
        machine.register(FeatureId.MOTOR, disable=lambda: disabled.append(FeatureId.MOTOR))
        machine.register(FeatureId.VISUAL, disable=lambda: disabled.append(FeatureId.VISUAL))
        machine.start(FeatureId.MOTOR)
        machine.start(FeatureId.VISUAL)
        machine.shutdown()
        assert sorted(disabled, key=lambda f: f.value) == [FeatureId.MOTOR, FeatureId.VISUAL]
        assert machine.active == frozenset()

    def test_failing_disable_hook_still_clears(self, machine):
        def boom():
            raise RuntimeError("stuck")

        machine.register(FeatureId.MOTOR, disable=boom)
        machine.start(FeatureId.MOTOR)
        machine.shutdown()
        assert machine.active == frozenset()
