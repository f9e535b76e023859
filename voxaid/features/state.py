"""
Active-feature state machine.

Tracks which accessibility features are switched on.  Every trigger (voice
command, keyboard shortcut, HTTP API, remote message) goes through the same
three transitions:

``start(feature)``  enable if inactive, otherwise nothing happens
``stop(feature)``   disable if active, otherwise nothing happens
``toggle(feature)`` flip

Each feature may register enable/disable hooks.  A hook runs *before* the
membership change, so a hook that raises leaves the feature in its previous
state and the exception reaches the caller.
"""
from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Set

from ..utils.logging_system import setup_log_system

logger = setup_log_system("feature_state")

Hook = Callable[[], object]
StateListener = Callable[["FeatureId", bool], None]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class FeatureId(str, Enum):
    SCREEN_READER = "screenReader"
    SPEECH = "speech"
    MOTOR = "motor"
    COGNITIVE = "cognitive"
    VISUAL = "visual"
    HIGH_CONTRAST = "highContrast"
    SIMPLIFIED_VIEW = "simplifiedView"
    KEYBOARD_NAVIGATION = "keyboardNavigation"

    @property
    def command_suffix(self) -> str:
        """``screenReader`` -> ``screen_reader``."""
        return _CAMEL_BOUNDARY.sub("_", self.value).lower()

    @classmethod
    def parse(cls, raw: str) -> "FeatureId":
        """Accept ``screenReader``, ``screen_reader``, ``SCREEN_READER`` or ``screen reader``."""
        key = re.sub(r"[\s\-]+", "_", str(raw).strip())
        for feature in cls:
            if key == feature.value or key.lower() == feature.command_suffix:
                return feature
        raise ValueError(f"Unknown feature: {raw!r}")


class TransitionOp(str, Enum):
    START = "start"
    STOP = "stop"
    TOGGLE = "toggle"


@dataclass(frozen=True)
class FeatureTransition:
    op: TransitionOp
    feature: FeatureId

    @property
    def command_name(self) -> str:
        return f"{self.op.value}_{self.feature.command_suffix}"


@dataclass
class FeatureHooks:
    enable: Optional[Hook] = None
    disable: Optional[Hook] = None


class FeatureStateMachine:
    """The set of active features plus the side effects that go with it."""

    def __init__(self) -> None:
        self._active: Set[FeatureId] = set()
        self._hooks: Dict[FeatureId, FeatureHooks] = {}
        self._listeners: List[StateListener] = []
        self._lock = threading.RLock()

    def register(self, feature: FeatureId, enable: Optional[Hook] = None, disable: Optional[Hook] = None) -> None:
        self._hooks[feature] = FeatureHooks(enable, disable)

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    @property
    def active(self) -> FrozenSet[FeatureId]:
        with self._lock:
            return frozenset(self._active)

    def is_active(self, feature: FeatureId) -> bool:
        with self._lock:
            return feature in self._active

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(self, feature: FeatureId) -> bool:
        """Enable ``feature``.  Returns True if the state changed."""
        with self._lock:
            if feature in self._active:
                logger.debug(f"{feature.value} already active; start ignored.")
                return False
            hooks = self._hooks.get(feature)
            if hooks and hooks.enable:
                hooks.enable()
            self._active.add(feature)
        logger.info(f"Feature enabled: {feature.value}")
        self._notify(feature, True)
        return True

    def stop(self, feature: FeatureId) -> bool:
        """Disable ``feature``.  Returns True if the state changed."""
        with self._lock:
            if feature not in self._active:
                logger.debug(f"{feature.value} not active; stop ignored.")
                return False
            hooks = self._hooks.get(feature)
            if hooks and hooks.disable:
                hooks.disable()
            self._active.discard(feature)
        logger.info(f"Feature disabled: {feature.value}")
        self._notify(feature, False)
        return True

    def toggle(self, feature: FeatureId) -> bool:
        """Flip ``feature``.  Returns the new state."""
        with self._lock:
            if feature in self._active:
                self.stop(feature)
                return False
            self.start(feature)
            return True

    def apply(self, transition: FeatureTransition) -> bool:
        if transition.op is TransitionOp.START:
            return self.start(transition.feature)
        if transition.op is TransitionOp.STOP:
            return self.stop(transition.feature)
        return self.toggle(transition.feature)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    def shutdown(self) -> None:
        """Run disable hooks for every active feature, then clear the set."""
        for feature in sorted(self.active, key=lambda f: f.value):
            try:
                self.stop(feature)
            except Exception as e:
                logger.error(f"Failed to disable {feature.value} during shutdown: {e}", exc_info=True)
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._active.clear()

    def _notify(self, feature: FeatureId, active: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener(feature, active)
            except Exception as e:
                logger.error(f"Feature state listener failed: {e}", exc_info=True)
