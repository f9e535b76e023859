"""
Presentation-level assistance: high contrast, simplified view, the motor /
cognitive / visual / keyboard-navigation modes and font scaling.

Each mode is a class on the document root; styling that class is up to the
host page.  :meth:`Presentation.register_hooks` wires the modes into the
feature state machine so they toggle like every other feature.
"""
from __future__ import annotations

from typing import Callable, Dict, Tuple

from ..config import VisualSettings
from ..dom.page import PageHost
from ..utils.logging_system import setup_log_system
from .state import FeatureId, FeatureStateMachine

logger = setup_log_system("presentation")

FONT_STEP_UP = 1.1
FONT_STEP_DOWN = 0.9
MIN_FONT_SCALE = 0.5
MAX_FONT_SCALE = 3.0

ROOT_CLASSES: Dict[FeatureId, str] = {
    FeatureId.HIGH_CONTRAST: "voxaid-high-contrast",
    FeatureId.SIMPLIFIED_VIEW: "voxaid-simplified-view",
    FeatureId.MOTOR: "voxaid-motor-mode",
    FeatureId.COGNITIVE: "voxaid-cognitive-mode",
    FeatureId.VISUAL: "voxaid-visual-mode",
    FeatureId.KEYBOARD_NAVIGATION: "voxaid-keyboard-navigation",
}


class Presentation:
    def __init__(self, page: PageHost, settings: VisualSettings) -> None:
        self.page = page
        self.settings = settings

    def root_class_hooks(self, feature: FeatureId) -> Tuple[Callable[[], None], Callable[[], None]]:
        class_name = ROOT_CLASSES[feature]

        def enable() -> None:
            self.page.add_root_class(class_name)
            if feature is FeatureId.HIGH_CONTRAST:
                self.settings.high_contrast = True

        def disable() -> None:
            self.page.remove_root_class(class_name)
            if feature is FeatureId.HIGH_CONTRAST:
                self.settings.high_contrast = False

        return enable, disable

    def register_hooks(self, state: FeatureStateMachine) -> None:
        for feature in ROOT_CLASSES:
            enable, disable = self.root_class_hooks(feature)
            state.register(feature, enable, disable)

    def _set_font_scale(self, scale: float) -> float:
        scale = round(min(MAX_FONT_SCALE, max(MIN_FONT_SCALE, scale)), 2)
        self.page.set_font_scale(scale)
        self.settings.font_scale = scale
        logger.debug(f"Font scale set to {scale}")
        return scale

    def apply_font_scale(self) -> float:
        """Push the stored font scale to the page (used at session start)."""
        return self._set_font_scale(self.settings.font_scale)

    def increase_font_size(self) -> float:
        return self._set_font_scale(self.page.font_scale * FONT_STEP_UP)

    def decrease_font_size(self) -> float:
        return self._set_font_scale(self.page.font_scale * FONT_STEP_DOWN)
