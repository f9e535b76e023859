"""Accessibility features for VoxAid.

``FeatureStateMachine`` tracks which features are active, ``ScreenReader``
reads the page element by element and ``Presentation`` applies the
page-level modes (high contrast, simplified view, font scaling).
"""

from .presentation import Presentation  # noqa: F401
from .screen_reader import ReadableElement, ScreenReader  # noqa: F401
from .state import FeatureId, FeatureStateMachine, FeatureTransition  # noqa: F401

__all__ = [
    "FeatureId",
    "FeatureStateMachine",
    "FeatureTransition",
    "Presentation",
    "ReadableElement",
    "ScreenReader",
]
