"""HTTP control API for VoxAid, built with Flask."""

from .flask_app import create_app, run_app  # noqa: F401

__all__ = ["create_app", "run_app"]
