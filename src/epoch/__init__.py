"""Epoch - calendar task planner with recurring tasks, timeline and undo."""

__version__ = "0.1.7"
PACKAGE_NAME = "epoch-planner"
