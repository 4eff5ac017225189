"""Initialization primitives: dependency ordering and at-most-once construction."""

from .scheduler import CapabilityTask, schedule
from .singleton import SingletonRegistry

__all__ = ["CapabilityTask", "SingletonRegistry", "schedule"]
