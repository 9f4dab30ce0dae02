"""
StateKit Saga Module

Effect relay and effect-driven workflows.
"""

from .processor import SagaProcessor, Saga

__all__ = ["SagaProcessor", "Saga"]
