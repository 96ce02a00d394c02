"""
Pipeline execution: readers, writers and the engine that drives them.
"""

from .engine import PipelineEngine

__all__ = ["PipelineEngine"]
