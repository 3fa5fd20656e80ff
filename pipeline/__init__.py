"""Pipeline execution modules for TalentScout."""

from .control import RunRegistry
from .runner import run_search_pipeline, SearchPipelineResult

__all__ = ['run_search_pipeline', 'SearchPipelineResult', 'RunRegistry']
