from .runner import PipelineOrchestrator
from .stage_runner import StageRunner
from .assembler import assemble

__all__ = ['PipelineOrchestrator', 'StageRunner', 'assemble']
