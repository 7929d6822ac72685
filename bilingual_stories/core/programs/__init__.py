from .story_pipeline import StoryPipeline, PipelineRun, PipelineState

__all__ = [
    "StoryPipeline",
    "PipelineRun",
    "PipelineState",
]
