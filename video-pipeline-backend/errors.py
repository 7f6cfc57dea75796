"""
Exceptions raised by the pipeline services.
Routers translate them into HTTPException; the workers record them on the job.
"""


class PipelineError(Exception):
    """Base class for pipeline failures."""


class ProviderError(PipelineError):
    """An external generation API returned nothing usable."""


class StorageError(PipelineError):
    """Object storage upload or download failed."""


class AssemblyError(PipelineError):
    """An ffmpeg/ffprobe invocation failed."""


class DispatchError(PipelineError):
    """The stitcher run could not be triggered."""


class InvalidTransition(PipelineError):
    """A job status change that would move the job backwards."""
