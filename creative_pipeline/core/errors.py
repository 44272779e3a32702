class PipelineError(RuntimeError):
    """Base class for failures raised by pipeline stages."""


class ConfigurationError(PipelineError):
    """A required credential or binary is missing."""


class SourceUnavailable(PipelineError):
    """The performance tab is unreachable or misnamed. Aborts before generation."""


class GenerationFailed(PipelineError):
    """The aggregated (Batch) generation call failed or returned too few scripts."""


class SynthesisFailed(PipelineError):
    pass


class CompositionFailed(PipelineError):
    pass


class SinkWriteFailed(PipelineError):
    pass


class NotifyFailed(PipelineError):
    pass
