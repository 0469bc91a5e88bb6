"""
Exception hierarchy for local task execution.
Nothing raised here is retried by the task itself; the caller decides.
"""


class LocalTaskError(Exception):
    """Base class for every failure raised by a local task"""


class ConfigurationError(LocalTaskError):
    """Invalid task configuration or comparator pairing"""


class SpillIOError(LocalTaskError):
    """A spill segment could not be written or read"""


class ResourceExhaustedError(SpillIOError):
    """The temp filesystem ran out of space during a spill"""


class UserCallableError(LocalTaskError):
    """A user supplied function or comparator raised"""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage} function failed: {message}")
        self.stage = stage


class TaskAbortedError(LocalTaskError):
    """The task was cancelled before it completed"""


class PipelineStateError(LocalTaskError):
    """An operation was attempted in the wrong pipeline phase"""
