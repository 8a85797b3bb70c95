class ScheduleCycleError(ValueError):
    """
    Raised when the dependency graph contains a cycle.

    task_ids holds the ids found on the cycle (may be empty when the
    detector only knows that some nodes could not be ordered).
    """

    def __init__(self, message, task_ids=None):
        super().__init__(message)
        self.task_ids = list(task_ids or [])
