class GoalError(ValueError):
    """A goal change was rejected (empty, duplicate, missing or mismatched)."""


class ClientNotFoundError(KeyError):
    """No client with the requested id exists in the directory."""


class FormDataError(ValueError):
    """Session data is too incomplete to build a pre-populated form."""


class WorkflowError(ValueError):
    """A session workflow step was attempted out of order."""
