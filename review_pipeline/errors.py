"""Error taxonomy for workflow operations.

Every error raised by the engine is a caller error: it is raised before any
state is touched, so a failed operation leaves tasks, reviews and queues as
they were.
"""


class WorkflowError(Exception):
    """Base class for errors surfaced to the caller of a workflow operation."""

    code = "workflow_error"


class NotQueued(WorkflowError):
    """The id is not waiting in the queue it was claimed from."""

    code = "not_queued"


class AlreadyAssigned(WorkflowError):
    """The task or review already has an assignee."""

    code = "already_assigned"


class NotFound(WorkflowError):
    """No record exists for the given id."""

    code = "not_found"


class InvalidTaskId(NotFound):
    code = "invalid_task_id"


class InvalidReviewId(NotFound):
    code = "invalid_review_id"


class NotAssignee(WorkflowError):
    """The caller is not the worker the task is assigned to."""

    code = "not_assignee"


class NotReviewer(WorkflowError):
    """The caller is not the reviewer the review is assigned to."""

    code = "not_reviewer"


class AlreadyCompleted(WorkflowError):
    code = "already_completed"


class AlreadyAdjudicated(WorkflowError):
    code = "already_adjudicated"


class DuplicateEntry(WorkflowError):
    """An id was pushed onto a queue that already holds it.

    Never raised under correct sequencing; seeing it means queue state has
    drifted from the record stores.
    """

    code = "duplicate_entry"


class ConfigError(Exception):
    """Configuration file is missing, unreadable or invalid."""
