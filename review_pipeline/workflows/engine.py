"""Assignment and review state machine.

Tasks move Open -> Assigned -> Submitted and then either stay completed
(accepted) or go back to Open (rejected). Each submission opens a fresh
review which moves Pending -> Assigned -> Accepted | Rejected.
"""

import copy
import logging
import threading
from concurrent.futures import Future
from enum import Enum
from typing import Optional, Sequence, Union

from ..collaborators import Clock, IdentityProvider, SystemClock
from ..errors import (
    AlreadyAdjudicated,
    AlreadyAssigned,
    AlreadyCompleted,
    NotAssignee,
    NotQueued,
    NotReviewer,
)
from ..models.review import ReviewStatus, ReviewTask
from ..models.task import Task, TaskStatus
from .payout import PayoutTrigger
from .queue import WorkQueue
from .stores import ReviewStore, TaskStore

logger = logging.getLogger(__name__)

# 1 NEAR expressed in yoctoNEAR
DEFAULT_REWARD_AMOUNT = 10**24

# Number of caption slots a worker can fill in one submission
MAX_DESCRIPTIONS = 4


class RejectionPolicy(Enum):
    """What happens to a task when its review is rejected."""

    LENIENT = "lenient"  # Reset the task and put it back in the task queue
    STRICT = "strict"    # Delete the task; the work has to be republished


def join_descriptions(description: Union[str, Sequence[Optional[str]]]) -> str:
    """Normalize a submission to a single description string.

    Accepts either a plain string or up to four caption slots, where empty
    slots are ``None``. Filled slots are joined with ``;``.
    """
    if isinstance(description, str):
        return description

    slots = list(description)
    if len(slots) > MAX_DESCRIPTIONS:
        raise ValueError(
            f"At most {MAX_DESCRIPTIONS} descriptions per submission, got {len(slots)}"
        )
    for slot in slots:
        if slot is not None and not isinstance(slot, str):
            raise ValueError(f"Descriptions must be strings or empty, got {slot!r}")
    return ";".join(d for d in slots if d is not None)


class WorkflowEngine:
    """Publishes tasks, hands them out, and routes submissions through review.

    All task, review and queue state sits behind a single lock. Every
    operation, reads included, runs under it, so callers never see a queue
    entry removed without the matching record update. Records handed out by
    the read operations are copies.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        clock: Optional[Clock] = None,
        payout: Optional[PayoutTrigger] = None,
        payout_account: Optional[str] = None,
        reward_amount: int = DEFAULT_REWARD_AMOUNT,
        rejection_policy: RejectionPolicy = RejectionPolicy.LENIENT,
        tasks: Optional[TaskStore] = None,
        reviews: Optional[ReviewStore] = None,
        task_queue: Optional[WorkQueue] = None,
        review_queue: Optional[WorkQueue] = None,
    ):
        self.identity = identity
        self.clock = clock or SystemClock()
        self.payout = payout
        self.payout_account = payout_account
        self.reward_amount = reward_amount
        self.rejection_policy = rejection_policy

        self.tasks = tasks if tasks is not None else TaskStore()
        self.reviews = reviews if reviews is not None else ReviewStore()
        self.task_queue = task_queue if task_queue is not None else WorkQueue("task")
        self.review_queue = review_queue if review_queue is not None else WorkQueue("review")

        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """The lock guarding all engine state."""
        return self._lock

    # === Tasks ===

    def publish(self, image_url: str) -> int:
        """Create a task and queue it for workers."""
        with self._lock:
            task_id = self.tasks.next_id()
            self.tasks.insert(task_id, Task(id=task_id, image_url=image_url))
            self.task_queue.push(task_id)

        logger.info("Published task %s (%s)", task_id, image_url)
        return task_id

    def assign_task(self, task_id: int, worker: str) -> None:
        """Hand a queued task to a worker."""
        with self._lock:
            if task_id not in self.task_queue:
                raise NotQueued(f"Task {task_id} is not in the task queue")

            task = self.tasks.require(task_id)
            if task.assigned_to is not None:
                raise AlreadyAssigned(f"Task {task_id} is already assigned to {task.assigned_to}")

            task.assign(worker, self.clock.now())
            self.tasks.update(task_id, task)
            self.task_queue.remove(task_id)

        logger.info("Assigned task %s to %s", task_id, worker)

    def submit_task(
        self,
        task_id: int,
        description: Union[str, Sequence[Optional[str]]],
    ) -> int:
        """Hand in the caller's work on a task and open a review for it.

        Returns the id of the new review.
        """
        text = join_descriptions(description)
        caller = self.identity.current_principal()

        with self._lock:
            task = self.tasks.require(task_id)
            if caller is None or task.assigned_to != caller:
                raise NotAssignee(f"{caller} is not assigned to task {task_id}")
            if task.completed:
                raise AlreadyCompleted(f"Task {task_id} is already completed")

            task.submit(text)
            self.tasks.update(task_id, task)

            review_id = self.reviews.next_id()
            self.reviews.insert(
                review_id,
                ReviewTask(id=review_id, task_id=task_id, description=text),
            )
            self.review_queue.push(review_id)

        logger.info("Task %s submitted by %s, review %s opened", task_id, caller, review_id)
        return review_id

    # === Reviews ===

    def assign_review_task(self, review_id: int, reviewer: str) -> None:
        """Hand a queued review to a reviewer."""
        with self._lock:
            if review_id not in self.review_queue:
                raise NotQueued(f"Review {review_id} is not in the review queue")

            review = self.reviews.require(review_id)
            if review.reviewed_by is not None:
                raise AlreadyAssigned(
                    f"Review {review_id} is already assigned to {review.reviewed_by}"
                )

            review.assign(reviewer, self.clock.now())
            self.reviews.update(review_id, review)
            self.review_queue.remove(review_id)

        logger.info("Assigned review %s to %s", review_id, reviewer)

    def adjudicate(self, review_id: int, accept: bool) -> Optional[Future]:
        """Record the calling reviewer's verdict on a review.

        Accepting triggers the fixed reward payout once the verdict is stored
        and returns the payout future. Rejecting applies the rejection policy
        to the reviewed task.
        """
        caller = self.identity.current_principal()

        with self._lock:
            review = self.reviews.require(review_id)
            if review.adjudicated:
                raise AlreadyAdjudicated(f"Review {review_id} has already been decided")
            if review.reviewed_by is None or review.reviewed_by != caller:
                raise NotReviewer(f"{caller} is not the reviewer of review {review_id}")

            task = self.tasks.require(review.task_id)
            now = self.clock.now()

            review.decide(accept, now)
            self.reviews.update(review_id, review)
            task.mark_reviewed(caller, now)

            if accept:
                self.tasks.update(task.id, task)
            else:
                self._recycle(task)

        if not accept:
            logger.warning("Review %s rejected task %s", review_id, task.id)
            return None

        logger.info("Review %s accepted task %s", review_id, task.id)
        return self._pay_out(review_id, task.id)

    def _recycle(self, task: Task) -> None:
        """Apply the rejection policy. Caller holds the lock."""
        if self.rejection_policy is RejectionPolicy.STRICT:
            self.tasks.remove(task.id)
            logger.info("Task %s deleted after rejection", task.id)
            return

        task.reopen()
        self.tasks.update(task.id, task)
        self.task_queue.push(task.id)

    def _pay_out(self, review_id: int, task_id: int) -> Optional[Future]:
        if self.payout is None or not self.payout_account:
            logger.warning("No payout configured, review %s accepted without payment", review_id)
            return None

        # Verdict is already stored at this point
        try:
            return self.payout.trigger(
                self.reward_amount,
                self.payout_account,
                review_id=review_id,
                task_id=task_id,
            )
        except Exception:
            logger.error(
                "Could not schedule payout for review %s", review_id, exc_info=True,
            )
            return None

    # === Reads ===

    def get_task(self, task_id: int) -> Optional[Task]:
        """Get a copy of a task, or None."""
        with self._lock:
            return copy.deepcopy(self.tasks.get(task_id))

    def get_review_task(self, review_id: int) -> Optional[ReviewTask]:
        """Get a copy of a review, or None."""
        with self._lock:
            return copy.deepcopy(self.reviews.get(review_id))

    def reviews_for_task(self, task_id: int) -> list[ReviewTask]:
        """Review history of a task, oldest first."""
        with self._lock:
            return copy.deepcopy(self.reviews.for_task(task_id))

    def task_queue_snapshot(self) -> list[int]:
        with self._lock:
            return self.task_queue.snapshot()

    def review_queue_snapshot(self) -> list[int]:
        with self._lock:
            return self.review_queue.snapshot()

    get_review_queue = review_queue_snapshot

    def task_queue_len(self) -> int:
        with self._lock:
            return len(self.task_queue)

    def review_queue_len(self) -> int:
        with self._lock:
            return len(self.review_queue)

    def statistics(self) -> dict:
        """Counts of tasks and reviews per status, plus queue lengths."""
        with self._lock:
            stats = {
                "total_tasks": len(self.tasks),
                "total_reviews": len(self.reviews),
                "tasks_by_status": {s.value: 0 for s in TaskStatus},
                "reviews_by_status": {s.value: 0 for s in ReviewStatus},
                "task_queue_len": len(self.task_queue),
                "review_queue_len": len(self.review_queue),
                "acceptance_rate": 0.0,
            }

            for task in self.tasks.values():
                stats["tasks_by_status"][task.status.value] += 1
            for review in self.reviews.values():
                stats["reviews_by_status"][review.status.value] += 1

        accepted = stats["reviews_by_status"][ReviewStatus.ACCEPTED.value]
        decided = accepted + stats["reviews_by_status"][ReviewStatus.REJECTED.value]
        if decided > 0:
            stats["acceptance_rate"] = (accepted / decided) * 100

        return stats
