"""Kanban board view-model and the optimistic drag-and-drop reconciler.

The board is rebuilt from the task list on every load; the reconciler keeps
it in step with the user's drops until the next reload. Within-column order
is not persisted.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .schemas import KanbanBoard, KanbanColumn, TaskOut, TaskStatus

logger = logging.getLogger(__name__)

COLUMN_TITLES = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.REVIEW: "Review",
    TaskStatus.DONE: "Done",
}

PersistStatus = Callable[[int, str], object]
OnError = Callable[[int, Exception], None]


def build_board(tasks: Iterable[TaskOut]) -> KanbanBoard:
    """Partition tasks into the four status columns, keeping input order."""
    columns = {status: KanbanColumn(id=status, title=title, tasks=[]) for status, title in COLUMN_TITLES.items()}
    unrecognized: List[TaskOut] = []
    for task in tasks:
        try:
            status = TaskStatus(task.status)
        except ValueError:
            logger.warning(f"Task {task.id} has unrecognized status {task.status!r}")
            unrecognized.append(task)
            continue
        columns[status].tasks.append(task)
    return KanbanBoard(columns=columns, unrecognized=unrecognized)


class BoardReconciler:
    """
    Applies drops to an in-memory board immediately and persists status
    changes in the background. A failed write moves the task back to its
    last confirmed column.

    Writes for one task run one after another in drop order; a queued write
    that a newer drop has superseded is skipped.

    on_drop must be called from inside a running event loop; persist_status
    is a blocking callable run in the default executor.
    """

    def __init__(self, board: KanbanBoard, persist_status: PersistStatus, on_error: Optional[OnError] = None):
        self.board = board
        self._persist_status = persist_status
        self._on_error = on_error
        self.errors: List[Exception] = []
        # drop sequence per task; only the latest move of a task is written or rolled back
        self._latest: Dict[int, int] = {}
        self._seq = 0
        # last write per task, so the next one can wait for it
        self._pending: Dict[int, asyncio.Task] = {}
        # (column, index) the task last held in the store, while writes are in flight
        self._confirmed: Dict[int, Tuple[TaskStatus, int]] = {}

    def column(self, status) -> List[TaskOut]:
        return self.board.columns[TaskStatus(status)].tasks

    def on_drop(
        self,
        source_column: str,
        source_index: int,
        dest_column: Optional[str],
        dest_index: Optional[int],
        task_id: int,
    ) -> Optional[asyncio.Task]:
        """Returns the background persistence task, or None when nothing is persisted."""
        if dest_column is None or dest_index is None:
            return None

        source = TaskStatus(source_column)
        dest = TaskStatus(dest_column)
        if source == dest and source_index == dest_index:
            return None

        source_tasks = self.column(source)
        if not 0 <= source_index < len(source_tasks) or source_tasks[source_index].id != task_id:
            raise ValueError(f"Task {task_id} is not at {source.value}[{source_index}]")

        if source == dest:
            task = source_tasks.pop(source_index)
            source_tasks.insert(dest_index, task)
            return None

        task = source_tasks.pop(source_index)
        task.status = dest.value
        self.column(dest).insert(dest_index, task)

        self._seq += 1
        self._latest[task_id] = self._seq
        self._confirmed.setdefault(task_id, (source, source_index))
        previous = self._pending.get(task_id)
        pending = asyncio.get_running_loop().create_task(self._persist(self._seq, task_id, dest, dest_index, previous))
        self._pending[task_id] = pending
        return pending

    async def _persist(
        self,
        seq: int,
        task_id: int,
        dest: TaskStatus,
        dest_index: int,
        previous: Optional[asyncio.Task],
    ) -> bool:
        """False when this drop's write failed."""
        if previous is not None:
            await asyncio.wait([previous])
        if self._latest.get(task_id) != seq:
            logger.debug(f"Skipping superseded write of task {task_id} as {dest.value}")
            return True

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._persist_status, task_id, dest.value)
        except Exception as e:
            logger.warning(f"Persisting task {task_id} as {dest.value} failed: {e}")
            if self._latest.get(task_id) == seq:
                status, index = self._confirmed.pop(task_id)
                self._pending.pop(task_id, None)
                self._rollback(task_id, status, index)
            self.errors.append(e)
            if self._on_error:
                self._on_error(task_id, e)
            return False

        if self._latest.get(task_id) == seq:
            self._confirmed.pop(task_id, None)
            self._pending.pop(task_id, None)
        else:
            self._confirmed[task_id] = (dest, dest_index)
        return True

    def _rollback(self, task_id: int, status: TaskStatus, index: int) -> None:
        # the task may have been reordered since the drop; take it from wherever it is now
        for column in self.board.columns.values():
            for i, task in enumerate(column.tasks):
                if task.id == task_id:
                    column.tasks.pop(i)
                    task.status = status.value
                    tasks = self.column(status)
                    tasks.insert(min(index, len(tasks)), task)
                    return
