"""Map status flags to the StackStatusFilter sent to ListStacks."""

from stackscope.models import StackStatus

SUCCESS_STATUSES: tuple[StackStatus, ...] = (
    StackStatus.CREATE_COMPLETE,
    StackStatus.UPDATE_COMPLETE,
    StackStatus.ROLLBACK_COMPLETE,
    StackStatus.UPDATE_ROLLBACK_COMPLETE,
    StackStatus.IMPORT_COMPLETE,
    StackStatus.IMPORT_ROLLBACK_COMPLETE,
)

COMPLETE_STATUSES: tuple[StackStatus, ...] = SUCCESS_STATUSES + (StackStatus.DELETE_COMPLETE,)

DELETED_STATUSES: tuple[StackStatus, ...] = (
    StackStatus.DELETE_IN_PROGRESS,
    StackStatus.DELETE_FAILED,
    StackStatus.DELETE_COMPLETE,
)

IN_PROGRESS_STATUSES: tuple[StackStatus, ...] = (
    StackStatus.CREATE_IN_PROGRESS,
    StackStatus.DELETE_IN_PROGRESS,
    StackStatus.ROLLBACK_IN_PROGRESS,
    StackStatus.UPDATE_IN_PROGRESS,
    StackStatus.UPDATE_COMPLETE_CLEANUP_IN_PROGRESS,
    StackStatus.UPDATE_ROLLBACK_IN_PROGRESS,
    StackStatus.UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS,
    StackStatus.REVIEW_IN_PROGRESS,
    StackStatus.IMPORT_IN_PROGRESS,
    StackStatus.IMPORT_ROLLBACK_IN_PROGRESS,
)


def resolve_status_filters(
    all_: bool = False,
    complete: bool = False,
    deleted: bool = False,
    in_progress: bool = False,
) -> list[StackStatus]:
    """Return the statuses to request, in a stable order.

    An empty list means no filter: the provider then returns everything
    except DELETE_COMPLETE. ``all_`` wins over every other flag. With no flag
    set, only stacks that finished successfully are requested. The remaining
    flags are combined as a union.
    """
    if all_:
        return []

    if not (complete or deleted or in_progress):
        return list(SUCCESS_STATUSES)

    selected: list[StackStatus] = []
    if complete:
        selected.extend(COMPLETE_STATUSES)
    if deleted:
        selected.extend(DELETED_STATUSES)
    if in_progress:
        selected.extend(IN_PROGRESS_STATUSES)
    return list(dict.fromkeys(selected))
