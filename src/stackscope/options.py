"""Explicit configuration values passed into each command's components."""

from dataclasses import dataclass

from stackscope.models import StackStatus
from stackscope.statuses import resolve_status_filters

DEFAULT_DRIFT_POLL_INTERVAL = 3.0
DEFAULT_DRIFT_TIMEOUT = 600.0
DEFAULT_TAIL_INTERVAL = 5.0


@dataclass(frozen=True)
class GlobalOptions:
    """Settings shared by every subcommand."""

    region: str | None = None
    show_headers: bool = True


@dataclass(frozen=True)
class QueryOptions:
    """Stack listing filters."""

    name_filter: str = ""
    desc_contains: str = ""
    desc_excludes: str = ""
    ignore_case: bool = False
    show_all: bool = False
    complete: bool = False
    deleted: bool = False
    in_progress: bool = False

    @property
    def has_status_flags(self) -> bool:
        return self.show_all or self.complete or self.deleted or self.in_progress

    def status_filters(self, resource_search: bool = False) -> list[StackStatus]:
        """Statuses to request from ListStacks.

        A resource search with no explicit status flag sends no filter, so
        every stack the provider lists by default is searched.
        """
        if resource_search and not self.has_status_flags:
            return []
        return resolve_status_filters(
            all_=self.show_all,
            complete=self.complete,
            deleted=self.deleted,
            in_progress=self.in_progress,
        )


@dataclass(frozen=True)
class DriftOptions:
    """Drift detection polling settings. ``timeout=None`` polls until cancelled."""

    wait: bool = True
    poll_interval: float = DEFAULT_DRIFT_POLL_INTERVAL
    timeout: float | None = DEFAULT_DRIFT_TIMEOUT


@dataclass(frozen=True)
class TailOptions:
    interval: float = DEFAULT_TAIL_INTERVAL
    show_headers: bool = True
