"""Core data models for CloudFormation stack inspection."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class StackStatus(StrEnum):
    """Lifecycle status of a CloudFormation stack."""

    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    CREATE_FAILED = "CREATE_FAILED"
    CREATE_COMPLETE = "CREATE_COMPLETE"
    ROLLBACK_IN_PROGRESS = "ROLLBACK_IN_PROGRESS"
    ROLLBACK_FAILED = "ROLLBACK_FAILED"
    ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"
    DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"
    DELETE_FAILED = "DELETE_FAILED"
    DELETE_COMPLETE = "DELETE_COMPLETE"
    UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
    UPDATE_COMPLETE_CLEANUP_IN_PROGRESS = "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS"
    UPDATE_COMPLETE = "UPDATE_COMPLETE"
    UPDATE_FAILED = "UPDATE_FAILED"
    UPDATE_ROLLBACK_IN_PROGRESS = "UPDATE_ROLLBACK_IN_PROGRESS"
    UPDATE_ROLLBACK_FAILED = "UPDATE_ROLLBACK_FAILED"
    UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS = "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS"
    UPDATE_ROLLBACK_COMPLETE = "UPDATE_ROLLBACK_COMPLETE"
    REVIEW_IN_PROGRESS = "REVIEW_IN_PROGRESS"
    IMPORT_IN_PROGRESS = "IMPORT_IN_PROGRESS"
    IMPORT_COMPLETE = "IMPORT_COMPLETE"
    IMPORT_ROLLBACK_IN_PROGRESS = "IMPORT_ROLLBACK_IN_PROGRESS"
    IMPORT_ROLLBACK_FAILED = "IMPORT_ROLLBACK_FAILED"
    IMPORT_ROLLBACK_COMPLETE = "IMPORT_ROLLBACK_COMPLETE"


class DetectionStatus(StrEnum):
    """Status of a drift detection operation."""

    IN_PROGRESS = "DETECTION_IN_PROGRESS"
    COMPLETE = "DETECTION_COMPLETE"
    FAILED = "DETECTION_FAILED"


class DriftStatus(StrEnum):
    """Overall stack drift status."""

    DRIFTED = "DRIFTED"
    IN_SYNC = "IN_SYNC"
    NOT_CHECKED = "NOT_CHECKED"
    UNKNOWN = "UNKNOWN"


class ResourceDriftStatus(StrEnum):
    """Individual resource drift status."""

    IN_SYNC = "IN_SYNC"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    NOT_CHECKED = "NOT_CHECKED"
    UNKNOWN = "UNKNOWN"
    UNSUPPORTED = "UNSUPPORTED"


class DiffType(StrEnum):
    """Property difference type."""

    ADD = "ADD"
    REMOVE = "REMOVE"
    NOT_EQUAL = "NOT_EQUAL"


@dataclass(frozen=True)
class StackSummary:
    """A stack as returned by ListStacks. Read only."""

    stack_name: str
    stack_id: str
    status: str
    creation_time: datetime | None = None
    last_updated_time: datetime | None = None
    deletion_time: datetime | None = None
    description: str = ""


@dataclass(frozen=True)
class StackParameter:
    key: str
    value: str
    resolved_value: str = ""
    use_previous_value: bool = False


@dataclass(frozen=True)
class StackOutput:
    key: str
    value: str
    export_name: str = ""
    description: str = ""


@dataclass(frozen=True)
class StackDetail:
    """Full stack metadata from DescribeStacks."""

    stack_name: str
    stack_id: str
    status: str
    creation_time: datetime | None = None
    last_updated_time: datetime | None = None
    status_reason: str = ""
    description: str = ""
    termination_protection: bool = False
    role_arn: str = ""
    drift_status: str = ""
    parameters: list[StackParameter] = field(default_factory=list)
    outputs: list[StackOutput] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)
    capabilities: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class StackEvent:
    """A single entry of a stack's event log."""

    event_id: str
    timestamp: datetime
    logical_id: str
    resource_type: str
    status: str
    reason: str = ""
    physical_id: str = ""


@dataclass(frozen=True)
class StackResource:
    """Current state of a physical resource in a stack."""

    logical_id: str
    physical_id: str
    resource_type: str
    status: str
    drift_status: str = ""


@dataclass(frozen=True)
class PropertyDiff:
    """A single property difference between expected and actual configuration."""

    property_path: str
    expected_value: str
    actual_value: str
    diff_type: DiffType


@dataclass(frozen=True)
class ResourceDrift:
    """Drift information for a single CloudFormation resource."""

    logical_id: str
    physical_id: str
    resource_type: str
    status: ResourceDriftStatus
    property_diffs: list[PropertyDiff]
    timestamp: datetime | None = None


@dataclass(frozen=True)
class DetectionRun:
    """Tracks a drift detection operation for polling."""

    detection_id: str
    stack_id: str
    stack_name: str
    status: DetectionStatus
    started_at: datetime
    stack_status: DriftStatus | None = None
    drifted_resource_count: int | None = None
    status_reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != DetectionStatus.IN_PROGRESS


@dataclass(frozen=True)
class DriftReport:
    """A completed detection run with its drifted resources."""

    run: DetectionRun
    resource_drifts: list[ResourceDrift]

    @property
    def stack_name(self) -> str:
        return self.run.stack_name

    @property
    def drifted(self) -> bool:
        return self.run.stack_status == DriftStatus.DRIFTED or bool(self.resource_drifts)


@dataclass(frozen=True)
class TemplateParameter:
    key: str
    default_value: str = ""
    no_echo: bool = False
    description: str = ""


@dataclass(frozen=True)
class TemplateValidation:
    """Provider response for a validated template."""

    description: str = ""
    parameters: list[TemplateParameter] = field(default_factory=list)
    capabilities: list[str] = field(default_factory=list)
    capabilities_reason: str = ""
