"""Thin boto3 wrapper for the CloudFormation calls stackscope needs."""

import json
from collections.abc import Iterable
from datetime import UTC, datetime

import boto3

from stackscope.errors import StackscopeError
from stackscope.models import (
    DetectionRun,
    DetectionStatus,
    DiffType,
    DriftStatus,
    PropertyDiff,
    ResourceDrift,
    ResourceDriftStatus,
    StackDetail,
    StackEvent,
    StackOutput,
    StackParameter,
    StackResource,
    StackSummary,
    TemplateParameter,
    TemplateValidation,
)

DRIFTED_RESOURCE_FILTERS = (ResourceDriftStatus.MODIFIED, ResourceDriftStatus.DELETED)


class CloudFormationClient:
    """Wraps boto3 CloudFormation calls and returns stackscope dataclasses."""

    def __init__(self, region: str | None = None):
        self._client = boto3.client("cloudformation", **({"region_name": region} if region else {}))

    def list_stacks(self, status_filters: Iterable[str] | None = None) -> list[StackSummary]:
        """List stack summaries. No filters means the provider default."""
        kwargs: dict = {}
        statuses = [str(s) for s in status_filters or ()]
        if statuses:
            kwargs["StackStatusFilter"] = statuses

        paginator = self._client.get_paginator("list_stacks")
        results = []
        for page in paginator.paginate(**kwargs):
            for stack in page["StackSummaries"]:
                results.append(
                    StackSummary(
                        stack_name=stack["StackName"],
                        stack_id=stack["StackId"],
                        status=stack["StackStatus"],
                        creation_time=stack.get("CreationTime"),
                        last_updated_time=stack.get("LastUpdatedTime"),
                        deletion_time=stack.get("DeletionTime"),
                        description=stack.get("TemplateDescription", ""),
                    )
                )
        return results

    def describe_stack(self, stack_name: str) -> StackDetail:
        resp = self._client.describe_stacks(StackName=stack_name)
        if not resp["Stacks"]:
            raise StackscopeError(f"stack {stack_name!r} not found")
        stack = resp["Stacks"][0]

        return StackDetail(
            stack_name=stack["StackName"],
            stack_id=stack["StackId"],
            status=stack["StackStatus"],
            creation_time=stack.get("CreationTime"),
            last_updated_time=stack.get("LastUpdatedTime"),
            status_reason=stack.get("StackStatusReason", ""),
            description=stack.get("Description", ""),
            termination_protection=stack.get("EnableTerminationProtection", False),
            role_arn=stack.get("RoleARN", ""),
            drift_status=stack.get("DriftInformation", {}).get("StackDriftStatus", ""),
            parameters=[
                StackParameter(
                    key=p["ParameterKey"],
                    value=p.get("ParameterValue", ""),
                    resolved_value=p.get("ResolvedValue", ""),
                    use_previous_value=p.get("UsePreviousValue", False),
                )
                for p in stack.get("Parameters", [])
            ],
            outputs=[
                StackOutput(
                    key=o["OutputKey"],
                    value=o.get("OutputValue", ""),
                    export_name=o.get("ExportName", ""),
                    description=o.get("Description", ""),
                )
                for o in stack.get("Outputs", [])
            ],
            tags={t["Key"]: t["Value"] for t in stack.get("Tags", [])},
            capabilities=list(stack.get("Capabilities", [])),
        )

    def get_template(self, stack_name: str) -> str:
        """Fetch the original (pre-transform) template body of a stack."""
        resp = self._client.get_template(StackName=stack_name, TemplateStage="Original")
        body = resp.get("TemplateBody", "")
        # boto3 hands JSON templates back already decoded.
        if not isinstance(body, str):
            body = json.dumps(body)
        return body

    def list_events(self, stack_name: str, limit: int = 0) -> list[StackEvent]:
        """Stack events, newest first. ``limit=0`` fetches the whole log."""
        paginator = self._client.get_paginator("describe_stack_events")
        results: list[StackEvent] = []
        for page in paginator.paginate(StackName=stack_name):
            for event in page["StackEvents"]:
                results.append(
                    StackEvent(
                        event_id=event["EventId"],
                        timestamp=event["Timestamp"],
                        logical_id=event.get("LogicalResourceId", ""),
                        resource_type=event.get("ResourceType", ""),
                        status=event.get("ResourceStatus", ""),
                        reason=event.get("ResourceStatusReason", ""),
                        physical_id=event.get("PhysicalResourceId", ""),
                    )
                )
            if limit > 0 and len(results) >= limit:
                return results[:limit]
        return results

    def list_resources(self, stack_name: str) -> list[StackResource]:
        paginator = self._client.get_paginator("list_stack_resources")
        results = []
        for page in paginator.paginate(StackName=stack_name):
            for resource in page["StackResourceSummaries"]:
                results.append(
                    StackResource(
                        logical_id=resource["LogicalResourceId"],
                        physical_id=resource.get("PhysicalResourceId", ""),
                        resource_type=resource["ResourceType"],
                        status=resource["ResourceStatus"],
                        drift_status=resource.get("DriftInformation", {}).get(
                            "StackResourceDriftStatus", ""
                        ),
                    )
                )
        return results

    def detect_drift(self, stack_name: str) -> DetectionRun:
        """Trigger drift detection for a stack. Returns a DetectionRun for polling."""
        response = self._client.detect_stack_drift(StackName=stack_name)
        detection_id = response["StackDriftDetectionId"]

        desc = self._client.describe_stacks(StackName=stack_name)
        stack_id = desc["Stacks"][0]["StackId"]

        return DetectionRun(
            detection_id=detection_id,
            stack_id=stack_id,
            stack_name=stack_name,
            status=DetectionStatus.IN_PROGRESS,
            started_at=datetime.now(UTC),
        )

    def poll_detection(self, detection_id: str, stack_name: str) -> DetectionRun:
        """Check status of a drift detection operation."""
        resp = self._client.describe_stack_drift_detection_status(
            StackDriftDetectionId=detection_id
        )

        status = DetectionStatus(resp["DetectionStatus"])
        stack_status = None
        drifted_count = None
        status_reason = None

        if status == DetectionStatus.COMPLETE:
            stack_status = DriftStatus(resp["StackDriftStatus"])
            drifted_count = resp.get("DriftedStackResourceCount", 0)
        elif status == DetectionStatus.FAILED:
            status_reason = resp.get("DetectionStatusReason")

        return DetectionRun(
            detection_id=detection_id,
            stack_id=resp["StackId"],
            stack_name=stack_name,
            status=status,
            started_at=resp["Timestamp"],
            stack_status=stack_status,
            drifted_resource_count=drifted_count,
            status_reason=status_reason,
        )

    def get_resource_drifts(
        self,
        stack_name: str,
        status_filters: Iterable[str] = DRIFTED_RESOURCE_FILTERS,
    ) -> list[ResourceDrift]:
        """Fetch resource-level drift details, by default only MODIFIED and DELETED."""
        results = []
        next_token = None

        while True:
            kwargs: dict = {
                "StackName": stack_name,
                "StackResourceDriftStatusFilters": [str(s) for s in status_filters],
            }
            if next_token:
                kwargs["NextToken"] = next_token

            resp = self._client.describe_stack_resource_drifts(**kwargs)

            for resource in resp["StackResourceDrifts"]:
                property_diffs = [
                    PropertyDiff(
                        property_path=pd["PropertyPath"],
                        expected_value=pd.get("ExpectedValue", ""),
                        actual_value=pd.get("ActualValue", ""),
                        diff_type=DiffType(pd["DifferenceType"]),
                    )
                    for pd in resource.get("PropertyDifferences", [])
                ]

                results.append(
                    ResourceDrift(
                        logical_id=resource["LogicalResourceId"],
                        physical_id=resource.get("PhysicalResourceId", ""),
                        resource_type=resource["ResourceType"],
                        status=ResourceDriftStatus(resource["StackResourceDriftStatus"]),
                        property_diffs=property_diffs,
                        timestamp=resource.get("Timestamp"),
                    )
                )

            next_token = resp.get("NextToken")
            if not next_token:
                break

        return results

    def validate_template(self, template_body: str) -> TemplateValidation:
        """Ask CloudFormation to validate a template body."""
        resp = self._client.validate_template(TemplateBody=template_body)
        return TemplateValidation(
            description=resp.get("Description", ""),
            parameters=[
                TemplateParameter(
                    key=p["ParameterKey"],
                    default_value=p.get("DefaultValue", ""),
                    no_echo=p.get("NoEcho", False),
                    description=p.get("Description", ""),
                )
                for p in resp.get("Parameters", [])
            ],
            capabilities=list(resp.get("Capabilities", [])),
            capabilities_reason=resp.get("CapabilitiesReason", ""),
        )
