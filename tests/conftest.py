"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import boto3
import pytest
from moto import mock_aws

from stackscope.models import StackEvent


@pytest.fixture
def aws_credentials(monkeypatch):
    """Set dummy AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def cfn_client(aws_credentials):
    """Create a moto-mocked CloudFormation boto3 client."""
    with mock_aws():
        yield boto3.client("cloudformation", region_name="us-east-1")


SIMPLE_TEMPLATE = """{
    "AWSTemplateFormatVersion": "2010-09-09",
    "Description": "Simple queue stack",
    "Resources": {
        "MyQueue": {
            "Type": "AWS::SQS::Queue",
            "Properties": {
                "QueueName": "my-test-queue"
            }
        }
    },
    "Outputs": {
        "QueueName": {
            "Value": "my-test-queue",
            "Description": "Name of the queue"
        }
    }
}"""

YAML_TEMPLATE = """
AWSTemplateFormatVersion: 2010-09-09
Resources:
  LogBucket:
    Type: AWS::S3::Bucket
    Properties:
      BucketName: !Sub "${AWS::StackName}-logs"
      Versioning:
        Status: Enabled
  AppBucket:
    Type: AWS::S3::Bucket
    Properties:
      BucketName: app-bucket
      VersioningConfiguration:
        Status: Suspended
      LoggingConfiguration:
        DestinationBucketName: !Ref LogBucket
  Topic:
    Type: AWS::SNS::Topic
    Properties:
      FifoTopic: true
      TopicName: !GetAtt AppBucket.Arn
"""


@pytest.fixture
def simple_template():
    return SIMPLE_TEMPLATE


@pytest.fixture
def yaml_template():
    return YAML_TEMPLATE


class FakeTicker:
    """Virtual-time ticker: each wait advances the clock by one interval.

    With ``ticks`` set, the ticker reports cancellation after that many waits.
    """

    def __init__(self, interval: float = 3.0, ticks: int | None = None):
        self.interval = interval
        self.waits = 0
        self._remaining = ticks
        self._now = 0.0
        self._cancelled = False

    @property
    def elapsed(self) -> float:
        return self._now

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def wait(self) -> bool:
        if self._cancelled:
            return False
        if self._remaining is not None:
            if self._remaining == 0:
                self._cancelled = True
                return False
            self._remaining -= 1
        self.waits += 1
        self._now += self.interval
        return True


@pytest.fixture
def fake_ticker():
    """Factory for virtual-time tickers."""
    return FakeTicker


BASE_TIME = datetime(2026, 2, 25, 13, 0, 0, tzinfo=UTC)


def _make_event(event_id, offset=0, logical_id="MyQueue", status="UPDATE_COMPLETE"):
    return StackEvent(
        event_id=event_id,
        timestamp=BASE_TIME + timedelta(seconds=offset),
        logical_id=logical_id,
        resource_type="AWS::SQS::Queue",
        status=status,
        reason="",
    )


@pytest.fixture
def make_event():
    """Build a StackEvent ``offset`` seconds after a fixed base time."""
    return _make_event
