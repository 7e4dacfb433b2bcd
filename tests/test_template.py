"""Tests for template parsing and resource matching."""

import json

import pytest

from stackscope.errors import MalformedFilterInput, TemplateUnparseable
from stackscope.template import (
    MappingNode,
    NullNode,
    ResourceQuery,
    ScalarNode,
    SequenceNode,
    find_first,
    has_match,
    parse_property_filters,
    parse_template,
    resolve_path,
    to_node,
)

TWO_RESOURCES = json.dumps(
    {
        "Resources": {
            "A": {"Type": "T1", "Properties": {"X": "1"}},
            "B": {"Type": "T2", "Properties": {"X": {"Y": "2"}}},
        }
    }
)


def _find(body, **kwargs):
    return find_first(parse_template(body), ResourceQuery(**kwargs))


def test_type_filter_matches_only_declared_type():
    assert _find(TWO_RESOURCES, resource_type="T1") == "A"


def test_logical_id_filter():
    assert _find(TWO_RESOURCES, logical_id="B") == "B"


def test_nested_property_filter():
    assert _find(TWO_RESOURCES, properties={"X.Y": "2"}) == "B"


def test_type_and_property_combined():
    assert _find(TWO_RESOURCES, resource_type="T1", properties={"X": "1"}) == "A"


def test_type_and_property_combined_no_match():
    assert _find(TWO_RESOURCES, resource_type="T1", properties={"X": "2"}) is None


def test_type_filter_is_exact_not_substring():
    assert _find(TWO_RESOURCES, resource_type="T") is None


def test_first_match_in_declaration_order():
    assert _find(TWO_RESOURCES, properties={}) == "A"


def test_yaml_template_nested_property(yaml_template):
    assert _find(yaml_template, properties={"Versioning.Status": "Enabled"}) == "LogBucket"


def test_yaml_short_form_ref_is_expanded(yaml_template):
    query = {"LoggingConfiguration.DestinationBucketName.Ref": "LogBucket"}
    assert _find(yaml_template, properties=query) == "AppBucket"


def test_yaml_boolean_compares_as_lowercase_text(yaml_template):
    assert _find(yaml_template, properties={"FifoTopic": "true"}) == "Topic"


def test_intrinsic_value_is_not_a_scalar(yaml_template):
    assert _find(yaml_template, properties={"BucketName": "${AWS::StackName}-logs"}) is None


def test_getatt_short_form_splits_attribute(yaml_template):
    template = parse_template(yaml_template)
    topic_name = resolve_path(
        template.get("Resources").get("Topic").get("Properties"), "TopicName.Fn::GetAtt"
    )
    assert topic_name == SequenceNode((ScalarNode("AppBucket"), ScalarNode("Arn")))


def test_ignore_case_applies_to_type_name_and_property(yaml_template):
    query = dict(
        resource_type="aws::s3::bucket",
        logical_id="logbucket",
        properties={"versioning.status": "ENABLED"},
        ignore_case=True,
    )
    assert _find(yaml_template, **query) == "LogBucket"


def test_case_sensitive_by_default(yaml_template):
    assert _find(yaml_template, properties={"versioning.status": "Enabled"}) is None


def test_missing_resources_section_is_no_match():
    assert _find('{"AWSTemplateFormatVersion": "2010-09-09"}', resource_type="T1") is None


def test_non_mapping_resources_section_is_no_match():
    assert _find('{"Resources": ["A", "B"]}', resource_type="T1") is None


def test_resource_without_properties_skipped_for_property_filter():
    body = json.dumps({"Resources": {"Bare": {"Type": "T1"}}})
    assert _find(body, properties={"X": "1"}) is None
    assert _find(body, resource_type="T1") == "Bare"


def test_numeric_values_compare_as_text():
    body = json.dumps({"Resources": {"Q": {"Type": "T", "Properties": {"Delay": 5, "Ratio": 2.0}}}})
    assert _find(body, properties={"Delay": "5", "Ratio": "2"}) == "Q"


YAML_11_SCALARS = """
Resources:
  Db:
    Type: AWS::RDS::DBInstance
    Properties:
      MultiAZ: yes
      Encrypted: off
      Window: 2020-01-01 10:00:00
      Port: 1:30
      Mode: 0755
      Weight: 1.5
      Retries: 3
"""


@pytest.mark.parametrize(
    "key,value",
    [
        ("MultiAZ", "yes"),
        ("Encrypted", "off"),
        ("Window", "2020-01-01 10:00:00"),
        ("Port", "1:30"),
        ("Mode", "0755"),
        ("Weight", "1.5"),
        ("Retries", "3"),
    ],
)
def test_yaml_scalars_keep_their_written_text(key, value):
    assert has_match(YAML_11_SCALARS, ResourceQuery(properties={key: value}))


def test_yaml_yes_is_not_a_boolean():
    assert not has_match(YAML_11_SCALARS, ResourceQuery(properties={"MultiAZ": "true"}))


def test_self_referencing_anchor_is_unparseable():
    with pytest.raises(TemplateUnparseable):
        parse_template("Resources: &x\n  A: [*x]\n")


def test_nested_lookup_resolves_value():
    node = to_node({"Versioning": {"Status": "Enabled"}})
    assert resolve_path(node, "Versioning.Status") == ScalarNode("Enabled")


def test_nested_lookup_through_scalar_is_absent():
    node = to_node({"Versioning": "Enabled"})
    assert resolve_path(node, "Versioning.Status") is None


def test_null_value_is_not_a_match():
    body = json.dumps({"Resources": {"R": {"Type": "T", "Properties": {"X": None}}}})
    template = parse_template(body)
    props = template.get("Resources").get("R").get("Properties")
    assert isinstance(props.get("X"), NullNode)
    assert _find(body, properties={"X": "None"}) is None


def test_node_accessors_are_total():
    assert ScalarNode("a").get("anything") is None
    assert SequenceNode((ScalarNode("a"),)).text is None
    assert MappingNode({}).text is None
    assert NullNode().get("x") is None


def test_has_match():
    assert has_match(TWO_RESOURCES, ResourceQuery(resource_type="T2"))
    assert not has_match(TWO_RESOURCES, ResourceQuery(resource_type="T3"))


@pytest.mark.parametrize("body", ["", "   ", "{not json: [", "just a string", "- a\n- b\n"])
def test_unparseable_templates(body):
    with pytest.raises(TemplateUnparseable):
        parse_template(body)


def test_parse_property_filters():
    assert parse_property_filters(["BucketName=foo", "Versioning.Status=Enabled", "Tag=a=b"]) == {
        "BucketName": "foo",
        "Versioning.Status": "Enabled",
        "Tag": "a=b",
    }


def test_parse_property_filters_allows_empty_value():
    assert parse_property_filters(["Name="]) == {"Name": ""}


@pytest.mark.parametrize("entry", ["novalue", "=value", "a..b=c", ".a=b"])
def test_parse_property_filters_rejects_malformed(entry):
    with pytest.raises(MalformedFilterInput):
        parse_property_filters([entry])


def test_malformed_filter_is_a_value_error():
    with pytest.raises(ValueError):
        parse_property_filters(["oops"])


def test_query_describe():
    query = ResourceQuery(resource_type="AWS::S3::Bucket", logical_id="Logs", properties={"A.B": "c"})
    assert query.describe() == "resource 'Logs' of type 'AWS::S3::Bucket' with properties: A.B='c'"
    assert ResourceQuery(resource_type="T").describe() == "resources of type 'T'"
    assert not ResourceQuery().active
