"""Tests for the exception hierarchy."""

import pytest

from deployconf.exceptions import (
    ConfigError,
    DecodeError,
    DeployConfError,
    PolicyApplicationError,
    ValidationError,
)


class TestDeployConfError:
    def test_str_includes_code_and_context(self):
        cause = ValueError("boom")
        error = DeployConfError(
            "Something failed",
            error_code="E1",
            context={"resource_kind": "gcs_buckets"},
            cause=cause,
            recovery_suggestion="Try again",
        )

        assert str(error) == (
            "[E1] Something failed (context: resource_kind=gcs_buckets) "
            "(caused by: boom) (suggestion: Try again)"
        )

    def test_plain_message(self):
        assert str(DeployConfError("plain")) == "plain"

    def test_to_dict(self):
        error = ValidationError("bad", kind="gcs_buckets", name="b", rule="required:name")

        assert error.to_dict() == {
            "error_type": "ValidationError",
            "message": "bad",
            "error_code": "VALIDATION_FAILED",
            "context": {
                "resource_kind": "gcs_buckets",
                "resource_name": "b",
                "rule": "required:name",
            },
            "cause": None,
            "recovery_suggestion": None,
        }

    def test_tag_resource_keeps_existing_values(self):
        error = ValidationError("bad", kind="gcs_buckets", name="b")
        error.tag_resource("gcs_buckets", "<unnamed>")
        assert error.context["resource_name"] == "b"

        untagged = PolicyApplicationError("no sink")
        assert untagged.tag_resource("gce_instances", "vm") is untagged
        assert untagged.context["resource_kind"] == "gce_instances"


class TestSubclasses:
    @pytest.mark.parametrize(
        "error,code",
        [
            (DecodeError("x"), "DECODE_FAILED"),
            (ValidationError("x"), "VALIDATION_FAILED"),
            (PolicyApplicationError("x"), "POLICY_APPLICATION_FAILED"),
            (ConfigError("x"), "CONFIG_ERROR"),
        ],
    )
    def test_default_error_codes(self, error, code):
        assert isinstance(error, DeployConfError)
        assert error.error_code == code

    def test_decode_error_records_model(self):
        assert DecodeError("x", model="GCSBucket").context == {"model": "GCSBucket"}

    def test_validation_error_attributes(self):
        error = ValidationError("x", kind="pubsub_topics", name="t", rule="required:topic")
        assert (error.kind, error.name, error.rule) == ("pubsub_topics", "t", "required:topic")

    def test_config_error_has_recovery_suggestion(self):
        assert ConfigError("x").recovery_suggestion
