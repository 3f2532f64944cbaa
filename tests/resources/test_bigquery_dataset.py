"""Tests for the BigQuery dataset resource kind."""

import pytest

from deployconf.exceptions import ValidationError
from deployconf.overlay import decode, encode
from deployconf.resources.bigquery.dataset import AccessEntry, BigqueryDataset


def make_dataset(**properties):
    definition = {"properties": {"name": "example_dataset", "location": "US"}}
    definition["properties"].update(properties)
    return decode(BigqueryDataset, definition)


class TestBigqueryDatasetValidation:
    @pytest.mark.parametrize("missing", ["name", "location"])
    def test_required_fields(self, missing):
        definition = {"properties": {"name": "d", "location": "US"}}
        del definition["properties"][missing]
        with pytest.raises(ValidationError, match=f"{missing} must be set"):
            decode(BigqueryDataset, definition).validate()

    def test_default_owner_rejected(self):
        with pytest.raises(ValidationError, match="setDefaultOwner must not be enabled"):
            make_dataset(setDefaultOwner=True).validate()

    def test_access_entry_needs_role(self):
        dataset = make_dataset(access=[{"userByEmail": "u@example.com"}])
        with pytest.raises(ValidationError, match="access entries must set a role"):
            dataset.validate()


class TestBigqueryDatasetPolicy:
    def test_default_access_injection(self, context):
        dataset = make_dataset()
        dataset.validate().apply(context)

        encoded = encode(dataset)["properties"]
        assert encoded["access"] == [{"role": "OWNER", "groupByEmail": "g@example.com"}]
        assert encoded["setDefaultOwner"] is False

    def test_data_groups_and_user_entries(self, data_context):
        dataset = make_dataset(
            access=[
                {"role": "READER", "userByEmail": "u@example.com", "note": "keep"},
                {"role": "OWNER", "groupByEmail": "owners@example.com"},
                {"view": {"projectId": "p", "datasetId": "d", "tableId": "t"}},
            ]
        )
        dataset.validate().apply(data_context)

        assert encode(dataset)["properties"]["access"] == [
            {"role": "OWNER", "groupByEmail": "owners@example.com"},
            {"role": "WRITER", "groupByEmail": "rw@example.com"},
            {"role": "READER", "groupByEmail": "ro@example.com"},
            {"role": "READER", "groupByEmail": "ro2@example.com"},
            {"role": "READER", "userByEmail": "u@example.com", "note": "keep"},
            {"view": {"projectId": "p", "datasetId": "d", "tableId": "t"}},
        ]

    def test_iam_member_entries_deduplicated_against_defaults(self, context):
        dataset = make_dataset(
            access=[
                {"role": "OWNER", "iamMember": "group:g@example.com", "note": "keep"},
                {"role": "READER", "iamMember": "serviceAccount:sa@example.com"},
                {"role": "READER", "iamMember": "serviceAccount:sa@example.com"},
            ]
        )
        dataset.validate().apply(context)

        assert encode(dataset)["properties"]["access"] == [
            {"role": "OWNER", "iamMember": "group:g@example.com", "note": "keep"},
            {"role": "READER", "iamMember": "serviceAccount:sa@example.com"},
        ]

    def test_audit_dataset_readable_by_auditors(self, data_context):
        dataset = make_dataset(name="example_data_logs")
        dataset.validate().apply(data_context)

        readers = [
            entry.member()
            for entry in dataset.properties.access
            if entry.role == "READER"
        ]
        assert "group:auditors@example.com" in readers

    def test_template_reference(self):
        assert make_dataset().template_reference().endswith("bigquery_dataset.py")


class TestAccessEntry:
    @pytest.mark.parametrize(
        "member,field,value",
        [
            ("group:g@example.com", "group_by_email", "g@example.com"),
            ("user:u@example.com", "user_by_email", "u@example.com"),
            ("specialGroup:projectReaders", "special_group", "projectReaders"),
            ("domain:example.com", "domain", "example.com"),
        ],
    )
    def test_member_round_trip(self, member, field, value):
        entry = AccessEntry.from_member("READER", member)
        assert getattr(entry, field) == value
        assert entry.member() == member

    def test_other_principals_use_iam_member(self):
        entry = AccessEntry.from_member("READER", "serviceAccount:sa@example.com")
        assert entry.iam_member == "serviceAccount:sa@example.com"
        assert encode(entry) == {
            "role": "READER",
            "iamMember": "serviceAccount:sa@example.com",
        }
        assert entry.member() == "serviceAccount:sa@example.com"

    def test_constructed_entry_encodes_document_keys(self):
        entry = AccessEntry.from_member("WRITER", "group:g@example.com")
        assert encode(entry) == {"role": "WRITER", "groupByEmail": "g@example.com"}
