"""Tests for the Cloud Healthcare dataset resource kind."""

import pytest

from deployconf.exceptions import ValidationError
from deployconf.overlay import decode, encode
from deployconf.resources.healthcare.dataset import HealthcareDataset


def make_dataset(**properties):
    definition = {"properties": {"name": "example-dataset", "location": "us-central1"}}
    definition["properties"].update(properties)
    return decode(HealthcareDataset, definition)


def grants(members):
    return [(m.role, m.member) for m in members]


class TestHealthcareDatasetValidation:
    @pytest.mark.parametrize("missing", ["name", "location"])
    def test_required_fields(self, missing):
        definition = {"properties": {"name": "d", "location": "us-central1"}}
        del definition["properties"][missing]
        with pytest.raises(ValidationError, match=f"{missing} must be set"):
            decode(HealthcareDataset, definition).validate()

    @pytest.mark.parametrize("stores", ["_dicom_stores", "_fhir_stores", "_hl7_v2_stores"])
    def test_store_name_required(self, stores):
        dataset = make_dataset(**{stores: [{"_iam_members": []}]})
        with pytest.raises(ValidationError, match=f"every {stores} entry must set a name"):
            dataset.validate()

    def test_iam_member_needs_role_and_member(self):
        dataset = make_dataset(
            _fhir_stores=[{"name": "fhir", "_iam_members": [{"role": "roles/viewer"}]}]
        )
        with pytest.raises(ValidationError, match="fhir._iam_members entries") as exc_info:
            dataset.validate()
        assert exc_info.value.rule == "iam-member-incomplete"


class TestHealthcareDatasetPolicy:
    def test_dataset_owner_grant_ahead_of_user_members(self, context):
        dataset = make_dataset(
            _iam_members=[{"role": "roles/editor", "member": "user:example@example.com"}]
        )
        dataset.validate().apply(context)

        assert encode(dataset)["properties"]["_iam_members"] == [
            {"role": "roles/healthcare.datasetAdmin", "member": "group:g@example.com"},
            {"role": "roles/editor", "member": "user:example@example.com"},
        ]

    def test_store_grants(self, data_context):
        dataset = make_dataset(
            _dicom_stores=[
                {
                    "name": "example-dicom-store",
                    "_iam_members": [
                        {"role": "roles/viewer", "member": "user:example@example.com"}
                    ],
                }
            ],
            _fhir_stores=[{"name": "example-fhir-store"}],
            _hl7_v2_stores=[{"name": "example-hl7-v2-store", "notificationConfig": {}}],
        )
        dataset.validate().apply(data_context)

        props = dataset.properties
        assert grants(props.dicom_stores[0].iam_members) == [
            ("roles/healthcare.dicomStoreAdmin", "group:owners@example.com"),
            ("roles/healthcare.dicomEditor", "group:rw@example.com"),
            ("roles/healthcare.dicomViewer", "group:ro@example.com"),
            ("roles/healthcare.dicomViewer", "group:ro2@example.com"),
            ("roles/viewer", "user:example@example.com"),
        ]
        assert grants(props.fhir_stores[0].iam_members)[0] == (
            "roles/healthcare.fhirStoreAdmin",
            "group:owners@example.com",
        )
        hl7 = encode(dataset)["properties"]["_hl7_v2_stores"][0]
        assert hl7["notificationConfig"] == {}
        assert hl7["_iam_members"][0] == {
            "role": "roles/healthcare.hl7V2StoreAdmin",
            "member": "group:owners@example.com",
        }

    def test_repeated_grant_keeps_user_entry(self, context):
        dataset = make_dataset(
            _iam_members=[
                {
                    "role": "roles/healthcare.datasetAdmin",
                    "member": "group:g@example.com",
                    "note": "keep",
                },
                {"role": "roles/editor", "member": "user:u@example.com"},
                {"role": "roles/editor", "member": "user:u@example.com"},
            ]
        )
        dataset.validate().apply(context)

        assert encode(dataset)["properties"]["_iam_members"] == [
            {
                "role": "roles/healthcare.datasetAdmin",
                "member": "group:g@example.com",
                "note": "keep",
            },
            {"role": "roles/editor", "member": "user:u@example.com"},
        ]

    def test_dataset_without_stores(self, context):
        dataset = make_dataset()
        dataset.validate().apply(context)

        encoded = encode(dataset)["properties"]
        assert "_dicom_stores" not in encoded
        assert len(encoded["_iam_members"]) == 1

    def test_template_reference(self):
        assert make_dataset().template_reference().endswith("healthcare/healthcare.py")
