"""Cloud Healthcare dataset resource kind.

Document key: healthcare_datasets
Template: deploy/config/templates/healthcare/healthcare.py

A dataset holds DICOM, FHIR and HL7v2 stores. Access is granted with
``_iam_members`` lists of single (role, member) grants, both on the
dataset and on each store.
"""

import logging
from typing import ClassVar, Dict, List, Optional, Tuple

from pydantic import Field, StrictStr

from ...bindings import IAMMember, iam_members, merge_iam_members
from ...overlay import OverlayModel
from .. import resource_kind
from ..base import Resource

logger = logging.getLogger(__name__)

# Store list field -> (owners role, read-write role, read-only role)
STORE_ROLES: Dict[str, Tuple[str, str, str]] = {
    "dicom_stores": (
        "roles/healthcare.dicomStoreAdmin",
        "roles/healthcare.dicomEditor",
        "roles/healthcare.dicomViewer",
    ),
    "fhir_stores": (
        "roles/healthcare.fhirStoreAdmin",
        "roles/healthcare.fhirResourceEditor",
        "roles/healthcare.fhirResourceReader",
    ),
    "hl7_v2_stores": (
        "roles/healthcare.hl7V2StoreAdmin",
        "roles/healthcare.hl7V2Editor",
        "roles/healthcare.hl7V2Consumer",
    ),
}


class HealthcareStore(OverlayModel):
    name: Optional[StrictStr] = None
    iam_members: List[IAMMember] = Field(default_factory=list, alias="_iam_members")


class HealthcareDatasetProperties(OverlayModel):
    name: Optional[StrictStr] = None
    location: Optional[StrictStr] = None
    iam_members: List[IAMMember] = Field(default_factory=list, alias="_iam_members")
    dicom_stores: List[HealthcareStore] = Field(
        default_factory=list, alias="_dicom_stores"
    )
    fhir_stores: List[HealthcareStore] = Field(default_factory=list, alias="_fhir_stores")
    hl7_v2_stores: List[HealthcareStore] = Field(
        default_factory=list, alias="_hl7_v2_stores"
    )


@resource_kind
class HealthcareDataset(Resource):
    """Cloud Healthcare dataset and its stores.

    Policy:
        - owners get healthcare.datasetAdmin on the dataset
        - on every store, owners get the store admin role, read-write
          groups the editor role and read-only groups the viewer role,
          ahead of the store's own _iam_members
    """

    KIND: ClassVar[str] = "healthcare_datasets"
    TEMPLATE: ClassVar[str] = "deploy/config/templates/healthcare/healthcare.py"
    ADMIN_ROLE: ClassVar[str] = "roles/healthcare.datasetAdmin"

    properties: HealthcareDatasetProperties = Field(
        default_factory=HealthcareDatasetProperties
    )

    def identify(self) -> str:
        return self.properties.name or ""

    def stores(self) -> List[Tuple[str, HealthcareStore]]:
        """Every store of the dataset with the list field it comes from."""
        return [
            (field_name, store)
            for field_name in STORE_ROLES
            for store in getattr(self.properties, field_name)
        ]

    def check(self) -> None:
        props = self.properties
        self.require(props.name, "name")
        self.require(props.location, "location")
        self._check_members(props.iam_members, "_iam_members")
        for field_name, store in self.stores():
            if not store.name:
                self.fail(
                    f"every _{field_name} entry must set a name",
                    rule=f"required:_{field_name}.name",
                )
            self._check_members(store.iam_members, f"{store.name}._iam_members")

    def _check_members(self, members: List[IAMMember], where: str) -> None:
        for entry in members:
            if not entry.role or not entry.member:
                self.fail(
                    f"{where} entries must set role and member",
                    rule="iam-member-incomplete",
                )

    def _apply_policy(self, context) -> None:
        project = context.project
        props = self.properties

        props.iam_members = merge_iam_members(
            iam_members(self.role_bindings((self.ADMIN_ROLE, project.owner_members))),
            props.iam_members,
        )

        for field_name, store in self.stores():
            admin, editor, viewer = STORE_ROLES[field_name]
            defaults = self.role_bindings(
                (admin, project.owner_members),
                (editor, project.readwrite_members),
                (viewer, project.readonly_members),
            )
            store.iam_members = merge_iam_members(iam_members(defaults), store.iam_members)
        logger.debug(
            f"Applied healthcare policy to '{self.identify()}' "
            f"({len(self.stores())} stores)"
        )
