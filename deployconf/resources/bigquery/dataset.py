"""BigQuery dataset resource kind.

Document key: bigquery_datasets
Template: deploy/config/templates/bigquery/bigquery_dataset.py

BigQuery expresses access control as a list of access entries, each
naming one principal. Entries are converted to bindings so they go
through the same merger as every other kind, then converted back.
"""

import logging
from typing import ClassVar, Dict, List, Optional, Tuple

from pydantic import Field, StrictBool, StrictStr

from ...bindings import Binding, merge_bindings
from ...overlay import OverlayModel
from .. import resource_kind
from ..base import Resource

logger = logging.getLogger(__name__)

# Access entry field, its document key and the principal prefix used in bindings
_MEMBER_FIELDS = (
    ("group_by_email", "groupByEmail", "group"),
    ("user_by_email", "userByEmail", "user"),
    ("special_group", "specialGroup", "specialGroup"),
    ("domain", "domain", "domain"),
)


class AccessEntry(OverlayModel):
    """One BigQuery dataset access entry."""

    role: Optional[StrictStr] = None
    group_by_email: Optional[StrictStr] = Field(default=None, alias="groupByEmail")
    user_by_email: Optional[StrictStr] = Field(default=None, alias="userByEmail")
    special_group: Optional[StrictStr] = Field(default=None, alias="specialGroup")
    domain: Optional[StrictStr] = None
    # Already a full principal, e.g. "serviceAccount:sa@p.iam.gserviceaccount.com"
    iam_member: Optional[StrictStr] = Field(default=None, alias="iamMember")

    def member(self) -> Optional[str]:
        """Principal of this entry in binding form, e.g. "group:a@b.com"."""
        for field_name, _, prefix in _MEMBER_FIELDS:
            value = getattr(self, field_name)
            if value:
                return f"{prefix}:{value}"
        return self.iam_member or None

    @classmethod
    def from_member(cls, role: str, member: str) -> "AccessEntry":
        prefix, _, value = member.partition(":")
        for _, key, field_prefix in _MEMBER_FIELDS:
            if prefix == field_prefix:
                return cls(**{"role": role, key: value})
        return cls(role=role, iamMember=member)


class BigqueryDatasetProperties(OverlayModel):
    """Partial Cloud Foundation Toolkit dataset properties."""

    name: Optional[StrictStr] = None
    location: Optional[StrictStr] = None
    access: List[AccessEntry] = Field(default_factory=list)
    set_default_owner: Optional[StrictBool] = Field(
        default=None, alias="setDefaultOwner"
    )


@resource_kind
class BigqueryDataset(Resource):
    """BigQuery dataset.

    Policy:
        - the deployer is never made default owner
        - owners get OWNER, read-write groups WRITER and read-only groups
          READER, ahead of user access entries
        - the project's audit log dataset is also readable by auditors
    """

    KIND: ClassVar[str] = "bigquery_datasets"
    TEMPLATE: ClassVar[str] = "deploy/config/templates/bigquery/bigquery_dataset.py"
    ADMIN_ROLE: ClassVar[str] = "OWNER"

    properties: BigqueryDatasetProperties = Field(
        default_factory=BigqueryDatasetProperties
    )

    def identify(self) -> str:
        return self.properties.name or ""

    def check(self) -> None:
        props = self.properties
        self.require(props.name, "name")
        self.require(props.location, "location")
        if props.set_default_owner:
            self.fail(
                "setDefaultOwner must not be enabled, owners come from the project",
                rule="default-owner-set",
            )
        for entry in props.access:
            if entry.member() is not None and not entry.role:
                self.fail("access entries must set a role", rule="access-role-missing")

    def _apply_policy(self, context) -> None:
        project = context.project
        props = self.properties

        props.set_default_owner = False

        defaults = self.role_bindings(
            (self.ADMIN_ROLE, project.owner_members),
            ("WRITER", project.readwrite_members),
            ("READER", project.readonly_members),
        )
        if self.identify() == project.audit_log_dataset:
            defaults = merge_bindings(
                defaults, self.role_bindings(("READER", project.auditor_members))
            )

        # Entries without a principal (e.g. authorized views) pass through
        originals: Dict[Tuple[str, str], AccessEntry] = {}
        user_bindings: List[Binding] = []
        passthrough: List[AccessEntry] = []
        for entry in props.access:
            member = entry.member()
            if member is None:
                passthrough.append(entry)
                continue
            originals.setdefault((entry.role, member), entry)
            user_bindings.append(Binding(role=entry.role, members=[member]))

        access = [
            originals.get((role, member)) or AccessEntry.from_member(role, member)
            for binding in merge_bindings(defaults, user_bindings)
            for role, member in binding.pairs()
        ]
        props.access = access + passthrough
