"""Cloud Storage bucket resource kind.

Document key: gcs_buckets
Template: deploy/config/templates/gcs_bucket/gcs_bucket.py
"""

import logging
from typing import ClassVar, List, Optional

from pydantic import Field, StrictBool, StrictInt, StrictStr

from ...bindings import Binding, merge_bindings
from ...overlay import OverlayModel
from .. import resource_kind
from ..base import Resource

logger = logging.getLogger(__name__)

# Writes storage access logs into the audit log bucket
STORAGE_ANALYTICS_GROUP = "group:cloud-storage-analytics@google.com"


class Versioning(OverlayModel):
    # None distinguishes "unset" from an explicit False
    enabled: Optional[StrictBool] = None


class BucketLogging(OverlayModel):
    log_bucket: Optional[StrictStr] = Field(default=None, alias="logBucket")


class LifecycleAction(OverlayModel):
    type: Optional[StrictStr] = None


class LifecycleCondition(OverlayModel):
    age: Optional[StrictInt] = None
    is_live: Optional[StrictBool] = Field(default=None, alias="isLive")


class LifecycleRule(OverlayModel):
    """A (partial) bucket lifecycle rule."""

    action: Optional[LifecycleAction] = None
    condition: Optional[LifecycleCondition] = None

    @classmethod
    def delete_after(cls, age_days: int) -> "LifecycleRule":
        """Rule deleting live objects older than ``age_days``."""
        return cls(
            action=LifecycleAction(type="Delete"),
            condition=LifecycleCondition(age=age_days, isLive=True),
        )


class Lifecycle(OverlayModel):
    rules: List[LifecycleRule] = Field(default_factory=list, alias="rule")


class GCSBucketProperties(OverlayModel):
    """Partial Cloud Foundation Toolkit bucket properties."""

    name: Optional[StrictStr] = None
    location: Optional[StrictStr] = None
    bindings: List[Binding] = Field(default_factory=list)
    storage_class: Optional[StrictStr] = Field(default=None, alias="storageClass")
    versioning: Versioning = Field(default_factory=Versioning)
    lifecycle: Optional[Lifecycle] = None
    predefined_acl: Optional[StrictStr] = Field(default=None, alias="predefinedAcl")
    predefined_default_object_acl: Optional[StrictStr] = Field(
        default=None, alias="predefinedDefaultObjectAcl"
    )
    logging: BucketLogging = Field(default_factory=BucketLogging)


@resource_kind
class GCSBucket(Resource):
    """Cloud Storage bucket.

    Policy:
        - versioning is always enabled
        - owners get storage.admin, read-write groups objectAdmin and
          read-only groups objectViewer, ahead of user bindings
        - access logs go to the project's audit log bucket, if any
        - the project's devops state bucket is restricted to the owners
        - ttl_days adds a Delete rule for live objects of that age
    """

    KIND: ClassVar[str] = "gcs_buckets"
    TEMPLATE: ClassVar[str] = "deploy/config/templates/gcs_bucket/gcs_bucket.py"
    ADMIN_ROLE: ClassVar[str] = "roles/storage.admin"

    properties: GCSBucketProperties = Field(default_factory=GCSBucketProperties)
    ttl_days: Optional[StrictInt] = None

    def identify(self) -> str:
        return self.properties.name or ""

    def check(self) -> None:
        props = self.properties
        self.require(props.name, "name")
        self.require(props.location, "location")
        if props.versioning.enabled is False:
            self.fail("versioning must not be disabled", rule="versioning-disabled")
        if props.predefined_acl or props.predefined_default_object_acl:
            self.fail(
                "predefined ACLs must not be set", rule="predefined-acl-set"
            )
        if self.ttl_days is not None and self.ttl_days <= 0:
            self.fail(
                f"ttl_days must be a positive integer, got {self.ttl_days}",
                rule="ttl-not-positive",
            )

    def _apply_policy(self, context) -> None:
        project = context.project
        props = self.properties

        props.versioning = Versioning(enabled=True)

        if self.identify() == project.state_bucket:
            defaults = self.role_bindings((self.ADMIN_ROLE, project.owner_members))
        else:
            defaults = self.role_bindings(
                (self.ADMIN_ROLE, project.owner_members),
                ("roles/storage.objectAdmin", project.readwrite_members),
                ("roles/storage.objectViewer", project.readonly_members),
            )
        if self.identify() == project.audit_log_bucket:
            defaults = merge_bindings(
                defaults,
                self.role_bindings(
                    ("roles/storage.objectViewer", project.auditor_members),
                    ("roles/storage.objectCreator", [STORAGE_ANALYTICS_GROUP]),
                ),
            )
        props.bindings = merge_bindings(defaults, props.bindings)

        log_bucket = context.audit_log_bucket(f"{self.KIND} '{self.identify()}'")
        if log_bucket is not None:
            props.logging = BucketLogging(logBucket=log_bucket)
        else:
            logger.debug(
                f"No audit log bucket for project '{project.project_id}', "
                f"leaving logging of '{self.identify()}' unchanged"
            )

        if self.ttl_days:
            lifecycle = props.lifecycle or Lifecycle()
            lifecycle.rules = [*lifecycle.rules, LifecycleRule.delete_after(self.ttl_days)]
            props.lifecycle = lifecycle
