"""
Project aggregate consulted by every resource policy step.

Project objects are built once by the document loader and are frozen:
policy steps read groups and audit sinks from them but never modify them.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from .bindings import group_members


class Overall(BaseModel):
    """Organization-wide settings shared by all projects in a document."""

    billing_account: Optional[StrictStr] = None
    domain: Optional[StrictStr] = None
    folder_id: Optional[StrictStr] = None
    organization_id: Optional[StrictStr] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class AuditSinks(BaseModel):
    """Names of the resources receiving audit logs for a project."""

    logs_gcs_bucket: Optional[StrictStr] = Field(
        default=None,
        description="Name of the bucket receiving storage access logs",
    )
    logs_bigquery_dataset: Optional[StrictStr] = Field(
        default=None,
        description="Name of the BigQuery dataset receiving audit logs",
    )

    model_config = ConfigDict(frozen=True, extra="forbid")


class Project(BaseModel):
    """Policy inputs for one project."""

    project_id: StrictStr
    owners_group: StrictStr
    auditors_group: StrictStr
    data_readwrite_groups: List[StrictStr] = Field(default_factory=list)
    data_readonly_groups: List[StrictStr] = Field(default_factory=list)
    audit_sinks: AuditSinks = Field(default_factory=AuditSinks)
    state_bucket: Optional[StrictStr] = Field(
        default=None,
        description="Name of the devops bucket holding deployment state",
    )
    billing_account: Optional[StrictStr] = None
    domain: Optional[StrictStr] = None
    folder_id: Optional[StrictStr] = None
    organization_id: Optional[StrictStr] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("project_id", "owners_group", "auditors_group")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Reject blank identifiers."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("data_readwrite_groups", "data_readonly_groups", mode="before")
    @classmethod
    def empty_groups(cls, v):
        # A YAML key with no value loads as None
        return [] if v is None else v

    @classmethod
    def from_config(
        cls,
        project_id: str,
        owners_group: str,
        auditors_group: str,
        overall: Optional[Overall] = None,
        **fields,
    ) -> "Project":
        """Build a project, inheriting organization fields from ``overall``."""
        overall = overall or Overall()
        for name in ("billing_account", "domain", "folder_id", "organization_id"):
            if fields.get(name) is None:
                fields[name] = getattr(overall, name)
        return cls(
            project_id=project_id,
            owners_group=owners_group,
            auditors_group=auditors_group,
            **fields,
        )

    @property
    def has_audit_log_bucket(self) -> bool:
        return self.audit_sinks.logs_gcs_bucket is not None

    @property
    def has_audit_log_dataset(self) -> bool:
        return self.audit_sinks.logs_bigquery_dataset is not None

    @property
    def has_audit_sink(self) -> bool:
        return self.has_audit_log_bucket or self.has_audit_log_dataset

    @property
    def audit_log_bucket(self) -> Optional[str]:
        return self.audit_sinks.logs_gcs_bucket

    @property
    def audit_log_dataset(self) -> Optional[str]:
        return self.audit_sinks.logs_bigquery_dataset

    @property
    def effective_readwrite_groups(self) -> List[str]:
        """Read-write groups, duplicates removed."""
        return list(dict.fromkeys(self.data_readwrite_groups))

    @property
    def effective_readonly_groups(self) -> List[str]:
        return list(dict.fromkeys(self.data_readonly_groups))

    @property
    def owner_members(self) -> List[str]:
        return group_members(self.owners_group)

    @property
    def auditor_members(self) -> List[str]:
        return group_members(self.auditors_group)

    @property
    def readwrite_members(self) -> List[str]:
        return group_members(*self.effective_readwrite_groups)

    @property
    def readonly_members(self) -> List[str]:
        return group_members(*self.effective_readonly_groups)

    @property
    def parent(self) -> Optional[str]:
        """Resource-manager parent: the folder if set, else the organization."""
        if self.folder_id:
            return f"folders/{self.folder_id}"
        if self.organization_id:
            return f"organizations/{self.organization_id}"
        return None
