"""PolicyContext - Shared state passed to every policy step.

This module contains the PolicyContext dataclass that carries the
read-only project aggregate, the pipeline settings and the identities of
resources already validated in the current run.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from ..exceptions import PolicyApplicationError
from ..project import Project


@dataclass
class PolicyContext:
    """Shared context passed to resources during policy application.

    Resources consult the project and may look up identities of resources
    processed earlier in the run. There is no inter-resource mutation.

    Usage:
        context = PolicyContext(project=project)
        step = bucket.validate()
        step.apply(context)
    """

    project: Project
    require_audit_sink: bool = False

    # Identities of resources validated so far, keyed by kind
    available_resources: Dict[str, Set[str]] = field(default_factory=dict)

    def add_resource(self, kind: str, name: str) -> None:
        """Track a resource identity for read-only cross references."""
        if kind not in self.available_resources:
            self.available_resources[kind] = set()
        self.available_resources[kind].add(name)

    def resource_exists(self, kind: str, name: str) -> bool:
        return name in self.available_resources.get(kind, set())

    def audit_log_bucket(self, requester: str) -> Optional[str]:
        """Resolve the project's audit log bucket for ``requester``.

        Returns None when the project declares no log bucket, unless
        require_audit_sink is set, in which case the absence (or a bucket
        that was never declared as a resource) is an error.

        Raises:
            PolicyApplicationError: If the audit sink is strictly required
                but missing
        """
        name = self.project.audit_log_bucket
        if not self.require_audit_sink:
            return name

        if name is None:
            raise PolicyApplicationError(
                f"{requester}: project '{self.project.project_id}' declares no "
                "audit log bucket",
                context={"project_id": self.project.project_id},
                recovery_suggestion="Add audit_logs.logs_gcs_bucket to the project",
            )
        if not self.resource_exists("gcs_buckets", name):
            raise PolicyApplicationError(
                f"{requester}: audit log bucket '{name}' is not declared before use",
                context={"project_id": self.project.project_id},
            )
        return name
