"""Project-level IAM grants.

Document key: projects[].project_iam_members (a project field, not a
``resources`` kind, so it is not registered)
Template: deploy/config/templates/iam_member/iam_member.py
"""

import logging
from typing import ClassVar, List, Optional

from pydantic import Field, StrictStr

from ...bindings import IAMMember, iam_members, merge_iam_members
from ..base import Resource

logger = logging.getLogger(__name__)


class ProjectIAM(Resource):
    """The IAM members granted on the project itself.

    Policy:
        - owners get roles/owner and auditors iam.securityReviewer, ahead
          of the project's own project_iam_members
    """

    KIND: ClassVar[str] = "project_iam_members"
    TEMPLATE: ClassVar[str] = "deploy/config/templates/iam_member/iam_member.py"
    ADMIN_ROLE: ClassVar[str] = "roles/owner"
    AUDITOR_ROLE: ClassVar[str] = "roles/iam.securityReviewer"

    project_id: Optional[StrictStr] = None
    members: List[IAMMember] = Field(default_factory=list)

    def identify(self) -> str:
        return self.project_id or ""

    def check(self) -> None:
        for entry in self.members:
            if not entry.role or not entry.member:
                self.fail(
                    "project_iam_members entries must set role and member",
                    rule="iam-member-incomplete",
                )

    def _apply_policy(self, context) -> None:
        project = context.project
        defaults = self.role_bindings(
            (self.ADMIN_ROLE, project.owner_members),
            (self.AUDITOR_ROLE, project.auditor_members),
        )
        self.members = merge_iam_members(iam_members(defaults), self.members)
        logger.debug(
            f"Project '{self.identify()}' grants {len(self.members)} IAM members"
        )
