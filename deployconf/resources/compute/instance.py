"""Compute Engine instance resource kind.

Document key: gce_instances
Template: deploy/config/templates/instance/instance.py
"""

import logging
from typing import ClassVar, List, Optional

from pydantic import Field, StrictBool, StrictStr

from ...bindings import Binding, merge_bindings
from ...overlay import OverlayModel
from .. import resource_kind
from ..base import Resource

logger = logging.getLogger(__name__)


class GCEInstanceProperties(OverlayModel):
    """Partial Cloud Foundation Toolkit instance properties."""

    name: Optional[StrictStr] = None
    zone: Optional[StrictStr] = None
    machine_type: Optional[StrictStr] = Field(default=None, alias="machineType")
    disk_image: Optional[StrictStr] = Field(default=None, alias="diskImage")
    deletion_protection: Optional[StrictBool] = Field(
        default=None, alias="deletionProtection"
    )
    bindings: List[Binding] = Field(default_factory=list)


@resource_kind
class GCEInstance(Resource):
    """Compute Engine instance.

    Policy:
        - deletion protection is always enabled
        - owners get compute.instanceAdmin.v1 ahead of user bindings
    """

    KIND: ClassVar[str] = "gce_instances"
    TEMPLATE: ClassVar[str] = "deploy/config/templates/instance/instance.py"
    ADMIN_ROLE: ClassVar[str] = "roles/compute.instanceAdmin.v1"

    properties: GCEInstanceProperties = Field(default_factory=GCEInstanceProperties)

    def identify(self) -> str:
        return self.properties.name or ""

    def check(self) -> None:
        props = self.properties
        self.require(props.name, "name")
        self.require(props.zone, "zone")
        self.require(props.machine_type, "machineType")
        if props.deletion_protection is False:
            self.fail(
                "deletionProtection must not be disabled",
                rule="deletion-protection-disabled",
            )

    def _apply_policy(self, context) -> None:
        props = self.properties
        props.deletion_protection = True
        props.bindings = merge_bindings(
            self.role_bindings((self.ADMIN_ROLE, context.project.owner_members)),
            props.bindings,
        )
        logger.debug(f"Applied instance policy to '{self.identify()}'")
