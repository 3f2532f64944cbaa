"""PolicyPipeline - validates and applies policy to a project's resources.

Resources are processed strictly sequentially in declaration order. For
each resource, validate() runs first and the PolicyStep it returns is
applied immediately. The first failure stops the run and is re-raised
tagged with the offending resource's kind and name; later resources are
left untouched.
"""

from typing import Any, Dict, Sequence

import structlog

from ..exceptions import DeployConfError
from ..project import Project
from ..resources.base import Resource
from .context import PolicyContext

logger = structlog.get_logger(__name__)


class PolicyPipeline:
    """Runs validation then policy injection over a project's resources.

    Usage:
        pipeline = PolicyPipeline(require_audit_sink=True)
        context = pipeline.process(project, resources)
    """

    def __init__(self, require_audit_sink: bool = False) -> None:
        """Initialize the pipeline.

        Args:
            require_audit_sink: If True, a missing audit log sink is a
                PolicyApplicationError instead of a silent no-op
        """
        self.require_audit_sink = require_audit_sink
        self.stats: Dict[str, Any] = {
            "total_resources": 0,
            "processed_resources": 0,
            "kinds": {},
        }

    def process(self, project: Project, resources: Sequence[Resource]) -> PolicyContext:
        """Validate and apply policy to every resource of ``project``.

        Args:
            project: Read-only project aggregate
            resources: Resources in declaration order

        Returns:
            The PolicyContext used for the run

        Raises:
            DeployConfError: The first decode, validation or policy error,
                with resource_kind and resource_name in its context
        """
        context = PolicyContext(
            project=project, require_audit_sink=self.require_audit_sink
        )
        self.stats["total_resources"] += len(resources)
        logger.info(
            "policy_injection_started",
            project_id=project.project_id,
            resources=len(resources),
        )

        for resource in resources:
            self._process_resource(resource, context)

        logger.info(
            "policy_injection_completed",
            project_id=project.project_id,
            processed=self.stats["processed_resources"],
        )
        return context

    def _process_resource(self, resource: Resource, context: PolicyContext) -> None:
        name = resource.identify() or "<unnamed>"
        try:
            step = resource.validate()
            context.add_resource(resource.KIND, resource.identify())
            step.apply(context)
        except DeployConfError as e:
            e.tag_resource(resource.KIND, name)
            logger.error(
                "policy_injection_failed",
                project_id=context.project.project_id,
                resource_kind=resource.KIND,
                resource_name=name,
                error=e.message,
                error_code=e.error_code,
            )
            raise

        self.stats["processed_resources"] += 1
        kinds = self.stats["kinds"]
        kinds[resource.KIND] = kinds.get(resource.KIND, 0) + 1
        logger.debug(
            "resource_policy_applied",
            resource_kind=resource.KIND,
            resource_name=name,
            template=resource.template_reference(),
        )


def process(
    project: Project,
    resources: Sequence[Resource],
    require_audit_sink: bool = False,
) -> PolicyContext:
    """Validate and apply policy to ``resources``; raise on the first failure."""
    return PolicyPipeline(require_audit_sink=require_audit_sink).process(
        project, resources
    )
