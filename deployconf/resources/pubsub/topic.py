"""Pub/Sub topic resource kind.

Document key: pubsub_topics
Template: deploy/config/templates/pubsub/pubsub.py
"""

import logging
from typing import ClassVar, List, Optional

from pydantic import Field, StrictStr

from ...bindings import Binding, merge_bindings
from ...overlay import OverlayModel
from .. import resource_kind
from ..base import Resource

logger = logging.getLogger(__name__)


class PubsubSubscription(OverlayModel):
    name: Optional[StrictStr] = None
    access_control: List[Binding] = Field(default_factory=list, alias="accessControl")


class PubsubTopicProperties(OverlayModel):
    """Partial Cloud Foundation Toolkit Pub/Sub properties."""

    topic: Optional[StrictStr] = None
    access_control: List[Binding] = Field(default_factory=list, alias="accessControl")
    subscriptions: List[PubsubSubscription] = Field(default_factory=list)


@resource_kind
class PubsubTopic(Resource):
    """Pub/Sub topic and its subscriptions.

    Policy:
        - owners get pubsub.admin, read-write groups pubsub.publisher and
          read-only groups pubsub.subscriber on the topic
        - owners get pubsub.admin on every subscription
    """

    KIND: ClassVar[str] = "pubsub_topics"
    TEMPLATE: ClassVar[str] = "deploy/config/templates/pubsub/pubsub.py"
    ADMIN_ROLE: ClassVar[str] = "roles/pubsub.admin"

    properties: PubsubTopicProperties = Field(default_factory=PubsubTopicProperties)

    def identify(self) -> str:
        return self.properties.topic or ""

    def check(self) -> None:
        props = self.properties
        self.require(props.topic, "topic")
        for index, subscription in enumerate(props.subscriptions):
            if not subscription.name:
                self.fail(
                    f"subscription #{index} must set a name",
                    rule="required:subscriptions.name",
                )

    def _apply_policy(self, context) -> None:
        project = context.project
        props = self.properties

        props.access_control = merge_bindings(
            self.role_bindings(
                (self.ADMIN_ROLE, project.owner_members),
                ("roles/pubsub.publisher", project.readwrite_members),
                ("roles/pubsub.subscriber", project.readonly_members),
            ),
            props.access_control,
        )

        for subscription in props.subscriptions:
            subscription.access_control = merge_bindings(
                self.role_bindings((self.ADMIN_ROLE, project.owner_members)),
                subscription.access_control,
            )
        logger.debug(
            f"Applied topic policy to '{self.identify()}' "
            f"({len(props.subscriptions)} subscriptions)"
        )
