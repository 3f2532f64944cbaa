"""Tests for the Pub/Sub topic resource kind."""

import pytest

from deployconf.exceptions import ValidationError
from deployconf.overlay import decode, encode
from deployconf.resources.pubsub.topic import PubsubTopic


def make_topic(**properties):
    definition = {"properties": {"topic": "example-topic"}}
    definition["properties"].update(properties)
    return decode(PubsubTopic, definition)


class TestPubsubTopicValidation:
    def test_topic_required(self):
        with pytest.raises(ValidationError, match="topic must be set"):
            decode(PubsubTopic, {"properties": {}}).validate()

    def test_subscription_name_required(self):
        topic = make_topic(subscriptions=[{"name": "ok"}, {"ackDeadlineSeconds": 10}])
        with pytest.raises(ValidationError, match="subscription #1 must set a name"):
            topic.validate()


class TestPubsubTopicPolicy:
    def test_topic_access_control(self, data_context):
        topic = make_topic(
            accessControl=[{"role": "roles/pubsub.publisher", "members": ["user:p@example.com"]}]
        )
        topic.validate().apply(data_context)

        assert encode(topic)["properties"]["accessControl"] == [
            {"role": "roles/pubsub.admin", "members": ["group:owners@example.com"]},
            {
                "role": "roles/pubsub.publisher",
                "members": ["group:rw@example.com", "user:p@example.com"],
            },
            {
                "role": "roles/pubsub.subscriber",
                "members": ["group:ro@example.com", "group:ro2@example.com"],
            },
        ]

    def test_subscriptions_get_owner_access(self, context):
        topic = make_topic(
            subscriptions=[
                {
                    "name": "example-subscription",
                    "messageRetentionDuration": "600s",
                    "retainAckedMessages": True,
                }
            ]
        )
        topic.validate().apply(context)

        subscription = encode(topic)["properties"]["subscriptions"][0]
        assert subscription == {
            "name": "example-subscription",
            "messageRetentionDuration": "600s",
            "retainAckedMessages": True,
            "accessControl": [
                {"role": "roles/pubsub.admin", "members": ["group:g@example.com"]}
            ],
        }

    def test_identify(self):
        assert make_topic().identify() == "example-topic"
