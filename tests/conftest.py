import os
from typing import Any, Dict

import pytest

from deployconf.pipeline import PolicyContext
from deployconf.project import AuditSinks, Project

# ============================================================================
# Project Fixtures
# ============================================================================


@pytest.fixture
def project() -> Project:
    """Provide a project with only the mandatory groups."""
    return Project(
        project_id="example-data",
        owners_group="g@example.com",
        auditors_group="auditors@example.com",
    )


@pytest.fixture
def data_project() -> Project:
    """Provide a project with data groups and both audit sinks."""
    return Project(
        project_id="example-data",
        owners_group="owners@example.com",
        auditors_group="auditors@example.com",
        data_readwrite_groups=["rw@example.com"],
        data_readonly_groups=["ro@example.com", "ro2@example.com"],
        audit_sinks=AuditSinks(
            logs_gcs_bucket="example-data-logs",
            logs_bigquery_dataset="example_data_logs",
        ),
    )


@pytest.fixture
def context(project: Project) -> PolicyContext:
    return PolicyContext(project=project)


@pytest.fixture
def data_context(data_project: Project) -> PolicyContext:
    context = PolicyContext(project=data_project)
    context.add_resource("gcs_buckets", "example-data-logs")
    return context


# ============================================================================
# Document Fixtures
# ============================================================================


SAMPLE_CONFIG = """\
overall:
  billing_account: 000000-000000-000000
  domain: example.com
  folder_id: '1111111111'
  organization_id: '2222222222'

generated_fields_path: ./generated_fields.yaml

projects:
- project_id: example-data
  owners_group: example-data-owners@example.com
  auditors_group: example-auditors@example.com
  data_readwrite_groups:
  - example-data-rw@example.com
  data_readonly_groups:
  - example-data-ro@example.com
  stackdriver_alert_email: example-alerts@example.com
  audit_logs:
    logs_gcs_bucket:
      ttl_days: 365
      properties:
        name: example-data-logs
        location: US
        storageClass: MULTI_REGIONAL
    logs_bigquery_dataset:
      properties:
        name: example_data_logs
        location: US
  resources:
    gcs_buckets:
    - properties:
        name: example-project-data
        location: US
        labels:
          team: research
      expected_users:
      - user@example.com
    bigquery_datasets:
    - properties:
        name: example_dataset
        location: US
    gce_instances:
    - properties:
        name: example-instance
        zone: us-central1-a
        machineType: n1-standard-1
        diskImage: projects/debian-cloud/global/images/family/debian-9
        networkInterfaces:
        - network: default
    pubsub_topics:
    - properties:
        topic: example-topic
        subscriptions:
        - name: example-subscription
          messageRetentionDuration: 600s
          retainAckedMessages: true
          ackDeadlineSeconds: 20
"""


@pytest.fixture
def sample_config() -> str:
    """Provide a complete deployment config document."""
    return SAMPLE_CONFIG


@pytest.fixture
def bucket_definition() -> Dict[str, Any]:
    """Provide a minimal valid bucket definition."""
    return {"properties": {"name": "example-bucket", "location": "US"}}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep DEPLOYCONF_* variables from the host out of every test."""
    for key in list(os.environ):
        if key.startswith("DEPLOYCONF_"):
            monkeypatch.delenv(key)
