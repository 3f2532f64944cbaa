"""Deployment configuration documents.

Loads a configuration document into projects and decoded resources, runs
the policy pipeline over every project and renders the output document.

The output has the same shape as the input: every resource definition is
replaced by its encoded (policy-applied) form and every other key passes
through verbatim. Normalization is all-or-nothing: any failure raises and
no output is produced.

Document layout:
    overall: {billing_account, domain, folder_id, organization_id}
    projects:
    - project_id: ...
      owners_group: ...
      auditors_group: ...
      data_readwrite_groups: [...]
      data_readonly_groups: [...]
      audit_logs:
        logs_gcs_bucket: <gcs_buckets definition>
        logs_bigquery_dataset: <bigquery_datasets definition>
      devops:
        state_storage_bucket: <gcs_buckets definition>
      project_iam_members: [{role, member}, ...]
      resources:
        gcs_buckets: [...]
        bigquery_datasets: [...]
        healthcare_datasets: [...]
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from .exceptions import DecodeError
from .overlay import decode, parse_structured
from .pipeline import PolicyPipeline
from .project import AuditSinks, Overall, Project
from .resources import Resource, ResourceRegistry
from .resources.bigquery.dataset import BigqueryDataset
from .resources.iam.project_iam import ProjectIAM
from .resources.storage.gcs_bucket import GCSBucket

logger = structlog.get_logger(__name__)

PathKey = Tuple[Union[str, int], ...]

# audit_logs key -> resource class
AUDIT_RESOURCES: Dict[str, Type[Resource]] = {
    "logs_gcs_bucket": GCSBucket,
    "logs_bigquery_dataset": BigqueryDataset,
}

PROJECT_FIELDS = (
    "project_id",
    "owners_group",
    "auditors_group",
    "data_readwrite_groups",
    "data_readonly_groups",
    "billing_account",
    "domain",
    "folder_id",
    "organization_id",
)


@dataclass
class ResourceEntry:
    """A decoded resource and where it lives in the document tree."""

    kind: str
    resource: Resource
    path: PathKey
    # Render only this key of the encoded resource at path
    render_key: Optional[str] = None

    def rendered(self) -> Any:
        document = self.resource.to_document()
        return document[self.render_key] if self.render_key else document


@dataclass
class ProjectEntry:
    project: Project
    resources: List[ResourceEntry] = field(default_factory=list)

    @property
    def resource_objects(self) -> List[Resource]:
        return [entry.resource for entry in self.resources]


@dataclass
class ConfigDocument:
    """A loaded configuration document."""

    raw: Dict[str, Any]
    overall: Overall
    projects: List[ProjectEntry] = field(default_factory=list)

    def all_resources(self) -> List[ResourceEntry]:
        return [entry for project in self.projects for entry in project.resources]

    def template_manifest(self) -> List[Dict[str, str]]:
        """List each resource with the template the renderer should apply."""
        return [
            {
                "project_id": project.project.project_id,
                "kind": entry.kind,
                "name": entry.resource.identify(),
                "template": entry.resource.template_reference(),
            }
            for project in self.projects
            for entry in project.resources
        ]


def load_document(source: Union[bytes, str, Path, Mapping[str, Any]]) -> ConfigDocument:
    """
    Load a configuration document.

    Args:
        source: Path to a YAML/JSON file, YAML/JSON bytes or text, or an
            already parsed mapping

    Returns:
        ConfigDocument with every project and resource decoded

    Raises:
        DecodeError: If the document or any resource cannot be decoded
    """
    if isinstance(source, Path):
        try:
            source = source.read_bytes()
        except OSError as e:
            raise DecodeError(f"Cannot read config file {source}: {e}", cause=e) from e

    data = parse_structured(source) if isinstance(source, (bytes, str)) else source
    if not isinstance(data, Mapping):
        raise DecodeError("Config document must be a mapping")

    raw = copy.deepcopy(dict(data))
    overall = _model(Overall, raw.get("overall") or {}, "overall")

    projects_raw = raw.get("projects") or []
    if not isinstance(projects_raw, list):
        raise DecodeError("'projects' must be a list")

    document = ConfigDocument(raw=raw, overall=overall)
    for index, project_raw in enumerate(projects_raw):
        document.projects.append(_load_project(project_raw, index, overall))

    logger.info(
        "config_document_loaded",
        projects=len(document.projects),
        resources=len(document.all_resources()),
    )
    return document


def _load_project(project_raw: Any, index: int, overall: Overall) -> ProjectEntry:
    where = f"projects[{index}]"
    if not isinstance(project_raw, Mapping):
        raise DecodeError(f"{where} must be a mapping")

    entries: List[ResourceEntry] = []

    audit_raw = project_raw.get("audit_logs") or {}
    if not isinstance(audit_raw, Mapping):
        raise DecodeError(f"{where}.audit_logs must be a mapping")
    sink_names: Dict[str, Optional[str]] = {}
    for key, kind_cls in AUDIT_RESOURCES.items():
        if key not in audit_raw:
            continue
        resource = _decode_resource(kind_cls, audit_raw[key], f"{where}.audit_logs.{key}")
        sink_names[key] = resource.identify() or None
        entries.append(
            ResourceEntry(
                kind=kind_cls.KIND,
                resource=resource,
                path=("projects", index, "audit_logs", key),
            )
        )

    devops_raw = project_raw.get("devops") or {}
    if not isinstance(devops_raw, Mapping):
        raise DecodeError(f"{where}.devops must be a mapping")
    state_bucket: Optional[str] = None
    if "state_storage_bucket" in devops_raw:
        resource = _decode_resource(
            GCSBucket,
            devops_raw["state_storage_bucket"],
            f"{where}.devops.state_storage_bucket",
        )
        state_bucket = resource.identify() or None
        entries.append(
            ResourceEntry(
                kind=GCSBucket.KIND,
                resource=resource,
                path=("projects", index, "devops", "state_storage_bucket"),
            )
        )

    if project_raw.get("project_iam_members") is not None:
        resource = _decode_resource(
            ProjectIAM,
            {
                "project_id": project_raw.get("project_id"),
                "members": project_raw["project_iam_members"],
            },
            f"{where}.project_iam_members",
        )
        entries.append(
            ResourceEntry(
                kind=ProjectIAM.KIND,
                resource=resource,
                path=("projects", index, "project_iam_members"),
                render_key="members",
            )
        )

    resources_raw = project_raw.get("resources") or {}
    if not isinstance(resources_raw, Mapping):
        raise DecodeError(f"{where}.resources must be a mapping")
    for kind, definitions in resources_raw.items():
        kind_cls = ResourceRegistry.get_kind(kind)
        if kind_cls is None:
            raise DecodeError(
                f"{where}.resources: unknown resource kind '{kind}'",
                context={"supported_kinds": ", ".join(ResourceRegistry.get_all_kinds())},
            )
        if not isinstance(definitions, list):
            raise DecodeError(f"{where}.resources.{kind} must be a list")
        for position, definition in enumerate(definitions):
            resource = _decode_resource(
                kind_cls, definition, f"{where}.resources.{kind}[{position}]"
            )
            entries.append(
                ResourceEntry(
                    kind=kind,
                    resource=resource,
                    path=("projects", index, "resources", kind, position),
                )
            )

    fields = {name: project_raw[name] for name in PROJECT_FIELDS if name in project_raw}
    fields["audit_sinks"] = _model(AuditSinks, sink_names, f"{where}.audit_logs")
    fields["state_bucket"] = state_bucket
    for name in ("project_id", "owners_group", "auditors_group"):
        if name not in fields:
            raise DecodeError(f"{where}: '{name}' must be set")
    try:
        project = Project.from_config(overall=overall, **fields)
    except PydanticValidationError as e:
        raise DecodeError(f"{where} is invalid: {e}", model="Project", cause=e) from e

    return ProjectEntry(project=project, resources=entries)


def _decode_resource(kind_cls: Type[Resource], definition: Any, where: str) -> Resource:
    try:
        return decode(kind_cls, definition)
    except DecodeError as e:
        e.context.setdefault("location", where)
        raise


def _model(model_cls, data: Any, where: str):
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        raise DecodeError(
            f"{where} is invalid: {e}", model=model_cls.__name__, cause=e
        ) from e


def normalize_document(
    document: ConfigDocument, require_audit_sink: bool = False
) -> Dict[str, Any]:
    """
    Apply policy to every resource of ``document`` and render the result.

    Args:
        document: Loaded configuration document
        require_audit_sink: Treat a missing audit log bucket as an error

    Returns:
        Output document tree

    Raises:
        DeployConfError: The first failure; no output is produced
    """
    pipeline = PolicyPipeline(require_audit_sink=require_audit_sink)
    for project in document.projects:
        pipeline.process(project.project, project.resource_objects)

    logger.info("config_document_normalized", **_flatten_stats(pipeline.stats))
    return render_document(document)


def render_document(document: ConfigDocument) -> Dict[str, Any]:
    """Return the input tree with each resource replaced by its encoding."""
    output = copy.deepcopy(document.raw)
    for entry in document.all_resources():
        _set_path(output, entry.path, entry.rendered())
    return output


def _set_path(tree: Any, path: PathKey, value: Any) -> None:
    node = tree
    for key in path[:-1]:
        node = node[key]
    node[path[-1]] = value


def _flatten_stats(stats: Dict[str, Any]) -> Dict[str, Any]:
    flat = {k: v for k, v in stats.items() if k != "kinds"}
    flat.update({f"kind_{kind}": count for kind, count in stats["kinds"].items()})
    return flat
