"""Base resource interface for the resource kind catalog.

Every resource kind is a typed overlay model implementing the same
capability set:

- validate(): kind-specific required-field and forbidden-config checks
- _apply_policy(context): deterministic policy injection
- identify(): canonical name used for cross-referencing
- template_reference(): template the external renderer should apply

Policy can only be applied through the PolicyStep returned by a
successful validate() call. Every _apply_policy override is wrapped so it
raises RuntimeError unless the resource is in the VALIDATED state, which
also makes a second application fail.
"""

import functools
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    NoReturn,
    Optional,
    Tuple,
)

from pydantic import PrivateAttr

from ..bindings import Binding
from ..exceptions import ValidationError
from ..overlay import OverlayModel, encode

if TYPE_CHECKING:
    from ..pipeline.context import PolicyContext

logger = logging.getLogger(__name__)


class ResourceState(str, Enum):
    """Lifecycle of a resource within one pipeline run."""

    DECODED = "decoded"
    VALIDATED = "validated"
    POLICY_APPLIED = "policy_applied"
    ENCODED = "encoded"


def _validated_only(hook: Callable[..., None]) -> Callable[..., None]:
    """Wrap a policy hook so it only runs on a VALIDATED resource."""

    @functools.wraps(hook)
    def guarded(self: "Resource", context: "PolicyContext") -> None:
        if self._state is not ResourceState.VALIDATED:
            raise RuntimeError(
                f"{self.KIND} '{self.identify()}': policy requires a validated "
                f"resource, state is {self._state.value}"
            )
        hook(self, context)
        self._state = ResourceState.POLICY_APPLIED

    guarded.validated_only = True  # type: ignore[attr-defined]
    return guarded


class PolicyStep:
    """One-shot continuation applying policy to a validated resource.

    Instances are only created by Resource.validate(). Calling apply() a
    second time is a programming error: policy is not idempotent
    (lifecycle rules accumulate).
    """

    def __init__(self, resource: "Resource") -> None:
        self._resource = resource
        self._applied = False

    @property
    def resource(self) -> "Resource":
        return self._resource

    def apply(self, context: "PolicyContext") -> None:
        if self._applied:
            raise RuntimeError(
                f"Policy already applied to {self._resource.KIND} "
                f"'{self._resource.identify()}'"
            )
        self._applied = True
        self._resource._apply_policy(context)

    __call__ = apply


class Resource(OverlayModel, ABC):
    """Abstract base class for resource kinds.

    Subclasses declare the document key they are listed under (KIND), the
    template the renderer applies (TEMPLATE) and the role granted to the
    project owners group (ADMIN_ROLE).

    Usage:
        @resource_kind
        class GCSBucket(Resource):
            KIND = "gcs_buckets"
            TEMPLATE = "deploy/config/templates/gcs_bucket/gcs_bucket.py"
            ADMIN_ROLE = "roles/storage.admin"
    """

    KIND: ClassVar[str] = ""
    TEMPLATE: ClassVar[str] = ""
    ADMIN_ROLE: ClassVar[str] = ""

    _state: ResourceState = PrivateAttr(default=ResourceState.DECODED)

    @property
    def state(self) -> ResourceState:
        return self._state

    @abstractmethod
    def identify(self) -> str:
        """Return the resource's canonical name."""
        raise NotImplementedError

    def template_reference(self) -> str:
        return self.TEMPLATE

    @abstractmethod
    def check(self) -> None:
        """Run kind-specific checks.

        Must not mutate the resource. Raise ValidationError (via fail())
        on the first violated rule.
        """
        raise NotImplementedError

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        hook = cls.__dict__.get("_apply_policy")
        if hook is not None and not getattr(hook, "validated_only", False):
            cls._apply_policy = _validated_only(hook)

    @abstractmethod
    def _apply_policy(self, context: "PolicyContext") -> None:
        """Mutate typed fields to satisfy project policy.

        Only called through the PolicyStep returned by validate(), exactly
        once per resource per pipeline run.
        """
        raise NotImplementedError

    def validate(self) -> PolicyStep:  # type: ignore[override]
        """Validate the resource and return its policy continuation.

        Returns:
            PolicyStep to apply project policy with

        Raises:
            ValidationError: If a required field is missing or a forbidden
                configuration is set
        """
        if self._state is not ResourceState.DECODED:
            raise RuntimeError(
                f"{self.KIND} '{self.identify()}' cannot be validated in state "
                f"{self._state.value}"
            )
        self.check()
        self._state = ResourceState.VALIDATED
        logger.debug(f"Validated {self.KIND} '{self.identify()}'")
        return PolicyStep(self)

    def to_document(self) -> Dict[str, Any]:
        """Encode the typed view merged over the raw overlay."""
        document = encode(self)
        if self._state is ResourceState.POLICY_APPLIED:
            self._state = ResourceState.ENCODED
        return document

    # Helpers available to all kinds

    def fail(self, message: str, rule: str) -> NoReturn:
        raise ValidationError(
            f"{self.KIND} '{self.identify() or '<unnamed>'}': {message}",
            kind=self.KIND,
            name=self.identify() or None,
            rule=rule,
        )

    def require(self, value: Optional[str], field: str) -> None:
        """Fail unless ``value`` is a non-empty string."""
        if not value:
            self.fail(f"{field} must be set", rule=f"required:{field}")

    @staticmethod
    def role_bindings(*role_members: Tuple[str, List[str]]) -> List[Binding]:
        """Build bindings from (role, members) pairs, skipping empty members."""
        return [
            Binding(role=role, members=members)
            for role, members in role_members
            if members
        ]
