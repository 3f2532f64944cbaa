"""Access-control bindings and the binding merger.

A binding maps one role to an ordered set of principals, optionally under
an IAM condition. Bindings coming from project policy and from user
definitions are merged into a single deduplicated list with a stable
ordering: bindings appear in first-seen (role, condition) order and, within
a binding, members appear in first-seen order.
"""

import copy
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from pydantic import Field, StrictStr

from .overlay import OverlayModel, deep_merge


class Binding(OverlayModel):
    """An access-control entry mapping a role to principals."""

    role: StrictStr
    members: List[StrictStr] = Field(default_factory=list)
    condition: Optional[Dict[str, Any]] = None

    def pairs(self) -> List[Tuple[str, str]]:
        return [(self.role, member) for member in self.members]

    def merge_key(self) -> Tuple[str, Optional[str]]:
        """Bindings sharing a role only merge when their conditions match."""
        if self.condition is None:
            return self.role, None
        return self.role, json.dumps(self.condition, sort_keys=True)


def merge_bindings(*binding_lists: Sequence[Binding]) -> List[Binding]:
    """
    Merge binding lists into one deduplicated list.

    Lists are concatenated in argument order and grouped by role and
    condition. Members from every binding of a group are unioned, keeping
    the first occurrence. The merged binding keeps the unmodeled fields of
    every binding of its group, the first one seen winning on conflicts.
    Never fails; merging the result with itself returns the same result.

    Args:
        *binding_lists: Binding lists, highest precedence first

    Returns:
        New list of Binding objects (inputs are not modified)
    """
    firsts: Dict[Tuple[str, Optional[str]], Binding] = {}
    key_to_members: Dict[Tuple[str, Optional[str]], List[str]] = {}
    key_to_raw: Dict[Tuple[str, Optional[str]], Dict[str, Any]] = {}

    for bindings in binding_lists:
        for binding in bindings:
            key = binding.merge_key()
            if key not in firsts:
                firsts[key] = binding
                key_to_members[key] = []
            key_to_members[key].extend(binding.members)
            if binding.has_raw_overlay:
                key_to_raw[key] = deep_merge(binding._raw, key_to_raw.get(key, {}))

    return [
        _merged(first, _dedupe(key_to_members[key]), key_to_raw.get(key))
        for key, first in firsts.items()
    ]


def _merged(
    first: Binding, members: List[str], raw: Optional[Dict[str, Any]]
) -> Binding:
    fields: Dict[str, Any] = {"role": first.role, "members": members}
    if first.condition is not None:
        fields["condition"] = copy.deepcopy(first.condition)
    binding = Binding(**fields)
    if raw is not None:
        binding._raw = copy.deepcopy(raw)
    return binding


def _dedupe(members: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    result = []
    for member in members:
        if member in seen:
            continue
        seen.add(member)
        result.append(member)
    return result


class IAMMember(OverlayModel):
    """A single (role, member) grant, as listed under ``_iam_members``."""

    role: Optional[StrictStr] = None
    member: Optional[StrictStr] = None


def iam_members(bindings: Iterable[Binding]) -> List[IAMMember]:
    """Flatten bindings into one IAMMember per (role, member) pair."""
    return [
        IAMMember(role=role, member=member)
        for binding in bindings
        for role, member in binding.pairs()
    ]


def merge_iam_members(*member_lists: Sequence[IAMMember]) -> List[IAMMember]:
    """
    Merge IAM member lists, dropping repeated (role, member) pairs.

    Pairs keep the position of their first occurrence. When a pair built
    in code is repeated by a user entry, the user entry takes its place so
    unmodeled fields of the user's definition survive.
    """
    positions: Dict[Tuple[Optional[str], Optional[str]], int] = {}
    result: List[IAMMember] = []
    for members in member_lists:
        for entry in members:
            key = (entry.role, entry.member)
            if key not in positions:
                positions[key] = len(result)
                result.append(entry)
            elif entry.has_raw_overlay and not result[positions[key]].has_raw_overlay:
                result[positions[key]] = entry
    return result


def binding_pairs(bindings: Iterable[Binding]) -> Set[Tuple[str, str]]:
    """Return the set of (role, member) pairs covered by ``bindings``."""
    return {pair for binding in bindings for pair in binding.pairs()}


def group_members(*emails: str) -> List[str]:
    """Prefix group e-mail addresses as group principals."""
    return [f"group:{email}" for email in emails]
