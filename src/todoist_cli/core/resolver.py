"""Resolve user-supplied tokens to exactly one record.

A token may be a raw id, an exact project path or name, or a fragment of
one. Every resolver applies the same precedence over the scope-filtered
candidates:

1. Id match: the stripped token equals a record id.
2. Exact match: case-insensitive equality with the path (projects) or the
   name/content field.
3. Partial match: case-insensitive containment in the path or name.

The first rule yielding exactly one record wins. An exact match always
suppresses partial-match ambiguity. More than one match at the deciding rule
raises ``AmbiguousError`` listing every candidate; nothing matching raises
``NotFoundError`` naming the original token.

Resolvers never fetch: callers pass collections taken from a snapshot so a
batch of tokens costs one fetch, not one per token.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Optional,
    Sequence,
    TypeVar,
)

from todoist_cli.core.models import Label, Project, Section, Task
from todoist_cli.core.paths import PathIndex

logger = logging.getLogger(__name__)

R = TypeVar("R")


class MatchMode(str, Enum):
    """How far down the precedence list a resolver may go."""

    EXACT = "exact"  # id and exact match only
    PARTIAL = "partial"  # id, exact, then substring


@dataclass(frozen=True)
class Candidate:
    """One record offered back to the user when a token is ambiguous."""

    id: str
    label: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "label": self.label}


class ResolutionError(Exception):
    """Base class for token resolution failures.

    Attributes:
        kind: Record kind being resolved ("project", "section", ...).
        token: The token exactly as the user supplied it.
        scope: Human-readable scope description, if a scope was applied.
    """

    def __init__(self, message: str, *, kind: str, token: str, scope: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.token = token
        self.scope = scope


class NotFoundError(ResolutionError):
    """No record satisfies any rule."""

    def __init__(self, kind: str, token: str, *, scope: Optional[str] = None):
        where = f" in {scope}" if scope else ""
        super().__init__(
            f"{kind.capitalize()} not found{where}: {token}",
            kind=kind,
            token=token,
            scope=scope,
        )


class AmbiguousError(ResolutionError):
    """More than one record matches at the deciding rule."""

    def __init__(
        self,
        kind: str,
        token: str,
        candidates: Sequence[Candidate],
        *,
        scope: Optional[str] = None,
    ):
        super().__init__(
            f"Multiple matching {kind}s found for '{token}'. "
            f"Specify the {kind} by ID to avoid ambiguity.",
            kind=kind,
            token=token,
            scope=scope,
        )
        self.candidates: List[Candidate] = list(candidates)

    def candidate_lines(self) -> List[str]:
        return [f"  {c.id}: {c.label}" for c in self.candidates]


class EmptyTokenError(ResolutionError):
    """A blank token was supplied where a name or id is required."""

    def __init__(self, kind: str):
        super().__init__(
            f"{kind.capitalize()} ID or name is required",
            kind=kind,
            token="",
        )


@dataclass
class Resolver(Generic[R]):
    """Precedence-ordered matcher over one record collection.

    Args:
        kind: Record kind used in error messages.
        records: Pre-fetched candidate records.
        texts_of: Strings rule 2 and rule 3 compare against, in priority
            order. Exact matching tries each entry as a separate tier (a
            project's full path before its bare name); partial matching only
            looks at the first entry.
        label_of: Display label for ambiguity listings.
        scope: Optional predicate applied before any rule.
        scope_label: Description of the scope for error messages.
    """

    kind: str
    records: Iterable[R]
    texts_of: Callable[[R], Sequence[str]]
    label_of: Callable[[R], str]
    scope: Optional[Callable[[R], bool]] = None
    scope_label: Optional[str] = None
    _scoped: List[R] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        records = list(self.records)
        if self.scope is not None:
            records = [r for r in records if self.scope(r)]
        self._scoped = records

    def _candidates(self, matches: Sequence[R]) -> List[Candidate]:
        return [Candidate(id=str(getattr(r, "id")), label=self.label_of(r)) for r in matches]

    def _decide(self, token: str, matches: List[R]) -> Optional[R]:
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise AmbiguousError(
                self.kind, token, self._candidates(matches), scope=self.scope_label
            )
        return None

    def resolve(self, token: Any, mode: MatchMode = MatchMode.PARTIAL) -> R:
        raw = "" if token is None else str(token)
        needle = raw.strip()
        if not needle:
            raise EmptyTokenError(self.kind)

        for record in self._scoped:
            if str(getattr(record, "id")) == needle:
                logger.debug("Resolved %s %r by id", self.kind, raw)
                return record

        folded = needle.casefold()
        texts = [(r, self.texts_of(r)) for r in self._scoped]
        tiers = max((len(t) for _, t in texts), default=0)
        for tier in range(tiers):
            exact = [
                r for r, t in texts
                if tier < len(t) and t[tier] and t[tier].casefold() == folded
            ]
            found = self._decide(raw, exact)
            if found is not None:
                logger.debug("Resolved %s %r by exact match", self.kind, raw)
                return found

        if mode is MatchMode.PARTIAL:
            partial = [r for r, t in texts if t and folded in (t[0] or "").casefold()]
            found = self._decide(raw, partial)
            if found is not None:
                logger.debug("Resolved %s %r by partial match", self.kind, raw)
                return found

        raise NotFoundError(self.kind, raw, scope=self.scope_label)


def resolve_project(
    token: Any,
    projects: Iterable[Project],
    *,
    index: Optional[PathIndex] = None,
    mode: MatchMode = MatchMode.PARTIAL,
) -> Project:
    """Resolve a project by id, full path, bare name or path fragment."""
    projects = list(projects)
    paths = index if index is not None else PathIndex(projects)
    return Resolver(
        kind="project",
        records=projects,
        texts_of=lambda p: (paths.path(p), p.name),
        label_of=lambda p: paths.path(p),
    ).resolve(token, mode)


def resolve_section(
    token: Any,
    sections: Iterable[Section],
    *,
    project_id: Optional[str] = None,
    project_label: Optional[str] = None,
    mode: MatchMode = MatchMode.PARTIAL,
    label_of: Optional[Callable[[Section], str]] = None,
) -> Section:
    """Resolve a section, optionally scoped to one project."""
    scope = None
    scope_label = None
    if project_id is not None:
        scope = lambda s: s.project_id == str(project_id)  # noqa: E731
        scope_label = f"project {project_label or project_id}"
    return Resolver(
        kind="section",
        records=sections,
        texts_of=lambda s: (s.name,),
        label_of=label_of or (lambda s: s.name),
        scope=scope,
        scope_label=scope_label,
    ).resolve(token, mode)


def resolve_task(
    token: Any,
    tasks: Iterable[Task],
    *,
    project_id: Optional[str] = None,
    section_id: Optional[str] = None,
    mode: MatchMode = MatchMode.PARTIAL,
) -> Task:
    """Resolve a task by id or content, optionally scoped to a project/section."""
    predicates: List[Callable[[Task], bool]] = []
    scope_parts: List[str] = []
    if project_id is not None:
        predicates.append(lambda t: t.project_id == str(project_id))
        scope_parts.append(f"project {project_id}")
    if section_id is not None:
        predicates.append(lambda t: t.section_id == str(section_id))
        scope_parts.append(f"section {section_id}")
    scope = (lambda t: all(p(t) for p in predicates)) if predicates else None
    return Resolver(
        kind="task",
        records=tasks,
        texts_of=lambda t: (t.content,),
        label_of=lambda t: t.content,
        scope=scope,
        scope_label=", ".join(scope_parts) or None,
    ).resolve(token, mode)


def resolve_label(
    token: Any,
    labels: Iterable[Label],
    *,
    mode: MatchMode = MatchMode.EXACT,
) -> Label:
    """Resolve a personal label by id or name (exact by default)."""
    return Resolver(
        kind="label",
        records=labels,
        texts_of=lambda label: (label.name,),
        label_of=lambda label: label.name,
    ).resolve(token, mode)


@dataclass
class BatchResolution(Generic[R]):
    """Outcome of resolving a token list against one snapshot."""

    resolved: List[R] = field(default_factory=list)
    failures: List[ResolutionError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def resolve_many(
    tokens: Iterable[Any],
    resolve_one: Callable[[Any], R],
    *,
    continue_on_error: bool = False,
    dedupe: bool = True,
) -> BatchResolution[R]:
    """Resolve every token with ``resolve_one``.

    ``resolve_one`` must close over an already-fetched collection. Without
    ``continue_on_error`` the first failure propagates; with it, failures are
    collected and resolution continues. Duplicate records are dropped when
    ``dedupe`` is set, keeping first-seen order.
    """
    result: BatchResolution[R] = BatchResolution()
    seen: set = set()
    for token in tokens:
        try:
            record = resolve_one(token)
        except ResolutionError as exc:
            if not continue_on_error:
                raise
            logger.warning("Skipping unresolved token %r: %s", token, exc)
            result.failures.append(exc)
            continue
        record_id = str(getattr(record, "id"))
        if dedupe and record_id in seen:
            continue
        seen.add(record_id)
        result.resolved.append(record)
    return result
