"""
Declarative aggregation pipelines.

A ``Pipeline`` is an ordered list of stages (match, lookup, unwind, group,
project, sort, skip, limit). The same pipeline compiles to native MongoDB
stages with ``to_mongo()`` or executes in process with ``run()``; both
paths follow MongoDB's semantics for the subset of operators used here.
"""

import copy
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from bson import ObjectId

# Resolves a collection name to its documents (used by lookup)
CollectionResolver = Callable[[str], list[dict[str, Any]]]


class _Missing:
    """Marker for a path that does not exist in a document."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


# =============================================================================
# Document paths
# =============================================================================


def get_path(document: Any, path: str) -> Any:
    """
    Read a dotted path from a document.

    Arrays met along the way fan out, as in MongoDB: ``get_path({"a": [{"b": 1},
    {"b": 2}]}, "a.b")`` is ``[1, 2]``. Returns ``MISSING`` when absent.
    """
    current = document
    parts = path.split(".")
    for index, part in enumerate(parts):
        if isinstance(current, dict):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, list):
            rest = ".".join(parts[index:])
            values = [get_path(item, rest) for item in current if isinstance(item, dict)]
            values = [v for v in values if v is not MISSING]
            return values if values else MISSING
        else:
            return MISSING
    return current


def set_path(document: dict[str, Any], path: str, value: Any) -> None:
    """Write a dotted path, creating intermediate documents."""
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        nested = current.get(part)
        if not isinstance(nested, dict):
            nested = {}
            current[part] = nested
        current = nested
    current[parts[-1]] = value


def remove_path(document: Any, path: str) -> None:
    """Remove a dotted path; arrays of documents are handled element-wise."""
    head, _, rest = path.partition(".")
    if isinstance(document, list):
        for item in document:
            remove_path(item, path)
        return
    if not isinstance(document, dict) or head not in document:
        return
    if not rest:
        del document[head]
    else:
        remove_path(document[head], rest)


def resolve_expression(document: dict[str, Any], expression: Any) -> Any:
    """Evaluate a ``"$field"`` reference; other values are literals."""
    if isinstance(expression, str) and expression.startswith("$"):
        value = get_path(document, expression[1:])
        return None if value is MISSING else value
    return expression


# =============================================================================
# Query matching
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _equals(value: Any, target: Any) -> bool:
    if value is MISSING:
        return target is None
    if isinstance(value, list) and not isinstance(target, list):
        return any(item == target for item in value)
    return value == target


def _compare(value: Any, target: Any, operator: str) -> bool:
    candidates = value if isinstance(value, list) else [value]
    for candidate in candidates:
        if candidate is MISSING or candidate is None:
            continue
        if _is_number(candidate) != _is_number(target):
            continue
        try:
            if operator == "$gt" and candidate > target:
                return True
            if operator == "$gte" and candidate >= target:
                return True
            if operator == "$lt" and candidate < target:
                return True
            if operator == "$lte" and candidate <= target:
                return True
        except TypeError:
            continue
    return False


def _regex(value: Any, pattern: Any, options: str) -> bool:
    flags = re.IGNORECASE if "i" in options else 0
    compiled = pattern if isinstance(pattern, re.Pattern) else re.compile(pattern, flags)
    candidates = value if isinstance(value, list) else [value]
    return any(isinstance(c, str) and compiled.search(c) for c in candidates)


def _apply_operator(operator: str, value: Any, argument: Any, options: str) -> bool:
    if operator == "$eq":
        return _equals(value, argument)
    if operator == "$ne":
        return not _equals(value, argument)
    if operator == "$in":
        return any(_equals(value, item) for item in argument)
    if operator == "$nin":
        return not any(_equals(value, item) for item in argument)
    if operator in ("$gt", "$gte", "$lt", "$lte"):
        return _compare(value, argument, operator)
    if operator == "$regex":
        return _regex(value, argument, options)
    if operator == "$exists":
        return (value is not MISSING) == bool(argument)
    raise ValueError(f"Unsupported query operator: {operator}")


def _is_operator_document(condition: Any) -> bool:
    return (
        isinstance(condition, dict)
        and bool(condition)
        and all(str(key).startswith("$") for key in condition)
    )


def matches(document: dict[str, Any], query: Optional[dict[str, Any]]) -> bool:
    """Return True if ``document`` satisfies a MongoDB-style filter."""
    for key, condition in (query or {}).items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
            continue
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
            continue

        value = get_path(document, key)
        if _is_operator_document(condition):
            options = condition.get("$options", "")
            for operator, argument in condition.items():
                if operator == "$options":
                    continue
                if not _apply_operator(operator, value, argument, options):
                    return False
        elif not _equals(value, condition):
            return False
    return True


# =============================================================================
# Sorting
# =============================================================================

# BSON comparison order: null < numbers < strings < objects < arrays < ObjectId < bool < date
def _sort_key(value: Any) -> tuple[int, Any]:
    if value is MISSING or value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (6, value)
    if _is_number(value):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, dict):
        return (3, str(value))
    if isinstance(value, list):
        return (4, str(value))
    if isinstance(value, ObjectId):
        return (5, value.binary)
    if isinstance(value, datetime):
        return (7, value)
    return (8, str(value))


def sort_documents(rows: list[dict[str, Any]], keys: dict[str, int]) -> list[dict[str, Any]]:
    """Stable multi-key sort; the first key in ``keys`` is the primary one."""
    result = list(rows)
    for field, direction in reversed(list(keys.items())):
        result.sort(key=lambda row: _sort_key(get_path(row, field)), reverse=direction < 0)
    return result


# =============================================================================
# Stages
# =============================================================================


class Stage(ABC):
    """A single pipeline stage."""

    @abstractmethod
    def to_mongo(self) -> dict[str, Any]:
        """Native MongoDB representation of the stage."""

    @abstractmethod
    def apply(
        self, rows: list[dict[str, Any]], resolve: CollectionResolver
    ) -> list[dict[str, Any]]:
        """Execute the stage over in-memory rows."""


class MatchStage(Stage):
    def __init__(self, query: dict[str, Any]):
        self.query = query

    def to_mongo(self) -> dict[str, Any]:
        return {"$match": self.query}

    def apply(self, rows, resolve):
        return [row for row in rows if matches(row, self.query)]


class LookupStage(Stage):
    """Left outer equality join; the joined documents land in an array field."""

    def __init__(self, from_collection: str, local_field: str, foreign_field: str, as_field: str):
        self.from_collection = from_collection
        self.local_field = local_field
        self.foreign_field = foreign_field
        self.as_field = as_field

    def to_mongo(self) -> dict[str, Any]:
        return {
            "$lookup": {
                "from": self.from_collection,
                "localField": self.local_field,
                "foreignField": self.foreign_field,
                "as": self.as_field,
            }
        }

    def apply(self, rows, resolve):
        foreign = resolve(self.from_collection)
        result = []
        for row in rows:
            local = get_path(row, self.local_field)
            local_values = local if isinstance(local, list) else [None if local is MISSING else local]
            joined = [
                copy.deepcopy(doc)
                for doc in foreign
                if any(_equals(get_path(doc, self.foreign_field), v) for v in local_values)
            ]
            row = dict(row)
            set_path(row, self.as_field, joined)
            result.append(row)
        return result


class UnwindStage(Stage):
    def __init__(self, path: str, preserve_null_and_empty: bool = False):
        self.path = path.lstrip("$")
        self.preserve_null_and_empty = preserve_null_and_empty

    def to_mongo(self) -> dict[str, Any]:
        if self.preserve_null_and_empty:
            return {
                "$unwind": {
                    "path": f"${self.path}",
                    "preserveNullAndEmptyArrays": True,
                }
            }
        return {"$unwind": f"${self.path}"}

    def apply(self, rows, resolve):
        result = []
        for row in rows:
            value = get_path(row, self.path)
            if isinstance(value, list) and value:
                for item in value:
                    unwound = copy.deepcopy(row)
                    set_path(unwound, self.path, item)
                    result.append(unwound)
            elif isinstance(value, list) or value is MISSING or value is None:
                if self.preserve_null_and_empty:
                    preserved = copy.deepcopy(row)
                    if isinstance(value, list):
                        remove_path(preserved, self.path)
                    result.append(preserved)
            else:
                result.append(row)
        return result


class GroupStage(Stage):
    """
    Group rows by a key expression.

    Supported accumulators: ``$sum`` (literal or field), ``$avg``, ``$min``,
    ``$max``. ``$avg``/``$min``/``$max`` ignore non-numeric or missing values
    and yield ``None`` when nothing was accumulated.
    """

    ACCUMULATORS = ("$sum", "$avg", "$min", "$max")

    def __init__(self, key: Any, accumulators: dict[str, dict[str, Any]]):
        self.key = key
        self.accumulators = accumulators
        for name, spec in accumulators.items():
            (operator,) = spec.keys()
            if operator not in self.ACCUMULATORS:
                raise ValueError(f"Unsupported accumulator for '{name}': {operator}")

    def to_mongo(self) -> dict[str, Any]:
        return {"$group": {"_id": self.key, **self.accumulators}}

    @staticmethod
    def _hashable(value: Any) -> Any:
        if isinstance(value, list):
            return ("__list__", tuple(GroupStage._hashable(v) for v in value))
        if isinstance(value, dict):
            return ("__doc__", tuple((k, GroupStage._hashable(v)) for k, v in value.items()))
        return value

    def apply(self, rows, resolve):
        groups: dict[Any, tuple[Any, list[dict[str, Any]]]] = {}
        for row in rows:
            key_value = resolve_expression(row, self.key)
            bucket = groups.setdefault(self._hashable(key_value), (key_value, []))
            bucket[1].append(row)

        result = []
        for key_value, members in groups.values():
            output: dict[str, Any] = {"_id": key_value}
            for name, spec in self.accumulators.items():
                ((operator, argument),) = spec.items()
                output[name] = self._accumulate(operator, argument, members)
            result.append(output)
        return result

    @staticmethod
    def _accumulate(operator: str, argument: Any, members: list[dict[str, Any]]) -> Any:
        if operator == "$sum" and _is_number(argument):
            return argument * len(members)

        values = [resolve_expression(m, argument) for m in members]
        numbers = [v for v in values if _is_number(v)]
        if operator == "$sum":
            return sum(numbers)
        if operator == "$avg":
            return sum(numbers) / len(numbers) if numbers else None

        present = [v for v in values if v is not None]
        if not present:
            return None
        ordered = sorted(present, key=_sort_key)
        return ordered[0] if operator == "$min" else ordered[-1]


class ProjectStage(Stage):
    """
    Inclusion, exclusion or computed projection.

    A specification with any ``0`` value (other than on ``_id``) is an
    exclusion projection; dotted exclusions reach into joined documents.
    """

    def __init__(self, specification: dict[str, Any]):
        self.specification = specification

    def to_mongo(self) -> dict[str, Any]:
        return {"$project": self.specification}

    @property
    def is_exclusion(self) -> bool:
        return any(
            value in (0, False) and not isinstance(value, str)
            for key, value in self.specification.items()
            if key != "_id"
        ) or all(
            value in (0, False) and not isinstance(value, str)
            for value in self.specification.values()
        )

    def apply(self, rows, resolve):
        return [self.project(row) for row in rows]

    def project(self, row: dict[str, Any]) -> dict[str, Any]:
        if self.is_exclusion:
            projected = copy.deepcopy(row)
            for path in self.specification:
                remove_path(projected, path)
            return projected

        projected: dict[str, Any] = {}
        if self.specification.get("_id", 1) not in (0, False) and "_id" in row:
            projected["_id"] = row["_id"]
        for path, value in self.specification.items():
            if path == "_id" and not isinstance(value, str):
                continue
            if isinstance(value, str) and value.startswith("$"):
                resolved = get_path(row, value[1:])
            elif value in (1, True):
                resolved = get_path(row, path)
            else:
                continue
            if resolved is not MISSING:
                set_path(projected, path, copy.deepcopy(resolved))
        return projected


class SortStage(Stage):
    def __init__(self, keys: dict[str, int]):
        self.keys = keys

    def to_mongo(self) -> dict[str, Any]:
        return {"$sort": dict(self.keys)}

    def apply(self, rows, resolve):
        return sort_documents(rows, self.keys)


class SkipStage(Stage):
    def __init__(self, count: int):
        self.count = count

    def to_mongo(self) -> dict[str, Any]:
        return {"$skip": self.count}

    def apply(self, rows, resolve):
        return rows[self.count:]


class LimitStage(Stage):
    def __init__(self, count: int):
        self.count = count

    def to_mongo(self) -> dict[str, Any]:
        return {"$limit": self.count}

    def apply(self, rows, resolve):
        return rows[: self.count]


# =============================================================================
# Builder
# =============================================================================


class Pipeline:
    """
    Fluent builder for aggregation pipelines.

    Usage:
        pipeline = (
            Pipeline()
            .match({"status": "published"})
            .unwind("required_skills")
            .group("$required_skills", count={"$sum": 1})
            .sort({"count": -1, "_id": 1})
            .limit(10)
        )
    """

    def __init__(self, stages: Optional[Iterable[Stage]] = None):
        self.stages: list[Stage] = list(stages or [])

    def _add(self, stage: Stage) -> "Pipeline":
        self.stages.append(stage)
        return self

    def match(self, query: dict[str, Any]) -> "Pipeline":
        return self._add(MatchStage(query))

    def lookup(
        self, from_collection: str, local_field: str, foreign_field: str, as_field: str
    ) -> "Pipeline":
        return self._add(LookupStage(from_collection, local_field, foreign_field, as_field))

    def unwind(self, path: str, preserve_null_and_empty: bool = False) -> "Pipeline":
        return self._add(UnwindStage(path, preserve_null_and_empty))

    def join_one(
        self,
        from_collection: str,
        local_field: str,
        as_field: str,
        foreign_field: str = "_id",
        preserve_missing: bool = False,
    ) -> "Pipeline":
        """Lookup followed by unwind: a to-one join.

        With ``preserve_missing`` rows without a counterpart are kept (the
        joined field is absent); otherwise they are dropped.
        """
        self.lookup(from_collection, local_field, foreign_field, as_field)
        return self.unwind(as_field, preserve_null_and_empty=preserve_missing)

    def group(self, key: Any, **accumulators: dict[str, Any]) -> "Pipeline":
        return self._add(GroupStage(key, accumulators))

    def project(self, specification: dict[str, Any]) -> "Pipeline":
        return self._add(ProjectStage(specification))

    def sort(self, keys: dict[str, int]) -> "Pipeline":
        return self._add(SortStage(keys))

    def skip(self, count: int) -> "Pipeline":
        return self._add(SkipStage(count))

    def limit(self, count: int) -> "Pipeline":
        return self._add(LimitStage(count))

    def to_mongo(self) -> list[dict[str, Any]]:
        return [stage.to_mongo() for stage in self.stages]

    def run(
        self, rows: Iterable[dict[str, Any]], resolve: CollectionResolver
    ) -> list[dict[str, Any]]:
        """Execute the pipeline in memory. Input rows are never mutated."""
        current = [copy.deepcopy(row) for row in rows]
        for stage in self.stages:
            current = stage.apply(current, resolve)
        return current

    def __len__(self) -> int:
        return len(self.stages)
