"""Bucket policy statements and the canned access-level algebra.

A bucket policy is a JSON document of Allow/Deny statements. Most users only
want "anonymous users may read (or write, or both) objects under this
prefix", so this module maps between the raw statements and four coarse
access levels (:class:`PolicyType`) for a (bucket, prefix) pair:

* :func:`classify` reads the access level a document grants.
* :func:`set_policy` rewrites a document so the pair has the requested
  level, without disturbing statements that belong to other prefixes.

Every value here is immutable and every function returns a new value; a
statement shared by two prefixes can never be edited through one of them
by accident.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from minnow.errors import ConstructionError, PolicyInconsistencyError

AWS_RESOURCE_PREFIX = "arn:aws:s3:::"
POLICY_VERSION = "2012-10-17"

ALLOW = "Allow"
DENY = "Deny"
WILDCARD = "*"

# Common bucket actions for both read and write policies.
COMMON_BUCKET_ACTIONS = frozenset({"s3:GetBucketLocation"})
READ_ONLY_BUCKET_ACTIONS = frozenset({"s3:ListBucket"})
WRITE_ONLY_BUCKET_ACTIONS = frozenset({"s3:ListBucketMultipartUploads"})
READ_ONLY_OBJECT_ACTIONS = frozenset({"s3:GetObject"})
WRITE_ONLY_OBJECT_ACTIONS = frozenset(
    {
        "s3:AbortMultipartUpload",
        "s3:DeleteObject",
        "s3:ListMultipartUploadParts",
        "s3:PutObject",
    }
)
READ_WRITE_OBJECT_ACTIONS = READ_ONLY_OBJECT_ACTIONS | WRITE_ONLY_OBJECT_ACTIONS
VALID_ACTIONS = (
    COMMON_BUCKET_ACTIONS
    | READ_ONLY_BUCKET_ACTIONS
    | WRITE_ONLY_BUCKET_ACTIONS
    | READ_WRITE_OBJECT_ACTIONS
)

STRING_EQUALS = "StringEquals"
STRING_NOT_EQUALS = "StringNotEquals"
S3_PREFIX = "s3:prefix"


class PolicyType(str, Enum):
    """Coarse access level granted to anonymous users."""

    NONE = "none"
    READ_ONLY = "readonly"
    WRITE_ONLY = "writeonly"
    READ_WRITE = "readwrite"


# -- Conditions ----------------------------------------------------------------


def _as_set(value: Any, what: str) -> frozenset[str]:
    """Accept a JSON string or list of strings as a set."""
    if isinstance(value, str):
        return frozenset({value})
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return frozenset(value)
    raise ConstructionError(what, value, "must be a string or a list of strings")


class ConditionMap(Mapping[str, Mapping[str, frozenset[str]]]):
    """Immutable ``operator -> condition key -> values`` mapping.

    Empty value sets and empty operators are dropped on construction, so two
    maps that grant the same thing compare equal.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Mapping[str, Iterable[str]]] | None = None) -> None:
        normalized: dict[str, dict[str, frozenset[str]]] = {}
        for operator, keys in (data or {}).items():
            inner = {key: frozenset(values) for key, values in keys.items() if values}
            if inner:
                normalized[operator] = inner
        self._data = normalized

    @classmethod
    def single(cls, operator: str, key: str, value: str) -> ConditionMap:
        return cls({operator: {key: {value}}})

    @classmethod
    def from_json(cls, obj: Any) -> ConditionMap:
        if not isinstance(obj, dict):
            raise ConstructionError("Condition", obj, "must be an object")
        data: dict[str, dict[str, frozenset[str]]] = {}
        for operator, keys in obj.items():
            if not isinstance(keys, dict):
                raise ConstructionError(f"Condition.{operator}", keys, "must be an object")
            data[operator] = {
                key: _as_set(values, f"Condition.{operator}.{key}") for key, values in keys.items()
            }
        return cls(data)

    def __getitem__(self, operator: str) -> Mapping[str, frozenset[str]]:
        return MappingProxyType(self._data[operator])

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ConditionMap):
            return self._data == other._data
        return NotImplemented

    def __hash__(self) -> int:
        return hash(
            frozenset((op, frozenset(keys.items())) for op, keys in self._data.items())
        )

    def __repr__(self) -> str:
        return f"ConditionMap({self.to_json()!r})"

    def get_values(self, operator: str, key: str) -> frozenset[str] | None:
        """Values for ``operator``/``key``, or None if the key is absent."""
        return self._data.get(operator, {}).get(key)

    def without_value(self, operator: str, key: str, value: str) -> ConditionMap | None:
        """A copy with ``value`` removed; None if nothing is left."""
        data = {op: dict(keys) for op, keys in self._data.items()}
        values = data.get(operator, {}).get(key)
        if values is not None:
            data[operator][key] = values - {value}
        return ConditionMap(data) or None

    def merged(self, other: ConditionMap) -> ConditionMap:
        """Union of both maps, value sets united per key."""
        data: dict[str, dict[str, frozenset[str]]] = {
            op: dict(keys) for op, keys in self._data.items()
        }
        for operator, keys in other._data.items():
            target = data.setdefault(operator, {})
            for key, values in keys.items():
                target[key] = target.get(key, frozenset()) | values
        return ConditionMap(data)

    def to_json(self) -> dict[str, dict[str, list[str]]]:
        return {
            op: {key: sorted(values) for key, values in keys.items()}
            for op, keys in self._data.items()
        }


# -- Statements ----------------------------------------------------------------


@dataclass(frozen=True)
class Statement:
    """One policy statement.

    Attributes:
        actions: Action names such as ``s3:GetObject``.
        resources: ARN patterns; ``*`` matches any run of characters.
        effect: ``Allow`` or ``Deny``.
        principal: AWS principals; ``*`` is everybody.
        conditions: Condition block, or None.
        sid: Optional statement id.
        other_principals: Non-AWS principal kinds (e.g. ``Service``),
            carried through untouched.
    """

    actions: frozenset[str]
    resources: frozenset[str]
    effect: str = ALLOW
    principal: frozenset[str] = frozenset({WILDCARD})
    conditions: ConditionMap | None = None
    sid: str = ""
    other_principals: tuple[tuple[str, frozenset[str]], ...] = field(default=())

    @property
    def is_public_allow(self) -> bool:
        """Allow statement for everybody."""
        return self.effect == ALLOW and WILDCARD in self.principal

    @classmethod
    def from_json(cls, obj: Any) -> Statement:
        """Parse one statement object.

        Raises:
            ConstructionError: On malformed fields.
            PolicyInconsistencyError: On elements the algebra does not model
                (``NotAction``, ``NotResource``, ``NotPrincipal``).
        """
        if not isinstance(obj, dict):
            raise ConstructionError("Statement", obj, "must be an object")
        for unsupported in ("NotAction", "NotResource", "NotPrincipal"):
            if unsupported in obj:
                raise PolicyInconsistencyError(f"{unsupported} statements are not supported")

        effect = obj.get("Effect", "")
        if effect not in (ALLOW, DENY):
            raise ConstructionError("Effect", effect, "must be Allow or Deny")

        principal: frozenset[str] = frozenset()
        other: list[tuple[str, frozenset[str]]] = []
        raw_principal = obj.get("Principal")
        if raw_principal == WILDCARD:
            principal = frozenset({WILDCARD})
        elif isinstance(raw_principal, dict):
            for kind, values in raw_principal.items():
                if kind == "AWS":
                    principal = _as_set(values, "Principal.AWS")
                else:
                    other.append((kind, _as_set(values, f"Principal.{kind}")))
        elif raw_principal is not None:
            raise ConstructionError("Principal", raw_principal, "must be '*' or an object")

        conditions = None
        if obj.get("Condition"):
            conditions = ConditionMap.from_json(obj["Condition"]) or None

        return cls(
            actions=_as_set(obj.get("Action", []), "Action"),
            resources=_as_set(obj.get("Resource", []), "Resource"),
            effect=effect,
            principal=principal,
            conditions=conditions,
            sid=obj.get("Sid", "") or "",
            other_principals=tuple(sorted(other)),
        )

    def to_json(self) -> dict[str, Any]:
        principal: dict[str, list[str]] = {}
        if self.principal:
            principal["AWS"] = sorted(self.principal)
        for kind, values in self.other_principals:
            principal[kind] = sorted(values)

        result: dict[str, Any] = {}
        if self.sid:
            result["Sid"] = self.sid
        result["Effect"] = self.effect
        result["Principal"] = principal
        result["Action"] = sorted(self.actions)
        result["Resource"] = sorted(self.resources)
        if self.conditions:
            result["Condition"] = self.conditions.to_json()
        return result


@dataclass(frozen=True)
class BucketPolicyDocument:
    """A bucket policy: a version string and an ordered tuple of statements."""

    version: str = POLICY_VERSION
    statements: tuple[Statement, ...] = ()

    @classmethod
    def empty(cls) -> BucketPolicyDocument:
        """The document of a bucket that has no policy yet."""
        return cls()

    @classmethod
    def from_json(cls, text: str | bytes | None) -> BucketPolicyDocument:
        """Parse a policy document; empty input gives :meth:`empty`.

        Raises:
            ConstructionError: If the text is not a valid policy document.
            PolicyInconsistencyError: If a statement uses unsupported elements.
        """
        if text is None or not text.strip():
            return cls.empty()
        try:
            obj = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConstructionError("policy", str(exc), "is not valid JSON")
        if not isinstance(obj, dict):
            raise ConstructionError("policy", obj, "must be a JSON object")

        raw_statements = obj.get("Statement", [])
        if isinstance(raw_statements, dict):
            raw_statements = [raw_statements]
        if not isinstance(raw_statements, list):
            raise ConstructionError("Statement", raw_statements, "must be a list")
        return cls(
            version=obj.get("Version", POLICY_VERSION),
            statements=tuple(Statement.from_json(s) for s in raw_statements),
        )

    def to_json(self) -> str:
        return json.dumps(
            {"Version": self.version, "Statement": [s.to_json() for s in self.statements]}
        )


# -- Resource helpers ----------------------------------------------------------


def bucket_resource(bucket: str) -> str:
    return AWS_RESOURCE_PREFIX + bucket


def object_resource(bucket: str, prefix: str) -> str:
    return f"{AWS_RESOURCE_PREFIX}{bucket}/{prefix}*"


def resource_matches(pattern: str, resource: str) -> bool:
    """Match ``resource`` against an ARN pattern with ``*`` globs.

    The first literal part must be a prefix of the resource, inner parts must
    appear in order, and the last part must be a suffix unless the pattern
    ends with ``*``.
    """
    if not pattern:
        return resource == pattern
    if pattern == WILDCARD:
        return True
    parts = pattern.split(WILDCARD)
    if len(parts) == 1:
        return resource == pattern
    if not resource.startswith(parts[0]):
        return False
    rest = resource[len(parts[0]):]
    for part in parts[1:-1]:
        idx = rest.find(part)
        if idx < 0:
            return False
        rest = rest[idx + len(part):]
    return pattern.endswith(WILDCARD) or rest.endswith(parts[-1])


def _starts_with(resources: frozenset[str], prefix: str) -> frozenset[str]:
    return frozenset(r for r in resources if r.startswith(prefix))


def _is_valid(statement: Statement, bucket: str) -> bool:
    """Whether the algebra manages ``statement`` for ``bucket``."""
    if not statement.actions & VALID_ACTIONS:
        return False
    if not statement.is_public_allow:
        return False
    if bucket_resource(bucket) in statement.resources:
        return True
    return bool(_starts_with(statement.resources, bucket_resource(bucket) + "/"))


def _touches_bucket(statement: Statement, bucket: str) -> bool:
    resource = bucket_resource(bucket)
    return resource in statement.resources or bool(
        _starts_with(statement.resources, resource + "/")
    )


# -- Classification ------------------------------------------------------------


def _bucket_flags(statement: Statement, prefix: str) -> tuple[bool, bool, bool]:
    """``(common, read, write)`` bucket-level grants of one statement."""
    common = read = write = False
    if not statement.is_public_allow:
        return common, read, write

    actions = statement.actions
    conditions = statement.conditions
    if COMMON_BUCKET_ACTIONS <= actions and conditions is None:
        common = True
    if WRITE_ONLY_BUCKET_ACTIONS <= actions and conditions is None:
        write = True
    if READ_ONLY_BUCKET_ACTIONS <= actions:
        if prefix and conditions is not None:
            if STRING_EQUALS in conditions:
                values = conditions.get_values(STRING_EQUALS, S3_PREFIX)
                read = values is not None and prefix in values
            elif STRING_NOT_EQUALS in conditions:
                values = conditions.get_values(STRING_NOT_EQUALS, S3_PREFIX)
                read = values is not None and prefix not in values
        elif conditions is None:
            read = True
    return common, read, write


def _object_flags(statement: Statement) -> tuple[bool, bool]:
    """``(read, write)`` object-level grants of one statement."""
    if not statement.is_public_allow or statement.conditions is not None:
        return False, False
    return (
        READ_ONLY_OBJECT_ACTIONS <= statement.actions,
        WRITE_ONLY_OBJECT_ACTIONS <= statement.actions,
    )


def classify(document: BucketPolicyDocument, bucket: str, prefix: str = "") -> PolicyType:
    """Return the access level ``document`` grants on ``bucket``/``prefix``.

    Bucket-level grants are united across statements. For object-level
    grants the longest matching resource pattern wins; patterns of equal
    length unite their grants.

    Raises:
        PolicyInconsistencyError: If a Deny statement applies to the bucket;
            the algebra only reasons about Allow statements.
    """
    bucket_arn = bucket_resource(bucket)
    object_arn = object_resource(bucket, prefix)

    common_found = bucket_read = bucket_write = False
    matched = ""
    obj_read = obj_write = False

    for statement in document.statements:
        if statement.effect == DENY and _touches_bucket(statement, bucket):
            raise PolicyInconsistencyError(
                f"Deny statement on bucket {bucket!r} cannot be classified",
                bucket=bucket,
                statement=statement,
            )

        if object_arn in statement.resources:
            resources = {object_arn}
        else:
            resources = {r for r in statement.resources if resource_matches(r, object_arn)}

        if resources:
            read, write = _object_flags(statement)
            for resource in resources:
                if len(matched) < len(resource):
                    obj_read, obj_write, matched = read, write, resource
                elif len(matched) == len(resource):
                    obj_read, obj_write, matched = obj_read or read, obj_write or write, resource
        elif bucket_arn in statement.resources:
            common, read, write = _bucket_flags(statement, prefix)
            common_found = common_found or common
            bucket_read = bucket_read or read
            bucket_write = bucket_write or write

    if common_found:
        if bucket_read and bucket_write and obj_read and obj_write:
            return PolicyType.READ_WRITE
        if bucket_read and obj_read:
            return PolicyType.READ_ONLY
        if bucket_write and obj_write:
            return PolicyType.WRITE_ONLY
    return PolicyType.NONE


def policies(document: BucketPolicyDocument, bucket: str) -> dict[str, PolicyType]:
    """Access level of every object resource pattern ``document`` names for ``bucket``.

    Keys look like ``bucket/prefix*``.
    """
    bucket_arn = bucket_resource(bucket)
    resources: set[str] = set()
    for statement in document.statements:
        resources |= _starts_with(statement.resources, bucket_arn + "/")

    result = {}
    for resource in sorted(resources):
        asterisk = WILDCARD if resource.endswith(WILDCARD) else ""
        path = resource[len(bucket_arn) + 1 : len(resource) - len(asterisk)]
        result[f"{bucket}/{path}{asterisk}"] = classify(document, bucket, path)
    return result


# -- Removal -------------------------------------------------------------------


def _in_use(statements: Iterable[Statement], bucket: str, prefix: str) -> tuple[bool, bool]:
    """Whether object read/write grants exist for prefixes other than ``prefix``."""
    resource_prefix = bucket_resource(bucket) + "/"
    object_arn = object_resource(bucket, prefix)
    read_in_use = write_in_use = False
    for statement in statements:
        # A statement merged across prefixes still serves the others.
        if _starts_with(statement.resources - {object_arn}, resource_prefix):
            read_in_use = read_in_use or READ_ONLY_OBJECT_ACTIONS <= statement.actions
            write_in_use = write_in_use or WRITE_ONLY_OBJECT_ACTIONS <= statement.actions
        if read_in_use and write_in_use:
            break
    return read_in_use, write_in_use


def _remove_read_bucket_actions(statement: Statement, prefix: str) -> Statement:
    if not READ_ONLY_BUCKET_ACTIONS <= statement.actions:
        return statement
    if statement.conditions is None:
        return replace(statement, actions=statement.actions - READ_ONLY_BUCKET_ACTIONS)
    if not prefix:
        return statement

    # Shared listing statement: fold this prefix out of its condition and
    # only drop the action once no prefix is left.
    conditions = statement.conditions.without_value(STRING_EQUALS, S3_PREFIX, prefix)
    if conditions is None:
        return replace(
            statement, actions=statement.actions - READ_ONLY_BUCKET_ACTIONS, conditions=None
        )
    return replace(statement, conditions=conditions)


def _remove_bucket_actions(
    statement: Statement,
    prefix: str,
    bucket_arn: str,
    read_in_use: bool,
    write_in_use: bool,
) -> Statement:
    if len(statement.resources) > 1:
        return replace(statement, resources=statement.resources - {bucket_arn})
    if not read_in_use:
        statement = _remove_read_bucket_actions(statement, prefix)
    if not write_in_use and statement.conditions is None:
        statement = replace(statement, actions=statement.actions - WRITE_ONLY_BUCKET_ACTIONS)
    return statement


def _remove_object_actions(statement: Statement, object_arn: str) -> Statement:
    if statement.conditions is not None:
        return statement
    if len(statement.resources) > 1:
        return replace(statement, resources=statement.resources - {object_arn})
    return replace(statement, actions=statement.actions - READ_WRITE_OBJECT_ACTIONS)


def _is_common_bucket_statement(statement: Statement, bucket_arn: str) -> bool:
    return (
        bucket_arn in statement.resources
        and COMMON_BUCKET_ACTIONS <= statement.actions
        and statement.is_public_allow
        and statement.conditions is None
    )


def remove_statements(
    statements: tuple[Statement, ...], bucket: str, prefix: str
) -> tuple[Statement, ...]:
    """Phase one of :func:`set_policy`: drop the grants of ``bucket``/``prefix``.

    Statements that also serve other prefixes lose only this prefix's share.
    Statements the algebra does not manage are kept as they are.
    """
    bucket_arn = bucket_resource(bucket)
    object_arn = object_resource(bucket, prefix)
    read_in_use, write_in_use = _in_use(statements, bucket, prefix)

    out: list[Statement] = []
    deferred: list[Statement] = []
    prefix_resources: set[str] = set()

    for statement in statements:
        if not _is_valid(statement, bucket):
            out.append(statement)
            continue

        if bucket_arn in statement.resources:
            if statement.conditions is not None:
                statement = _remove_bucket_actions(statement, prefix, bucket_arn, False, False)
            else:
                statement = _remove_bucket_actions(
                    statement, prefix, bucket_arn, read_in_use, write_in_use
                )
        elif object_arn in statement.resources:
            statement = _remove_object_actions(statement, object_arn)

        if not statement.actions or not statement.resources:
            continue

        if (
            bucket_arn in statement.resources
            and READ_ONLY_BUCKET_ACTIONS <= statement.actions
            and statement.is_public_allow
        ):
            if statement.conditions is not None:
                for value in statement.conditions.get_values(STRING_EQUALS, S3_PREFIX) or ():
                    prefix_resources.add(object_resource(bucket, value))
            elif prefix_resources:
                deferred.append(statement)
                continue
        out.append(statement)

    # An unconditional listing grant is only kept if some object grant
    # remains that is not already covered by a prefix-scoped listing grant.
    resource_prefix = bucket_arn + "/"
    skip_bucket_statement = not any(
        _starts_with(s.resources, resource_prefix) and not (prefix_resources & s.resources)
        for s in out
    )
    for statement in deferred:
        if (
            skip_bucket_statement
            and bucket_arn in statement.resources
            and statement.is_public_allow
            and statement.conditions is None
        ):
            continue
        out.append(statement)

    # Nothing else for this bucket left: the common GetBucketLocation grant
    # has no purpose on its own.
    managed = [s for s in out if _is_valid(s, bucket)]
    if len(managed) == 1 and _is_common_bucket_statement(managed[0], bucket_arn):
        lone = managed[0]
        index = out.index(lone)
        if len(lone.resources) > 1:
            out[index] = replace(lone, resources=lone.resources - {bucket_arn})
        else:
            del out[index]

    return tuple(out)


# -- Appending -----------------------------------------------------------------


def new_statements(bucket: str, prefix: str, policy: PolicyType) -> tuple[Statement, ...]:
    """The statements that grant ``policy`` on ``bucket``/``prefix`` from scratch."""
    if policy == PolicyType.NONE or not bucket:
        return ()

    bucket_arn = frozenset({bucket_resource(bucket)})
    result = [Statement(actions=COMMON_BUCKET_ACTIONS, resources=bucket_arn)]

    if policy in (PolicyType.READ_ONLY, PolicyType.READ_WRITE):
        conditions = ConditionMap.single(STRING_EQUALS, S3_PREFIX, prefix) if prefix else None
        result.append(
            Statement(actions=READ_ONLY_BUCKET_ACTIONS, resources=bucket_arn, conditions=conditions)
        )
    if policy in (PolicyType.WRITE_ONLY, PolicyType.READ_WRITE):
        result.append(Statement(actions=WRITE_ONLY_BUCKET_ACTIONS, resources=bucket_arn))

    object_actions = {
        PolicyType.READ_ONLY: READ_ONLY_OBJECT_ACTIONS,
        PolicyType.WRITE_ONLY: WRITE_ONLY_OBJECT_ACTIONS,
        PolicyType.READ_WRITE: READ_WRITE_OBJECT_ACTIONS,
    }[policy]
    result.append(
        Statement(
            actions=object_actions, resources=frozenset({object_resource(bucket, prefix)})
        )
    )
    return tuple(result)


def append_statement(
    statements: tuple[Statement, ...], statement: Statement
) -> tuple[Statement, ...]:
    """Add ``statement``, merging it into an existing one where possible.

    * Same actions, effect, principal and conditions: resources are united.
    * Same resources, effect, principal and conditions: actions are united.
    * An existing statement already covering it: kept as is, or its
      conditions are united when both have conditions and resources match.
    * Otherwise appended.
    """
    if not statement.actions or not statement.resources:
        return statements

    for i, s in enumerate(statements):
        same_grantee = s.effect == statement.effect and s.principal == statement.principal
        if same_grantee and s.conditions == statement.conditions:
            if s.actions == statement.actions:
                merged = replace(s, resources=s.resources | statement.resources)
                return statements[:i] + (merged,) + statements[i + 1 :]
            if s.resources == statement.resources:
                merged = replace(s, actions=s.actions | statement.actions)
                return statements[:i] + (merged,) + statements[i + 1 :]

        if (
            statement.resources <= s.resources
            and statement.actions <= s.actions
            and s.effect == statement.effect
            and statement.principal <= s.principal
        ):
            if s.conditions == statement.conditions:
                return statements
            if (
                s.conditions is not None
                and statement.conditions is not None
                and s.resources == statement.resources
            ):
                merged = replace(s, conditions=s.conditions.merged(statement.conditions))
                return statements[:i] + (merged,) + statements[i + 1 :]

    return statements + (statement,)


def set_policy(
    document: BucketPolicyDocument, bucket: str, prefix: str, policy: PolicyType
) -> BucketPolicyDocument:
    """Return a copy of ``document`` granting ``policy`` on ``bucket``/``prefix``.

    Args:
        document: The current policy (``BucketPolicyDocument.empty()`` if the
            bucket has none).
        bucket: Bucket name.
        prefix: Object key prefix; empty for the whole bucket.
        policy: Target access level.

    Raises:
        ConstructionError: If ``bucket`` is empty.
    """
    if not bucket:
        raise ConstructionError("bucket", bucket, "must not be empty")
    policy = PolicyType(policy)

    statements = remove_statements(document.statements, bucket, prefix)
    for statement in new_statements(bucket, prefix, policy):
        statements = append_statement(statements, statement)
    statements = tuple(s for s in statements if s.actions and s.resources)
    return replace(document, statements=statements)
