"""
Typed IAM policy documents

`Action` and `Resource` may be written either as a single string or as a list
of strings. Both shapes are modelled explicitly so predicates over a statement
have to say what they do with each one.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import unquote_plus

from .errors import PolicyParseError

WILDCARD = "*"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class SingleValue:
    """`"Action": "s3:GetObject"`"""
    value: str


@dataclass(frozen=True)
class ValueList:
    """`"Action": ["s3:GetObject", "s3:PutObject"]`"""
    values: Tuple[str, ...]


FieldValue = Union[SingleValue, ValueList]


def _is_wildcard(value: Optional[FieldValue], include_lists: bool) -> bool:
    if isinstance(value, SingleValue):
        return value.value == WILDCARD
    if isinstance(value, ValueList):
        return include_lists and WILDCARD in value.values
    # absent, e.g. a NotAction / NotResource statement
    return False


@dataclass(frozen=True)
class Statement:
    effect: str
    action: Optional[FieldValue] = None
    resource: Optional[FieldValue] = None
    sid: Optional[str] = None

    def grants_admin_access(self, include_lists: bool = False) -> bool:
        """Allow on Action "*" and Resource "*".

        Only bare-string wildcards count unless `include_lists` is set, in
        which case a list containing "*" counts too.
        """
        return (self.effect == "Allow"
                and _is_wildcard(self.action, include_lists)
                and _is_wildcard(self.resource, include_lists))


@dataclass(frozen=True)
class PolicyDocument:
    statements: Tuple[Statement, ...]
    version: Optional[str] = None

    @classmethod
    def parse(cls, policy_arn: str, document: Union[str, Dict[str, Any]]) -> "PolicyDocument":
        """Build a document from URL-encoded JSON text or an already decoded dict"""
        if isinstance(document, str):
            document = _decode(policy_arn, document)
        if not isinstance(document, dict):
            raise PolicyParseError(policy_arn, "document is not a JSON object")

        raw_statements = document.get("Statement")
        if isinstance(raw_statements, dict):
            raw_statements = [raw_statements]
        if not isinstance(raw_statements, list):
            raise PolicyParseError(policy_arn, "missing Statement collection")

        statements = tuple(_parse_statement(policy_arn, raw) for raw in raw_statements)
        return cls(statements=statements, version=document.get("Version"))

    def first_admin_statement(self, include_lists: bool = False) -> Optional[Statement]:
        """First statement granting admin access; later statements are not examined"""
        return next(
            (s for s in self.statements if s.grants_admin_access(include_lists)),
            None,
        )


def _decode(policy_arn: str, text: str) -> Any:
    if _BAD_ESCAPE.search(text):
        raise PolicyParseError(policy_arn, "invalid URL escape sequence")
    try:
        return json.loads(unquote_plus(text))
    except ValueError as e:
        raise PolicyParseError(policy_arn, "invalid JSON", cause=e) from e


def _parse_statement(policy_arn: str, raw: Any) -> Statement:
    if not isinstance(raw, dict):
        raise PolicyParseError(policy_arn, "statement is not a JSON object")
    effect = raw.get("Effect")
    if not isinstance(effect, str):
        raise PolicyParseError(policy_arn, "statement has no Effect")
    return Statement(
        effect=effect,
        action=_parse_field(policy_arn, "Action", raw.get("Action")),
        resource=_parse_field(policy_arn, "Resource", raw.get("Resource")),
        sid=raw.get("Sid"),
    )


def _parse_field(policy_arn: str, name: str, raw: Any) -> Optional[FieldValue]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return SingleValue(raw)
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return ValueList(tuple(raw))
    raise PolicyParseError(policy_arn, f"{name} must be a string or a list of strings")
