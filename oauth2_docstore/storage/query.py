# oauth2_docstore/storage/query.py
"""Parameterized single-field filter queries.

Queries use the document database's own syntax, with the collection bound as
``@@collection`` and the value bound as ``@<field>``:

    FOR doc IN @@collection FILTER doc.code == @code RETURN doc
    FOR doc IN @@collection FILTER doc.code == @code REMOVE doc IN @@collection

The embedded backends only understand this shape; anything else is rejected.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping

from .document_store import BindParameterError, QuerySyntaxError

COLLECTION_BIND_VAR = "@collection"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_FILTER_QUERY = re.compile(
    r"^\s*FOR\s+(?P<var>[A-Za-z_]\w*)\s+IN\s+@@collection\s+"
    r"FILTER\s+(?P=var)\.(?P<field>[A-Za-z_]\w*)\s*==\s*@(?P<param>[A-Za-z_]\w*)\s+"
    r"(?:(?P<ret>RETURN\s+(?P=var))|(?P<rm>REMOVE\s+(?P=var)\s+IN\s+@@collection))\s*$"
)


class QueryAction(str, Enum):
    RETURN = "RETURN"
    REMOVE = "REMOVE"


@dataclass(frozen=True)
class FilterQuery:
    """Parsed form of a single-field equality filter."""
    field: str
    param: str
    action: QueryAction

    def bind(self, bind_vars: Mapping[str, Any]) -> "BoundFilterQuery":
        """Resolve the collection name and lookup value from bind_vars."""
        for name in (COLLECTION_BIND_VAR, self.param):
            if name not in bind_vars:
                raise BindParameterError(f"Missing bind parameter '@{name}'.")
        collection = bind_vars[COLLECTION_BIND_VAR]
        if not isinstance(collection, str) or not collection:
            raise BindParameterError("Bind parameter '@@collection' must be a non-empty string.")
        return BoundFilterQuery(
            query=self,
            collection=collection,
            value=bind_vars[self.param],
        )


@dataclass(frozen=True)
class BoundFilterQuery:
    query: FilterQuery
    collection: str
    value: Any

    def matches(self, document: Mapping[str, Any]) -> bool:
        return self.query.field in document and document[self.query.field] == self.value


def build_filter_query(field: str, action: QueryAction = QueryAction.RETURN) -> str:
    """Build the query text filtering on `field`, bound to a parameter of the same name."""
    if not _IDENTIFIER.match(field):
        raise ValueError(f"Invalid document field name: {field!r}")
    text = f"FOR doc IN @@collection FILTER doc.{field} == @{field} "
    if action is QueryAction.REMOVE:
        return text + "REMOVE doc IN @@collection"
    return text + "RETURN doc"


def build_bind_vars(collection: str, field: str, value: Any) -> Dict[str, Any]:
    return {COLLECTION_BIND_VAR: collection, field: value}


def parse_filter_query(text: str) -> FilterQuery:
    match = _FILTER_QUERY.match(text)
    if match is None:
        raise QuerySyntaxError(f"Unsupported query: {text!r}")
    action = QueryAction.REMOVE if match.group("rm") else QueryAction.RETURN
    return FilterQuery(field=match.group("field"), param=match.group("param"), action=action)
