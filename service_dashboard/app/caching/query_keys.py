"""
Hierarchical cache keys per entity type.

Keys are tuples of ordered segments so that two calls with the same
arguments compare equal and hash identically::

    ("employees",)                                   all()
    ("employees", "list")                            lists()
    ("employees", "list", (("status", "active"),))   list({"status": "active"})
    ("employees", "detail", 42)                      detail(42)
    ("employees", "stats")                           stats()
    ("expenses", "categories")                       categories(), expenses only

Invalidation and cancellation match by prefix, so invalidating ``lists()``
also reaches every filtered list of the same entity.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

QueryKey = Tuple[Any, ...]

ENTITIES = (
    "employees",
    "projects",
    "invoices",
    "departments",
    "contract_types",
    "users",
    "expenses",
    "dashboard",
)


def _freeze(value: Any) -> Any:
    """Turn mappings and lists into hashable, order-stable tuples."""
    if isinstance(value, Mapping):
        return tuple(sorted((str(k), _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_freeze(v) for v in value]
        if isinstance(value, (set, frozenset)):
            items.sort(key=repr)
        return tuple(items)
    return value


@dataclass(frozen=True)
class QueryKeys:
    """Key builder for one entity type."""

    entity: str

    def all(self) -> QueryKey:
        return (self.entity,)

    def lists(self) -> QueryKey:
        return self.all() + ("list",)

    def list(self, filters: Union[str, Mapping[str, Any], None] = None) -> QueryKey:
        """Key of a filtered list.

        With no filters the key is ``lists()`` itself rather than ``lists()``
        plus an empty filter segment, so an unfiltered list and the prefix
        every list invalidation targets are the same entry.
        """
        if not filters:
            return self.lists()
        if isinstance(filters, str):
            return self.lists() + ((("filters", filters),),)
        return self.lists() + (_freeze(filters),)

    def details(self) -> QueryKey:
        return self.all() + ("detail",)

    def detail(self, entity_id: Any) -> QueryKey:
        return self.details() + (entity_id,)

    def stats(self) -> QueryKey:
        return self.all() + ("stats",)


@dataclass(frozen=True)
class ExpenseKeys(QueryKeys):
    def categories(self) -> QueryKey:
        return self.all() + ("categories",)


_REGISTRY: Dict[str, QueryKeys] = {name: QueryKeys(name) for name in ENTITIES}
_REGISTRY["expenses"] = ExpenseKeys("expenses")


def keys_for(entity: str) -> QueryKeys:
    """Get the key builder for a registered entity type."""
    try:
        return _REGISTRY[entity]
    except KeyError:
        raise ValueError(f"Unknown entity type: {entity!r}") from None


def matches_prefix(prefix: QueryKey, key: QueryKey) -> bool:
    """Whether ``key`` equals ``prefix`` or extends it."""
    return len(key) >= len(prefix) and key[:len(prefix)] == prefix


def entity_of(key: QueryKey) -> Optional[str]:
    """Entity segment of a key, used as a metrics and log label."""
    return key[0] if key else None
