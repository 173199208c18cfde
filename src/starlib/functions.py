"""System function catalog: built-in descriptors, user-defined entries, ordering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)


class CatalogError(RuntimeError):
    pass


@dataclass
class FunctionDescriptor:
    name: str
    description: str
    category: str
    is_favorited: bool = False
    is_system_defined: bool = True
    category_order: int = 0
    display_order: int = 0
    id: Optional[int] = None
    sql_query: Optional[str] = None

    @property
    def key(self) -> Union[str, int]:
        """Identity: name for built-in functions, numeric id for user-defined ones."""
        if self.is_system_defined or self.id is None:
            return self.name
        return self.id


@dataclass
class FunctionCategory:
    name: str
    functions: List[FunctionDescriptor] = field(default_factory=list)
    order: int = 0


@dataclass(frozen=True)
class FunctionOrder:
    id: int
    display_order: int
    category_order: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "displayOrder": self.display_order,
            "categoryOrder": self.category_order,
        }


# Functions whose rows can be drilled into by id.
NESTABLE_FUNCTIONS = frozenset(
    {
        "transactions",
        "dbs",
        "catalog",
        "routine_loads",
        "stream_loads",
        "loads",
        "load_error_hub",
        "resources",
        "workload_groups",
        "workload_sched_policy",
        "compactions",
        "colocate_group",
        "bdbje",
        "small_files",
        "trash",
        "jobs",
        "repositories",
    }
)


def can_drill_down(function_name: str) -> bool:
    return function_name in NESTABLE_FUNCTIONS


_BUILTIN = [
    ("Cluster Info", [
        ("backends", "Backend node information"),
        ("frontends", "Frontend node information"),
        ("brokers", "Broker node information"),
        ("statistic", "Cluster statistics"),
    ]),
    ("Database Management", [
        ("dbs", "Databases"),
        ("tables", "Tables"),
        ("tablet_schema", "Tablet schema"),
        ("partitions", "Partitions"),
    ]),
    ("Transaction Management", [
        ("transactions", "Transactions"),
    ]),
    ("Task Management", [
        ("routine_loads", "Routine load jobs"),
        ("stream_loads", "Stream load jobs"),
        ("loads", "Load jobs"),
        ("load_error_hub", "Load error hub"),
    ]),
    ("Metadata Management", [
        ("catalog", "Catalogs"),
        ("resources", "Resources"),
        ("workload_groups", "Workload groups"),
        ("workload_sched_policy", "Workload scheduling policies"),
    ]),
    ("Storage Management", [
        ("compactions", "Compaction tasks"),
        ("colocate_group", "Colocate groups"),
        ("bdbje", "BDBJE metadata"),
        ("small_files", "Small files"),
        ("trash", "Trash"),
    ]),
    ("Job Management", [
        ("jobs", "Jobs"),
        ("repositories", "Backup repositories"),
    ]),
]

# Categories that ship with the console; they cannot be deleted.
SYSTEM_CATEGORIES = frozenset(category for category, _ in _BUILTIN)

SYSTEM_FUNCTIONS: List[FunctionDescriptor] = [
    FunctionDescriptor(
        name=name,
        description=description,
        category=category,
        category_order=category_index,
        display_order=display_index,
    )
    for category_index, (category, entries) in enumerate(_BUILTIN)
    for display_index, (name, description) in enumerate(entries)
]


def system_functions() -> List[FunctionDescriptor]:
    """Fresh copies of the built-in descriptors, safe to mutate."""
    return [replace(f) for f in SYSTEM_FUNCTIONS]


def descriptor_from_api(payload: Dict[str, Any]) -> FunctionDescriptor:
    """Build a descriptor from the console's camelCase JSON."""
    return FunctionDescriptor(
        name=payload.get("functionName") or payload.get("name") or "",
        description=payload.get("description") or "",
        category=payload.get("categoryName") or payload.get("category") or "",
        is_favorited=bool(payload.get("isFavorited", False)),
        is_system_defined=bool(payload.get("isSystem", False)),
        category_order=int(payload.get("categoryOrder") or 0),
        display_order=int(payload.get("displayOrder") or 0),
        id=payload.get("id"),
        sql_query=payload.get("sqlQuery"),
    )


PersistCallback = Callable[[List[FunctionOrder]], None]


def _sort_key(func: FunctionDescriptor):
    return (not func.is_favorited, func.category_order, func.display_order)


class FunctionCatalog:
    """Merged, ordered view over system-defined and user-defined functions.

    Both kinds are treated the same way for ordering and grouping. Order
    mutations renumber every entry and write the new ordering of the stored
    functions (those with an id) through ``persist``.
    """

    def __init__(
        self,
        system: Iterable[FunctionDescriptor] = (),
        user_defined: Iterable[FunctionDescriptor] = (),
        persist: Optional[PersistCallback] = None,
    ) -> None:
        self._functions: List[FunctionDescriptor] = list(system) + list(user_defined)
        self._persist = persist
        self._categories: List[FunctionCategory] = []
        self._organize()

    @classmethod
    def from_api(cls, payloads: Iterable[Dict[str, Any]], persist: Optional[PersistCallback] = None) -> "FunctionCatalog":
        """Merge stored descriptors over the built-in system functions.

        Stored system entries replace the built-in entry of the same name, so
        their id, favorite flag and ordering win.
        """
        system = {f.name: f for f in system_functions()}
        user_defined = []
        for payload in payloads:
            descriptor = descriptor_from_api(payload)
            if descriptor.is_system_defined:
                system[descriptor.name] = descriptor
            else:
                user_defined.append(descriptor)
        return cls(system=system.values(), user_defined=user_defined, persist=persist)

    def _organize(self) -> None:
        # sorted() is stable, so ties keep load order
        self._functions = sorted(self._functions, key=_sort_key)
        grouped: Dict[str, FunctionCategory] = {}
        for func in self._functions:
            if func.category not in grouped:
                grouped[func.category] = FunctionCategory(name=func.category, order=func.category_order)
            grouped[func.category].functions.append(func)
        self._categories = list(grouped.values())

    def all_functions(self) -> List[FunctionDescriptor]:
        return list(self._functions)

    def categories(self, limit: Optional[int] = 4) -> List[FunctionCategory]:
        """Grouped view; each category is truncated to ``limit`` entries unless ``None``."""
        return [
            FunctionCategory(
                name=c.name,
                functions=list(c.functions if limit is None else c.functions[:limit]),
                order=c.order,
            )
            for c in self._categories
        ]

    def find(self, key: Union[str, int]) -> Optional[FunctionDescriptor]:
        """Look up by numeric id first, then by name."""
        if isinstance(key, str) and key.isdigit():
            key = int(key)
        for func in self._functions:
            if func.id is not None and func.id == key:
                return func
        for func in self._functions:
            if func.name == key:
                return func
        return None

    def _require(self, key: Union[str, int]) -> FunctionDescriptor:
        func = self.find(key)
        if func is None:
            raise CatalogError(f"Function not found: {key}")
        return func

    def set_favorite(self, key: Union[str, int], favorited: bool) -> FunctionDescriptor:
        func = self._require(key)
        func.is_favorited = favorited
        self._organize()
        return func

    def remove(self, function_id: int) -> FunctionDescriptor:
        func = self._require(function_id)
        if func.is_system_defined:
            raise CatalogError(f"System function '{func.name}' cannot be deleted")
        self._functions.remove(func)
        self._organize()
        return func

    def update_function(
        self,
        function_id: int,
        category: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        sql_query: Optional[str] = None,
    ) -> FunctionDescriptor:
        """Edit a user-defined function; fields left as ``None`` keep their value."""
        func = self._require(function_id)
        if func.is_system_defined:
            raise CatalogError(f"System function '{func.name}' cannot be edited")
        changes = {"category": category, "name": name, "description": description, "sql_query": sql_query}
        for attr, value in changes.items():
            if value is None:
                continue
            if not value.strip():
                raise CatalogError(f"Function {attr.replace('_', ' ')} cannot be empty")
            setattr(func, attr, value)
        self._organize()
        return func

    def remove_category(self, name: str) -> List[FunctionDescriptor]:
        """Drop the user-defined functions of a custom category."""
        if name in SYSTEM_CATEGORIES:
            raise CatalogError(f"System category '{name}' cannot be deleted")
        category = self._category(name)
        removed = [f for f in category.functions if not f.is_system_defined]
        self._functions = [f for f in self._functions if f not in removed]
        self._organize()
        return removed

    def move_category(self, from_index: int, to_index: int) -> List[FunctionOrder]:
        """Move a whole category and renumber every function."""
        self._check_index(from_index, len(self._categories))
        self._check_index(to_index, len(self._categories))
        category = self._categories.pop(from_index)
        self._categories.insert(to_index, category)
        return self._renumber()

    def move_function(
        self,
        category: str,
        from_index: int,
        to_index: int,
        target_category: Optional[str] = None,
    ) -> List[FunctionOrder]:
        """Move one function within its category or into ``target_category``."""
        source = self._category(category)
        target = self._category(target_category) if target_category else source
        self._check_index(from_index, len(source.functions))
        func = source.functions.pop(from_index)
        # Position is clamped to the target's bounds, like a drop at the end.
        to_index = max(0, min(to_index, len(target.functions)))
        target.functions.insert(to_index, func)
        if target is not source:
            func.category = target.name
        return self._renumber()

    def _category(self, name: str) -> FunctionCategory:
        for c in self._categories:
            if c.name == name:
                return c
        raise CatalogError(f"Category not found: {name}")

    @staticmethod
    def _check_index(index: int, size: int) -> None:
        if not 0 <= index < size:
            raise CatalogError(f"Index {index} out of range (0..{size - 1})")

    def _renumber(self) -> List[FunctionOrder]:
        orders: List[FunctionOrder] = []
        for category_index, category in enumerate(self._categories):
            category.order = category_index
            for display_index, func in enumerate(category.functions):
                func.category_order = category_index
                func.display_order = display_index
                # built-ins the console has not stored yet only move locally
                if func.id is not None:
                    orders.append(FunctionOrder(int(func.id), display_index, category_index))
        self._organize()
        if self._persist is not None and orders:
            logger.info("Persisting order for %d functions", len(orders))
            self._persist(orders)
        return orders
