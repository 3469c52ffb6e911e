"""Category hierarchy helpers.

Categories form a tree of at most three levels (1 = top, 2 = sub, 3 = leaf).
`CategoryTree` holds a flat snapshot of the rows and answers descendant
queries without touching storage again.
"""
import re
from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from shoppers.core.filters import AnyOf, Equals, InSet, Predicate
from shoppers.domain.result import Result

MAX_DEPTH = 3

# product column that references a category of the given level
LEVEL_FIELDS = {
    1: "category_id",
    2: "sub_category_id",
    3: "sub_sub_category_id",
}


class CategoryTree:
    def __init__(self, rows: Iterable):
        self._ids: List[int] = []
        self._levels: List[int] = []
        self._parents: List[Optional[int]] = []
        self._index: Dict[int, int] = {}

        for row in rows:
            self._index[row.id] = len(self._ids)
            self._ids.append(row.id)
            self._levels.append(row.level)
            self._parents.append(row.parent_id)

        self._children: List[List[int]] = [[] for _ in self._ids]
        for i, parent_id in enumerate(self._parents):
            parent = self._index.get(parent_id) if parent_id is not None else None
            if parent is not None:
                self._children[parent].append(i)

    def __contains__(self, category_id) -> bool:
        return category_id in self._index

    def __len__(self) -> int:
        return len(self._ids)

    def level_of(self, category_id: int) -> Optional[int]:
        i = self._index.get(category_id)
        return None if i is None else self._levels[i]

    def children(self, category_id: int) -> List[int]:
        i = self._index.get(category_id)
        if i is None:
            return []
        return [self._ids[c] for c in self._children[i]]

    def descendants(self, category_id: int) -> Set[int]:
        """Ids strictly below `category_id`. Parent-pointer cycles are tolerated."""
        start = self._index.get(category_id)
        if start is None:
            return set()

        visited = {start}
        queue = deque(self._children[start])
        found: Set[int] = set()
        while queue:
            node = queue.popleft()
            if node in visited:
                continue
            visited.add(node)
            found.add(self._ids[node])
            queue.extend(self._children[node])
        return found

    def ancestors(self, category_id: int) -> List[int]:
        """Nearest first."""
        i = self._index.get(category_id)
        path: List[int] = []
        seen = {i}
        while i is not None:
            parent_id = self._parents[i]
            i = self._index.get(parent_id) if parent_id is not None else None
            if i is None or i in seen:
                break
            seen.add(i)
            path.append(self._ids[i])
        return path

    def scope(self, category_id: int) -> Predicate:
        """Product predicate matching the category and everything beneath it."""
        if category_id not in self._index:
            return Equals("category_id", category_id)

        by_level: Dict[int, List[int]] = {}
        for cid in sorted({category_id} | self.descendants(category_id)):
            level = self.level_of(cid)
            if level in LEVEL_FIELDS:
                by_level.setdefault(level, []).append(cid)

        predicates = []
        for level in sorted(by_level):
            ids = by_level[level]
            name = LEVEL_FIELDS[level]
            predicates.append(Equals(name, ids[0]) if len(ids) == 1 else InSet(name, ids))
        if len(predicates) == 1:
            return predicates[0]
        return AnyOf(*predicates)

    def as_nested(self, rows_by_id: Dict[int, dict]) -> List[dict]:
        """Roots with their `children` lists filled in, preserving row order."""
        def build(i, seen):
            node = dict(rows_by_id[self._ids[i]])
            node["children"] = [build(c, seen | {c}) for c in self._children[i] if c not in seen]
            return node

        roots = [i for i, p in enumerate(self._parents) if p is None or p not in self._index]
        return [build(i, {i}) for i in roots]


def validate_parent(level: int, parent_level: Optional[int]) -> Result:
    if parent_level is None:
        if level != 1:
            return Result.failure("Only top-level categories (level 1) can have no parent")
        return Result.success()
    if parent_level + 1 > MAX_DEPTH:
        return Result.failure(f"Maximum category depth ({MAX_DEPTH} levels) exceeded")
    if level != parent_level + 1:
        return Result.failure("Category level must be one below its parent")
    return Result.success()


def slugify(name: str, parent_slug: Optional[str] = None) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    return f"{parent_slug}-{base}" if parent_slug else base
