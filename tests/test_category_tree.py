from types import SimpleNamespace

from shoppers.core.filters import AnyOf, Equals, InSet, matches
from shoppers.domain.categories import CategoryTree, slugify, validate_parent


def row(id, level, parent_id=None):
    return SimpleNamespace(id=id, level=level, parent_id=parent_id)


# 1 Men -> 2 Topwear -> (4 T-Shirts, 5 Shirts); 1 Men -> 3 Bottomwear -> 6 Jeans; 7 Women
ROWS = [
    row(1, 1), row(2, 2, 1), row(3, 2, 1), row(4, 3, 2),
    row(5, 3, 2), row(6, 3, 3), row(7, 1),
]


def test_descendants_of_top_level():
    tree = CategoryTree(ROWS)
    assert tree.descendants(1) == {2, 3, 4, 5, 6}


def test_descendants_of_sub_and_leaf():
    tree = CategoryTree(ROWS)
    assert tree.descendants(2) == {4, 5}
    assert tree.descendants(6) == set()
    assert tree.descendants(99) == set()


def test_cycle_terminates():
    tree = CategoryTree([row(1, 1, 3), row(2, 2, 1), row(3, 3, 2)])
    assert tree.descendants(1) == {2, 3}
    assert tree.ancestors(1) == [3, 2]


def test_ancestors_nearest_first():
    tree = CategoryTree(ROWS)
    assert tree.ancestors(4) == [2, 1]
    assert tree.ancestors(1) == []


def test_scope_partitions_by_level():
    scope = CategoryTree(ROWS).scope(1)
    assert scope == AnyOf(
        Equals("category_id", 1),
        InSet("sub_category_id", [2, 3]),
        InSet("sub_sub_category_id", [4, 5, 6]),
    )


def test_scope_of_leaf_is_exact_match():
    assert CategoryTree(ROWS).scope(6) == Equals("sub_sub_category_id", 6)


def test_scope_matches_products_anywhere_below():
    scope = CategoryTree(ROWS).scope(1)
    assert matches(scope, {"category_id": 1, "sub_category_id": None, "sub_sub_category_id": None})
    assert matches(scope, {"category_id": None, "sub_category_id": None, "sub_sub_category_id": 5})
    assert not matches(scope, {"category_id": 7, "sub_category_id": None, "sub_sub_category_id": None})


def test_nested_tree():
    tree = CategoryTree(ROWS)
    nested = tree.as_nested({r.id: {"id": r.id} for r in ROWS})
    assert [n["id"] for n in nested] == [1, 7]
    men = nested[0]
    assert [c["id"] for c in men["children"]] == [2, 3]
    assert [c["id"] for c in men["children"][0]["children"]] == [4, 5]


def test_validate_parent():
    assert validate_parent(1, None)
    assert validate_parent(2, 1)
    assert validate_parent(3, 2)
    assert not validate_parent(2, None)
    assert not validate_parent(3, 1)
    assert validate_parent(4, 3).error == "Maximum category depth (3 levels) exceeded"


def test_slugify():
    assert slugify("T-Shirts & Tops") == "t-shirts-tops"
    assert slugify("Jeans", "men-bottomwear") == "men-bottomwear-jeans"
