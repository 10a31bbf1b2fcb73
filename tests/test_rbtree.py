import random

import numpy as np
import pytest

from RBTree.RBTreeArray import (
    BLACK,
    COLOR,
    DUPLICATE_KEY,
    KEY_NOT_FOUND,
    NIL,
    RED,
    SIZE,
    RBTree,
    build_rbtree,
    rotate_left,
    rotate_right,
    warmup,
)


def make_tree(keys):
    rbt = RBTree(4)
    for key in keys:
        rbt.insert(key, f"v{key}")
    return rbt


def subtree_height(rbt, index):
    if index == NIL:
        return 0
    _, left, right, _, _, _ = rbt.get_node(index)
    return 1 + max(subtree_height(rbt, left), subtree_height(rbt, right))


class TestInsertSearch:
    def test_empty(self):
        rbt = RBTree()
        assert rbt.empty()
        assert rbt.size() == 0
        assert len(rbt) == 0
        assert rbt.min() is None
        assert rbt.max() is None
        assert rbt.min_key() is None
        assert rbt.max_key() is None
        assert rbt.search(1) is None
        assert rbt.rank(0) == 0
        assert rbt.rank(12345) == 0
        assert rbt.keys_to_array().size == 0
        assert rbt.values_to_array() == []
        rbt.check_invariants()

    def test_insert_and_search(self):
        rbt = RBTree()
        assert rbt.insert(10, "ten") == 0
        rbt.insert(5, "five")
        rbt.insert(20, "twenty")

        assert rbt.search(10) == "ten"
        assert rbt.search(5) == "five"
        assert rbt.search(20) == "twenty"
        assert rbt.search(7) is None
        assert 5 in rbt
        assert 7 not in rbt
        assert rbt.size() == 3
        assert not rbt.empty()
        rbt.check_invariants()

    def test_duplicate_key_is_rejected(self):
        rbt = make_tree([3, 1, 2])
        before = rbt.tree.copy()

        assert rbt.insert(2, "other") == DUPLICATE_KEY
        assert rbt.search(2) == "v2"
        assert rbt.size() == 3
        assert np.array_equal(rbt.tree, before)

    def test_duplicate_key_does_not_grow_full_arena(self):
        rbt = RBTree(3)
        for key in (3, 1, 2):
            rbt.insert(key, f"v{key}")
        before = rbt.tree.copy()

        assert rbt.insert(1, "other") == DUPLICATE_KEY
        assert rbt.capacity == 3
        assert np.array_equal(rbt.tree, before)

        assert rbt.insert(4, "v4") >= 0
        assert rbt.capacity > 3
        rbt.check_invariants()

    def test_invalid_arguments(self):
        rbt = RBTree()
        with pytest.raises(ValueError):
            rbt.insert(-1, "negative")
        with pytest.raises(TypeError):
            rbt.insert(1.5, "float")
        with pytest.raises(TypeError):
            rbt.insert(1, 2)
        with pytest.raises(ValueError):
            RBTree(-1)
        assert rbt.size() == 0

    def test_numpy_integer_keys(self):
        rbt = RBTree()
        rbt.insert(np.int64(7), "seven")
        assert rbt.search(7) == "seven"
        assert rbt.search(np.uint32(7)) == "seven"

    def test_arena_grows(self):
        rbt = RBTree(0)
        for key in range(100):
            rbt.insert(key, str(key))
        assert rbt.capacity >= 100
        assert rbt.size() == 100
        assert rbt.keys_to_array().tolist() == list(range(100))
        rbt.check_invariants()

    def test_first_node_is_black_root(self):
        rbt = RBTree()
        rbt.insert(42, "x")
        key, left, right, parent, size, color = rbt.get_node(rbt.root)
        assert (key, left, right, parent, size, color) == (42, NIL, NIL, NIL, 1, BLACK)


class TestColourSwitches:
    def test_insert_switch_counts(self):
        rbt = RBTree()
        assert rbt.insert(10, "a") == 0
        assert rbt.insert(20, "b") == 0
        # Outer child with black uncle: parent BLACK, grandparent RED, rotate.
        assert rbt.insert(30, "c") == 2
        assert rbt.get_node(rbt.root)[0] == 20
        # Red uncle: parent, uncle, grandparent recoloured, then the root is
        # forced back to BLACK.
        assert rbt.insert(40, "d") == 4
        rbt.check_invariants()

    def test_inner_child_rotation(self):
        rbt = RBTree()
        rbt.insert(10, "a")
        rbt.insert(30, "b")
        assert rbt.insert(20, "c") == 2
        assert rbt.get_node(rbt.root)[0] == 20
        assert rbt.keys_to_array().tolist() == [10, 20, 30]
        rbt.check_invariants()

    def test_delete_red_leaf(self):
        rbt = make_tree([10, 20, 30])
        assert rbt.delete(10) == 0
        rbt.check_invariants()

    def test_delete_black_leaf_with_red_far_nephew(self):
        rbt = make_tree([10, 20, 30, 40])
        # Case 4: only the far nephew 40 changes colour.
        assert rbt.delete(10) == 1
        assert rbt.get_node(rbt.root)[0] == 30
        assert rbt.keys_to_array().tolist() == [20, 30, 40]
        for index in (rbt.root, rbt.get_node(rbt.root)[1], rbt.get_node(rbt.root)[2]):
            assert rbt.get_node(index)[5] == BLACK
        rbt.check_invariants()

    def test_delete_two_children_takes_successor_colour(self):
        rbt = make_tree([5, 3, 8, 1, 4, 7, 9])
        # The red successor 7 moves into the black root slot.
        assert rbt.delete(5) == 1
        assert rbt.get_node(rbt.root)[0] == 7
        rbt.check_invariants()

    def test_delete_black_leaf_with_black_sibling_recolours(self):
        rbt = make_tree([10, 5, 15])
        rbt.insert(1, "x")
        rbt.delete(1)
        # Tree is now 10B(5B, 15B); removing 5 only makes 15 RED.
        assert rbt.delete(5) == 1
        assert rbt.tree[rbt.root, COLOR] == BLACK
        right = rbt.get_node(rbt.root)[2]
        assert rbt.get_node(right)[5] == RED
        rbt.check_invariants()

    def test_delete_black_leaf_with_red_sibling(self):
        rbt = make_tree([10, 5, 20, 15, 30, 40])
        # 10B(5B, 20R(15B, 30B(-, 40R))): the red sibling 20 turns BLACK and
        # 10 RED before the left rotation, then 15 turns RED and the extra
        # black is absorbed by repainting 10 BLACK.
        assert rbt.delete(5) == 4
        assert rbt.get_node(rbt.root)[0] == 20
        left = rbt.get_node(rbt.root)[1]
        assert rbt.get_node(left)[0] == 10
        assert rbt.get_node(left)[5] == BLACK
        assert rbt.get_node(rbt.get_node(left)[2])[5] == RED
        assert rbt.keys_to_array().tolist() == [10, 15, 20, 30, 40]
        rbt.check_invariants()

    def test_delete_black_leaf_with_red_near_nephew(self):
        rbt = make_tree([10, 5, 20, 15])
        # 10B(5B, 20B(15R, -)): near nephew 15 BLACK and sibling 20 RED before
        # the right rotation at 20, then only 20 changes back to BLACK.
        assert rbt.delete(5) == 3
        assert rbt.get_node(rbt.root)[0] == 15
        for index in (rbt.root, rbt.get_node(rbt.root)[1], rbt.get_node(rbt.root)[2]):
            assert rbt.get_node(index)[5] == BLACK
        assert rbt.keys_to_array().tolist() == [10, 15, 20]
        rbt.check_invariants()


class TestDelete:
    def test_delete_scenario(self):
        rbt = make_tree([5, 3, 8, 1, 4, 7, 9])
        rbt.delete(5)
        assert rbt.keys_to_array().tolist() == [1, 3, 4, 7, 8, 9]
        assert rbt.size() == 6
        assert rbt.search(5) is None
        rbt.check_invariants()

    def test_delete_missing_key(self):
        rbt = make_tree([2, 4, 6])
        before = rbt.tree.copy()

        assert rbt.delete(5) == KEY_NOT_FOUND
        assert rbt.delete(-3) == KEY_NOT_FOUND
        assert rbt.delete("6") == KEY_NOT_FOUND
        assert np.array_equal(rbt.tree, before)
        assert RBTree().delete(1) == KEY_NOT_FOUND

    def test_delete_everything(self):
        rbt = make_tree(range(20))
        for key in range(20):
            assert rbt.delete(key) >= 0
            rbt.check_invariants()

        assert rbt.empty()
        assert rbt.size() == 0
        assert rbt.root == NIL
        assert not rbt.tree[NIL].any()

    def test_released_rows_are_reused(self):
        rbt = make_tree(range(8))
        capacity = rbt.capacity
        for key in range(8):
            rbt.delete(key)
        for key in range(8, 16):
            rbt.insert(key, str(key))
        assert rbt.capacity == capacity
        assert rbt.values_to_array() == [str(key) for key in range(8, 16)]
        rbt.check_invariants()

    def test_insert_delete_round_trip(self):
        rbt = make_tree([50, 20, 70, 10, 30])
        keys = rbt.keys_to_array().tolist()

        rbt.insert(25, "new")
        assert rbt.search(25) == "new"
        rbt.delete(25)

        assert rbt.keys_to_array().tolist() == keys
        assert rbt.size() == len(keys)
        rbt.check_invariants()

    def test_values_follow_keys_after_successor_move(self):
        rbt = make_tree([5, 3, 8, 1, 4, 7, 9])
        rbt.delete(3)
        rbt.delete(8)
        assert rbt.items() == [(1, "v1"), (4, "v4"), (5, "v5"), (7, "v7"), (9, "v9")]


class TestOrderStatistics:
    def test_rank_scenario(self):
        rbt = make_tree([10, 20, 30])
        assert rbt.keys_to_array().tolist() == [10, 20, 30]
        assert rbt.rank(25) == 2
        assert rbt.rank(5) == 0
        assert rbt.rank(100) == 3
        assert rbt.rank(10) == 0
        assert rbt.rank(30) == 2
        assert rbt.rank(-7) == 0
        assert rbt.rank(2 ** 70) == 3
        assert rbt.rank(np.int64(20)) == 1

    def test_rank_select_reject_non_integers(self):
        rbt = make_tree([1, 2, 3])
        with pytest.raises(TypeError):
            rbt.rank(2.5)
        with pytest.raises(TypeError):
            rbt.rank("3")
        with pytest.raises(TypeError):
            rbt.rank(True)
        with pytest.raises(TypeError):
            rbt.select(1.5)
        with pytest.raises(TypeError):
            rbt.select("0")
        assert rbt.select(np.int64(1)) == 2
        assert rbt.keys_to_array().tolist() == [1, 2, 3]

    def test_min_max(self):
        rbt = make_tree([15, 2, 40, 7, 30])
        assert rbt.min() == "v2"
        assert rbt.max() == "v40"
        assert rbt.min_key() == 2
        assert rbt.max_key() == 40

    def test_successor_predecessor(self):
        rbt = make_tree([10, 20, 30, 40, 50])
        assert rbt.successor(20) == 30
        assert rbt.predecessor(20) == 10
        assert rbt.successor(50) is None
        assert rbt.predecessor(10) is None
        assert rbt.successor(25) is None

    def test_select(self):
        rbt = make_tree([8, 3, 11, 1, 6])
        assert [rbt.select(i) for i in range(5)] == [1, 3, 6, 8, 11]
        assert rbt.select(5) is None
        assert rbt.select(-1) is None

    def test_exports(self):
        rbt = build_rbtree([(7, "seven"), (3, "three"), (9, "nine"), (1, "one")])
        assert rbt.keys_to_array().tolist() == [1, 3, 7, 9]
        assert rbt.values_to_array() == ["one", "three", "seven", "nine"]
        assert list(rbt) == [1, 3, 7, 9]
        assert str(rbt).startswith("RBTree(size=4")


class TestRandomised:
    def test_random_operations_against_dict(self):
        random.seed(12345)
        rbt = RBTree(8)
        reference = {}

        for _ in range(3000):
            key = random.randrange(400)
            if random.random() < 0.55:
                result = rbt.insert(key, str(key))
                if key in reference:
                    assert result == DUPLICATE_KEY
                else:
                    assert result >= 0
                    reference[key] = str(key)
            else:
                result = rbt.delete(key)
                if key in reference:
                    assert result >= 0
                    del reference[key]
                else:
                    assert result == KEY_NOT_FOUND

            rbt.check_invariants()
            assert rbt.size() == len(reference)

        ordered = sorted(reference)
        assert rbt.keys_to_array().tolist() == ordered
        assert rbt.values_to_array() == [reference[key] for key in ordered]

        for bound in range(-2, 405):
            assert rbt.rank(bound) == sum(1 for key in ordered if key < bound)

        for i, key in enumerate(ordered):
            assert rbt.select(i) == key

    def test_sorted_inserts_stay_balanced(self):
        rbt = make_tree(range(1024))
        rbt.check_invariants()
        # height <= 2 * log2(n + 1) for a red-black tree
        assert subtree_height(rbt, rbt.root) <= 20
        assert rbt.black_height <= 10


def test_invariant_checker_detects_corruption():
    rbt = make_tree([10, 5, 15, 2, 7, 12, 20])
    rbt.check_invariants()

    rbt.tree[rbt.root, COLOR] = RED
    with pytest.raises(AssertionError):
        rbt.check_invariants()
    rbt.tree[rbt.root, COLOR] = BLACK

    left = rbt.get_node(rbt.root)[1]
    rbt.tree[left, SIZE] += 1
    with pytest.raises(AssertionError):
        rbt.check_invariants()


def test_warmup():
    assert warmup()


class TestRotations:
    def test_rotations_keep_order_and_sizes(self):
        rbt = make_tree([10, 5, 15, 12, 20])
        old_root = rbt.root

        rbt.root = int(rotate_left(rbt.tree, rbt.root, rbt.root))
        assert rbt.get_node(rbt.root)[0] == 15
        assert rbt.get_node(rbt.root)[4] == 5
        assert rbt.get_node(old_root)[4] == 3
        assert rbt.get_node(old_root)[3] == rbt.root
        assert rbt.keys_to_array().tolist() == [5, 10, 12, 15, 20]

        rbt.root = int(rotate_right(rbt.tree, rbt.root, rbt.root))
        assert rbt.root == old_root
        assert rbt.get_node(rbt.root)[4] == 5
        assert rbt.get_node(rbt.root)[3] == NIL
        assert rbt.keys_to_array().tolist() == [5, 10, 12, 15, 20]
        assert not rbt.tree[NIL].any()
