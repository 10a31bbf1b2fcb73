import logging

import numpy as np
from numba import njit
from typing import Iterable, List, Optional, Tuple



logger = logging.getLogger(__name__)



# Arena layout:
#     tree[N, FIELDS] (int64), one row per node, row index == node handle.
#     ROW: [key | left | right | parent | size | color]
#     Row 0 is the NIL sentinel: all zeros, i.e. BLACK with size 0.
#     It is never written; every "no child" / "no parent" link is 0.



# ROW: [key | left | right | parent | size | color]
KEY    = 0
LEFT   = 1
RIGHT  = 2
PARENT = 3
SIZE   = 4
COLOR  = 5
FIELDS = 6

NIL   = 0
BLACK = 0
RED   = 1

DUPLICATE_KEY = -1 # insert() on a present key
KEY_NOT_FOUND = -1 # delete() on an absent key

MAX_KEY          = int(np.iinfo(np.int64).max)
DEFAULT_CAPACITY = 64



# ---------- JIT-Compiled Node Helpers ----------
@njit(inline="always")
def _is_red(
    tree:  np.ndarray,
    index: np.int64

) -> bool:

    """
    Colour test that is safe on NIL (row 0 is always BLACK).
    """

    return tree[index, COLOR] == RED

@njit(inline="always")
def _paint(
    tree:  np.ndarray,
    index: np.int64,
    color: np.int64

) -> np.int64:

    """
    Set the colour of a node and report whether it actually changed.

    A node repainted with the colour it already has is not a switch, and
    NIL is never written (it stays BLACK by construction).

    :param tree: Arena array
    :type tree: np.ndarray
    :param index: Handle of the node to paint
    :type index: np.int64
    :param color: RED or BLACK
    :type color: np.int64
    :return: 1 if the colour changed, 0 otherwise
    :rtype: np.int64
    """

    if index == NIL or tree[index, COLOR] == color:
        return np.int64(0)

    tree[index, COLOR] = color
    return np.int64(1)

@njit(inline="always")
def _update_size(
    tree:  np.ndarray,
    index: np.int64

) -> None:

    """
    size(index) = size(index->left) + size(index->right) + 1
    """

    tree[index, SIZE] = tree[tree[index, LEFT], SIZE] + tree[tree[index, RIGHT], SIZE] + 1

@njit(inline="always")
def _clear_node(
    tree:  np.ndarray,
    index: np.int64

) -> None:

    """
    Zero a released row so that a stale node can never be mistaken for a live one.
    """

    for field in range(FIELDS):
        tree[index, field] = 0

@njit(inline="always")
def tree_min(
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Leftmost node of the subtree rooted at `index` (NIL for an empty subtree).
    """

    if index == NIL:
        return np.int64(NIL)

    while tree[index, LEFT] != NIL:
        index = tree[index, LEFT]

    return np.int64(index)

@njit(inline="always")
def tree_max(
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Rightmost node of the subtree rooted at `index` (NIL for an empty subtree).
    """

    if index == NIL:
        return np.int64(NIL)

    while tree[index, RIGHT] != NIL:
        index = tree[index, RIGHT]

    return np.int64(index)

@njit(inline="always")
def successor(
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Locate the in-order successor of a live node.

    If the node has a right subtree the successor is that subtree's minimum.
    Otherwise walk up while the current node is a right child; the first
    ancestor reached from its left side is the successor.

    Args:
        tree (np.ndarray): Arena array [N, FIELDS].
        index (np.int64): Handle of a live node.

    Returns:
        np.int64: Handle of the successor, or NIL if `index` holds the maximum key.
    """

    if tree[index, RIGHT] != NIL:
        return tree_min(tree, tree[index, RIGHT])

    parent = tree[index, PARENT]
    while parent != NIL and index == tree[parent, RIGHT]:
        index  = parent
        parent = tree[parent, PARENT]

    return np.int64(parent)

@njit(inline="always")
def predecessor(
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Mirror of `successor`: NIL if `index` holds the minimum key.
    """

    if tree[index, LEFT] != NIL:
        return tree_max(tree, tree[index, LEFT])

    parent = tree[index, PARENT]
    while parent != NIL and index == tree[parent, LEFT]:
        index  = parent
        parent = tree[parent, PARENT]

    return np.int64(parent)



# ---------- JIT-Compiled Rotations ----------
@njit
def rotate_left(
    tree: np.ndarray,
    root: np.int64,
    x:    np.int64

) -> np.int64:

    """
    Perform a left rotation around `x` on the array-based tree.

    The right child `y` of `x` takes the place of `x`, `x` becomes the left
    child of `y`, and the former left subtree of `y` is reattached as the
    right subtree of `x`. Only the sizes of `x` and then `y` are recomputed,
    since they are the only two subtrees whose membership changed.

    :param tree: Arena array
    :type tree: np.ndarray
    :param root: Handle of the current root
    :type root: np.int64
    :param x: Handle of the rotation pivot (must have a right child)
    :type x: np.int64
    :return: Handle of the root after rotation
    :rtype: np.int64
    """

    y     = tree[x, RIGHT]
    inner = tree[y, LEFT]

    # Move y's left subtree under x
    tree[x, RIGHT] = inner
    if inner != NIL:
        tree[inner, PARENT] = x

    # Hang y where x was
    parent          = tree[x, PARENT]
    tree[y, PARENT] = parent
    if parent == NIL:
        root = y
    elif tree[parent, LEFT] == x:
        tree[parent, LEFT] = y
    else:
        tree[parent, RIGHT] = y

    tree[y, LEFT]   = x
    tree[x, PARENT] = y

    # Update sizes, new child first
    _update_size(tree, x)
    _update_size(tree, y)

    return np.int64(root)

@njit
def rotate_right(
    tree: np.ndarray,
    root: np.int64,
    x:    np.int64

) -> np.int64:

    """
    Perform a right rotation around `x`: mirror image of `rotate_left`.

    :param tree: Arena array
    :type tree: np.ndarray
    :param root: Handle of the current root
    :type root: np.int64
    :param x: Handle of the rotation pivot (must have a left child)
    :type x: np.int64
    :return: Handle of the root after rotation
    :rtype: np.int64
    """

    y     = tree[x, LEFT]
    inner = tree[y, RIGHT]

    tree[x, LEFT] = inner
    if inner != NIL:
        tree[inner, PARENT] = x

    parent          = tree[x, PARENT]
    tree[y, PARENT] = parent
    if parent == NIL:
        root = y
    elif tree[parent, RIGHT] == x:
        tree[parent, RIGHT] = y
    else:
        tree[parent, LEFT] = y

    tree[y, RIGHT]  = x
    tree[x, PARENT] = y

    _update_size(tree, x)
    _update_size(tree, y)

    return np.int64(root)



# ---------- JIT-Compiled Red-Black Core Operations ----------
@njit
def search_node(
    tree: np.ndarray,
    root: np.int64,
    key:  np.int64

) -> np.int64:

    """
    Iterative BST search.

    Returns:
        np.int64: Handle of the node holding `key`, or NIL if not found.
    """

    current = root
    while current != NIL:
        current_key = tree[current, KEY]

        if key == current_key:
            return np.int64(current)

        elif key < current_key:
            current = tree[current, LEFT]

        else:
            current = tree[current, RIGHT]

    return np.int64(NIL)

@njit
def transplant(
    tree:     np.ndarray,
    root:     np.int64,
    old_node: np.int64,
    new_node: np.int64

) -> np.int64:

    """
    Put `new_node` (possibly NIL) in the position of `old_node` under its parent.

    Children are left untouched; callers attach subtrees themselves. The
    parent link of `new_node` is only written when it is a live node.

    Returns:
        np.int64: Handle of the root afterwards.
    """

    parent = tree[old_node, PARENT]

    if parent == NIL:
        root = new_node
    elif tree[parent, LEFT] == old_node:
        tree[parent, LEFT] = new_node
    else:
        tree[parent, RIGHT] = new_node

    if new_node != NIL:
        tree[new_node, PARENT] = parent

    return np.int64(root)

@njit
def insert_fixup(
    tree: np.ndarray,
    root: np.int64,
    z:    np.int64

) -> Tuple[np.int64, np.int64]:

    """
    Restore "no red node has a red child" after linking the red node `z`.

    While the parent of `z` is red:
    - red uncle: parent and uncle turn BLACK, grandparent RED, continue from
      the grandparent;
    - black uncle, inner child: rotate at the parent so `z` becomes an outer child;
    - black uncle, outer child: parent BLACK, grandparent RED, rotate at the
      grandparent (terminal).
    The root is forced BLACK at the end.

    Returns:
        Tuple[np.int64, np.int64]:
            - new root handle.
            - number of effective colour switches.
    """

    switches = np.int64(0)

    while _is_red(tree, tree[z, PARENT]):
        parent      = tree[z, PARENT]
        grandparent = tree[parent, PARENT]

        if parent == tree[grandparent, LEFT]:
            uncle = tree[grandparent, RIGHT]

            if _is_red(tree, uncle):
                switches += _paint(tree, parent, BLACK)
                switches += _paint(tree, uncle, BLACK)
                switches += _paint(tree, grandparent, RED)
                z = grandparent

            else:
                if z == tree[parent, RIGHT]: # inner
                    z      = parent
                    root   = rotate_left(tree, root, z)
                    parent = tree[z, PARENT]

                switches += _paint(tree, parent, BLACK)
                switches += _paint(tree, grandparent, RED)
                root = rotate_right(tree, root, grandparent)

        else:
            uncle = tree[grandparent, LEFT]

            if _is_red(tree, uncle):
                switches += _paint(tree, parent, BLACK)
                switches += _paint(tree, uncle, BLACK)
                switches += _paint(tree, grandparent, RED)
                z = grandparent

            else:
                if z == tree[parent, LEFT]: # inner
                    z      = parent
                    root   = rotate_right(tree, root, z)
                    parent = tree[z, PARENT]

                switches += _paint(tree, parent, BLACK)
                switches += _paint(tree, grandparent, RED)
                root = rotate_left(tree, root, grandparent)

    switches += _paint(tree, root, BLACK)

    return np.int64(root), np.int64(switches)

@njit(boundscheck=False)
def insert(
    tree:          np.ndarray,
    root:          np.int64,
    free:          np.int64, # start from 1
    free_list:     np.ndarray,
    free_list_top: np.int64,
    key:           np.int64

) -> Tuple[np.int64, np.int64, np.int64, np.int64, np.int64]:

    """
    Insert a new key into the array-based red-black tree.

    The caller guarantees a free row exists (either on the free list or at
    `free`). Sizes of all strict ancestors are incremented on the way back
    up before the colour fix-up runs.

    Parameters
    ----------
    tree : np.ndarray
        Arena array [N, FIELDS].
    root : np.int64
        Handle of the current root (NIL if the tree is empty).
    free : np.int64
        Next never-used row if the free list is empty.
    free_list : np.ndarray
        Stack of released handles for reuse.
    free_list_top : np.int64
        Number of handles on the free list.
    key : np.int64
        Key to insert.

    Returns
    -------
    Tuple[np.int64, np.int64, np.int64, np.int64, np.int64]
        Updated (root, free, free_list_top), the handle of the new node
        (NIL on duplicate) and the number of colour switches
        (DUPLICATE_KEY on duplicate).
    """

    # Find the attachment point
    parent  = np.int64(NIL)
    current = root
    while current != NIL:
        parent      = current
        current_key = tree[current, KEY]

        if key == current_key:
            return (np.int64(root), np.int64(free), np.int64(free_list_top),
                    np.int64(NIL), np.int64(DUPLICATE_KEY))

        elif key < current_key:
            current = tree[current, LEFT]

        else:
            current = tree[current, RIGHT]

    # Allocate
    if free_list_top > 0:
        free_list_top -= 1
        index = np.int64(free_list[free_list_top])
    else:
        index = np.int64(free)
        free += 1

    tree[index, KEY]    = key
    tree[index, LEFT]   = NIL
    tree[index, RIGHT]  = NIL
    tree[index, PARENT] = parent
    tree[index, SIZE]   = 1

    # First node
    if parent == NIL:
        tree[index, COLOR] = BLACK
        return (np.int64(index), np.int64(free), np.int64(free_list_top),
                np.int64(index), np.int64(0))

    tree[index, COLOR] = RED
    if key < tree[parent, KEY]:
        tree[parent, LEFT] = index
    else:
        tree[parent, RIGHT] = index

    ancestor = parent
    while ancestor != NIL:
        tree[ancestor, SIZE] += 1
        ancestor = tree[ancestor, PARENT]

    root, switches = insert_fixup(tree, root, index)

    return (np.int64(root), np.int64(free), np.int64(free_list_top),
            np.int64(index), np.int64(switches))

@njit
def delete_fixup(
    tree:     np.ndarray,
    root:     np.int64,
    x:        np.int64,
    x_parent: np.int64

) -> Tuple[np.int64, np.int64]:

    """
    Push the extra black carried by `x` up the tree until it can be absorbed.

    `x` may be NIL, so its parent is carried explicitly in `x_parent` instead
    of being read from (or written to) the sentinel row. When `x` is NIL its
    sibling is always a live node, which is what makes the side test
    `x == left(x_parent)` unambiguous.

    Cases for `x` a left child (right-child cases are mirrors):
        1. sibling RED: sibling BLACK, parent RED, rotate left at parent.
        2. sibling's children both BLACK: sibling RED, move up.
        3. far child BLACK, near child RED: near BLACK, sibling RED, rotate
           right at the sibling.
        4. far child RED: sibling takes the parent's colour, parent and far
           child BLACK, rotate left at parent, stop.

    Args:
        tree (np.ndarray): Arena array [N, FIELDS].
        root (np.int64): Handle of the current root.
        x (np.int64): Node that took the place of the removed one (maybe NIL).
        x_parent (np.int64): Parent of that position.

    Returns:
        Tuple[np.int64, np.int64]:
            - new root handle.
            - number of effective colour switches.
    """

    switches = np.int64(0)

    while x != root and not _is_red(tree, x):
        if x == tree[x_parent, LEFT]:
            sibling = tree[x_parent, RIGHT]

            if _is_red(tree, sibling): # case 1
                switches += _paint(tree, sibling, BLACK)
                switches += _paint(tree, x_parent, RED)
                root     = rotate_left(tree, root, x_parent)
                sibling  = tree[x_parent, RIGHT]

            if not _is_red(tree, tree[sibling, LEFT]) and not _is_red(tree, tree[sibling, RIGHT]): # case 2
                switches += _paint(tree, sibling, RED)
                x        = x_parent
                x_parent = tree[x, PARENT]

            else:
                if not _is_red(tree, tree[sibling, RIGHT]): # case 3
                    switches += _paint(tree, tree[sibling, LEFT], BLACK)
                    switches += _paint(tree, sibling, RED)
                    root     = rotate_right(tree, root, sibling)
                    sibling  = tree[x_parent, RIGHT]

                # case 4
                switches += _paint(tree, sibling, tree[x_parent, COLOR])
                switches += _paint(tree, x_parent, BLACK)
                switches += _paint(tree, tree[sibling, RIGHT], BLACK)
                root     = rotate_left(tree, root, x_parent)
                x        = root
                x_parent = np.int64(NIL)

        else:
            sibling = tree[x_parent, LEFT]

            if _is_red(tree, sibling):
                switches += _paint(tree, sibling, BLACK)
                switches += _paint(tree, x_parent, RED)
                root     = rotate_right(tree, root, x_parent)
                sibling  = tree[x_parent, LEFT]

            if not _is_red(tree, tree[sibling, LEFT]) and not _is_red(tree, tree[sibling, RIGHT]):
                switches += _paint(tree, sibling, RED)
                x        = x_parent
                x_parent = tree[x, PARENT]

            else:
                if not _is_red(tree, tree[sibling, LEFT]):
                    switches += _paint(tree, tree[sibling, RIGHT], BLACK)
                    switches += _paint(tree, sibling, RED)
                    root     = rotate_left(tree, root, sibling)
                    sibling  = tree[x_parent, LEFT]

                switches += _paint(tree, sibling, tree[x_parent, COLOR])
                switches += _paint(tree, x_parent, BLACK)
                switches += _paint(tree, tree[sibling, LEFT], BLACK)
                root     = rotate_right(tree, root, x_parent)
                x        = root
                x_parent = np.int64(NIL)

    switches += _paint(tree, x, BLACK)

    return np.int64(root), np.int64(switches)

@njit(boundscheck=False)
def delete(
    tree:          np.ndarray,
    root:          np.int64,
    free_list:     np.ndarray,
    free_list_top: np.int64,
    key:           np.int64

) -> Tuple[np.int64, np.int64, np.int64, np.int64]:

    """
    Red-black deletion with subtree-size bookkeeping and handle recycling.

    1. Size walk: every strict ancestor of the target loses one node, done
       before any relinking.
    2. Splice: a target with at most one child is replaced by that child
       (or NIL). Otherwise its in-order successor is unlinked from its own
       position (sizes strictly between the two are decremented) and moved
       into the target's slot, taking its children, its colour and
       size(target) - 1.
    3. Fix-up: if the colour that left the tree was BLACK, `delete_fixup`
       repairs the black height.
    4. Recycling: the target row is cleared and pushed on the free list.

    Args:
        tree (np.ndarray): Arena array [N, FIELDS].
        root (np.int64): Handle of the current root.
        free_list (np.ndarray): Stack of released handles.
        free_list_top (np.int64): Number of handles on the free list.
        key (np.int64): Key to remove.

    Returns:
        Tuple[np.int64, np.int64, np.int64, np.int64]:
            - new root handle.
            - updated free_list_top.
            - released handle (NIL if the key was absent).
            - colour switches (KEY_NOT_FOUND if the key was absent).
    """

    target = search_node(tree, root, key)
    if target == NIL:
        return np.int64(root), np.int64(free_list_top), np.int64(NIL), np.int64(KEY_NOT_FOUND)

    ancestor = tree[target, PARENT]
    while ancestor != NIL:
        tree[ancestor, SIZE] -= 1
        ancestor = tree[ancestor, PARENT]

    switches      = np.int64(0)
    removed_color = tree[target, COLOR]

    if tree[target, LEFT] == NIL:
        x        = tree[target, RIGHT]
        x_parent = tree[target, PARENT]
        root     = transplant(tree, root, target, x)

    elif tree[target, RIGHT] == NIL:
        x        = tree[target, LEFT]
        x_parent = tree[target, PARENT]
        root     = transplant(tree, root, target, x)

    else:
        moved         = tree_min(tree, tree[target, RIGHT])
        removed_color = tree[moved, COLOR]
        x             = tree[moved, RIGHT]

        ancestor = tree[moved, PARENT]
        while ancestor != target:
            tree[ancestor, SIZE] -= 1
            ancestor = tree[ancestor, PARENT]

        if tree[moved, PARENT] == target:
            x_parent = moved
        else:
            x_parent = tree[moved, PARENT]
            root     = transplant(tree, root, moved, x)

            tree[moved, RIGHT]               = tree[target, RIGHT]
            tree[tree[moved, RIGHT], PARENT] = moved

        root = transplant(tree, root, target, moved)

        tree[moved, LEFT]               = tree[target, LEFT]
        tree[tree[moved, LEFT], PARENT] = moved
        tree[moved, SIZE]               = tree[target, SIZE] - 1

        switches += _paint(tree, moved, tree[target, COLOR])

    if removed_color == BLACK:
        root, fixed = delete_fixup(tree, root, x, x_parent)
        switches += fixed

    _clear_node(tree, target)
    free_list[free_list_top] = target
    free_list_top += 1

    return np.int64(root), np.int64(free_list_top), np.int64(target), np.int64(switches)



# ---------- JIT-Compiled Order Statistics ----------
@njit
def rank(
    tree: np.ndarray,
    root: np.int64,
    key:  np.int64

) -> np.int64:

    """
    Count the keys strictly smaller than `key`, whether or not it is stored.

    The anchor is the node holding `key`, or else the smallest node whose key
    is greater: the node where the search fell off, advanced to its successor
    when `key` is larger than that node's key. The rank of the anchor is its
    left size plus, for every ancestor reached from the right, that
    ancestor's left size + 1.

    Args:
        tree (np.ndarray): Arena array [N, FIELDS].
        root (np.int64): Handle of the current root.
        key (np.int64): Any int64 key.

    Returns:
        np.int64: Number of stored keys < key.
    """

    if root == NIL:
        return np.int64(0)

    if key > tree[tree_max(tree, root), KEY]:
        return np.int64(tree[root, SIZE])

    anchor  = root
    current = root
    while current != NIL:
        anchor      = current
        current_key = tree[current, KEY]

        if key == current_key:
            break
        elif key < current_key:
            current = tree[current, LEFT]
        else:
            current = tree[current, RIGHT]

    if key > tree[anchor, KEY]:
        anchor = successor(tree, anchor)

    result = tree[tree[anchor, LEFT], SIZE]
    node   = anchor
    while node != root:
        parent = tree[node, PARENT]
        if node == tree[parent, RIGHT]:
            result += tree[tree[parent, LEFT], SIZE] + 1
        node = parent

    return np.int64(result)

@njit
def select(
    tree:  np.ndarray,
    root:  np.int64,
    order: np.int64

) -> np.int64:

    """
    Handle of the node with exactly `order` smaller keys (0-based), or NIL.
    """

    current = root
    while current != NIL:
        left_size = tree[tree[current, LEFT], SIZE]

        if order < left_size:
            current = tree[current, LEFT]
        elif order == left_size:
            return np.int64(current)
        else:
            order  -= left_size + 1
            current = tree[current, RIGHT]

    return np.int64(NIL)

@njit
def inorder_handles(
    tree:  np.ndarray,
    root:  np.int64,
    count: np.int64

) -> np.ndarray:

    """
    Handles of all live nodes in ascending key order.

    Driven by repeated `successor` calls from the minimum, which is O(n)
    over the whole walk since every edge is crossed at most twice.
    """

    handles = np.zeros(count, dtype=np.int64)
    current = tree_min(tree, root)

    for i in range(count):
        if current == NIL:
            break

        handles[i] = current
        current    = successor(tree, current)

    return handles



# --------- RBTree API ---------
class RBTree:
    """
    Order-statistics red-black tree over an int64 node arena.

    Structure lives in a NumPy array [capacity + 1, FIELDS] manipulated by
    JIT-compiled kernels; string values live in a parallel Python list
    indexed by node handle. Released rows are recycled through a free list
    and the arena doubles when it runs out of rows.

    Attributes:
        capacity (int): Number of nodes the arena can hold before it grows.
        tree (np.ndarray): Underlying arena [capacity + 1, FIELDS].
        root (int): Handle of the current root (NIL if empty).
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY

    ) -> None:

        if capacity < 0:
            raise ValueError(
                f"The capacity value must be non-negative, not {capacity}"
            )

        rows = capacity + 1

        self.tree           = np.zeros((rows, FIELDS), dtype=np.int64)
        self.root           = NIL
        self._values: List[Optional[str]] = [None] * rows
        self._free          = 1
        self._free_list     = np.zeros(rows, dtype=np.int64)
        self._free_list_top = 0

    @property
    def capacity(self) -> int:
        return int(self.tree.shape[0]) - 1

    @property
    def black_height(self) -> int:
        """Number of BLACK nodes on the leftmost root-to-leaf path."""

        height  = 0
        current = self.root
        while current != NIL:
            if self.tree[current, COLOR] == BLACK:
                height += 1
            current = int(self.tree[current, LEFT])

        return height

    # ---------- Arena management ----------
    @property
    def _full(self) -> bool:
        """No released row to reuse and no never-used row left."""

        return self._free_list_top == 0 and self._free >= self.tree.shape[0]

    def _reserve(self) -> None:
        """Make sure the next insert has a free row."""

        if not self._full:
            return

        rows     = self.tree.shape[0]
        new_rows = max(2 * rows, 2)

        tree             = np.zeros((new_rows, FIELDS), dtype=np.int64)
        tree[:rows]      = self.tree
        free_list        = np.zeros(new_rows, dtype=np.int64)
        free_list[:rows] = self._free_list

        self.tree       = tree
        self._free_list = free_list
        self._values.extend([None] * (new_rows - rows))

        logger.info("Arena grown from %d to %d nodes", rows - 1, new_rows - 1)

    @staticmethod
    def _is_integer(value) -> bool:
        return isinstance(value, (int, np.integer)) and not isinstance(value, bool)

    @staticmethod
    def _check_integer(value, name: str) -> int:
        if not RBTree._is_integer(value):
            raise TypeError(f"The {name} must be an integer, not {type(value).__name__}")

        return int(value)

    @staticmethod
    def _check_key(key) -> int:
        key = RBTree._check_integer(key, "key")
        if not (0 <= key <= MAX_KEY):
            raise ValueError(f"The key must be between 0 and {MAX_KEY}, not {key}")

        return key

    @staticmethod
    def _storable(key) -> Optional[int]:
        """`key` as an int if it could be stored, None otherwise."""

        if not RBTree._is_integer(key):
            return None

        key = int(key)
        if not (0 <= key <= MAX_KEY):
            return None

        return key

    def _lookup(self, key) -> int:
        """Handle of `key`, NIL for absent or unstorable keys."""

        key = self._storable(key)
        if key is None:
            return NIL

        return int(search_node(self.tree, self.root, key))

    # ---------- Node access ----------
    def get_node(
        self,
        index: int

    ) -> Tuple[int, int, int, int, int, int]:

        """
        Raw fields of a node handle.

        Args:
            index (int): Row of the arena.

        Returns:
            Tuple[int, int, int, int, int, int]: (key, left, right, parent, size, color).
        """

        key, left, right, parent, size, color = self.tree[index]
        return int(key), int(left), int(right), int(parent), int(size), int(color)

    def get_value(
        self,
        index: int

    ) -> Optional[str]:

        """Value stored under a node handle (None for NIL or a released row)."""

        if index == NIL:
            return None

        return self._values[index]

    # ---------- Mutations ----------
    def insert(
        self,
        key:   int,
        value: str

    ) -> int:

        """
        Insert `key` -> `value`.

        Returns:
            int: Number of colour switches made by the rebalancing, or
                 DUPLICATE_KEY (-1) if `key` is already present.
        """

        key = self._check_key(key)
        if not isinstance(value, str):
            raise TypeError(f"Values must be strings, not {type(value).__name__}")

        # A full arena only grows for a key that will actually be stored
        if self._full:
            if self._lookup(key) != NIL:
                logger.debug("insert(%d): key already present", key)
                return DUPLICATE_KEY

            self._reserve()

        root, free, free_list_top, index, switches = insert(
            self.tree,
            self.root,
            self._free,
            self._free_list,
            self._free_list_top,
            key
        )

        if index == NIL:
            logger.debug("insert(%d): key already present", key)
            return DUPLICATE_KEY

        self.root           = int(root)
        self._free          = int(free)
        self._free_list_top = int(free_list_top)
        self._values[index] = value

        logger.debug("insert(%d): %d colour switches", key, switches)
        return int(switches)

    def delete(
        self,
        key: int

    ) -> int:

        """
        Remove `key`.

        Returns:
            int: Number of colour switches made by the rebalancing, or
                 KEY_NOT_FOUND (-1) if `key` is absent.
        """

        storable = self._storable(key)
        if storable is None:
            logger.debug("delete(%r): key not found", key)
            return KEY_NOT_FOUND

        root, free_list_top, released, switches = delete(
            self.tree,
            self.root,
            self._free_list,
            self._free_list_top,
            storable
        )

        if released == NIL:
            logger.debug("delete(%d): key not found", storable)
            return KEY_NOT_FOUND

        self.root              = int(root)
        self._free_list_top    = int(free_list_top)
        self._values[released] = None

        logger.debug("delete(%d): %d colour switches", storable, switches)
        return int(switches)

    # ---------- Queries ----------
    def search(
        self,
        key: int

    ) -> Optional[str]:

        """Value stored under `key`, or None if absent."""

        return self.get_value(self._lookup(key))

    def __contains__(self, key) -> bool:
        return self._lookup(key) != NIL

    def empty(self) -> bool:
        return self.root == NIL

    def size(self) -> int:
        """Number of stored keys, read from the root's subtree size."""

        return int(self.tree[self.root, SIZE])

    def __len__(self) -> int:
        return self.size()

    def min(self) -> Optional[str]:
        """Value of the smallest key, None if the tree is empty."""

        return self.get_value(int(tree_min(self.tree, self.root)))

    def max(self) -> Optional[str]:
        """Value of the largest key, None if the tree is empty."""

        return self.get_value(int(tree_max(self.tree, self.root)))

    def min_key(self) -> Optional[int]:
        if self.root == NIL:
            return None

        return int(self.tree[tree_min(self.tree, self.root), KEY])

    def max_key(self) -> Optional[int]:
        if self.root == NIL:
            return None

        return int(self.tree[tree_max(self.tree, self.root), KEY])

    def successor(
        self,
        key: int

    ) -> Optional[int]:

        """
        Next larger stored key after a stored `key`.

        Returns:
            Optional[int]: The successor key, or None if `key` is the maximum
                           or is not stored.
        """

        index = self._lookup(key)
        if index == NIL:
            return None

        following = int(successor(self.tree, index))
        if following == NIL:
            return None

        return int(self.tree[following, KEY])

    def predecessor(
        self,
        key: int

    ) -> Optional[int]:

        """
        Next smaller stored key before a stored `key`.

        Returns:
            Optional[int]: The predecessor key, or None if `key` is the
                           minimum or is not stored.
        """

        index = self._lookup(key)
        if index == NIL:
            return None

        preceding = int(predecessor(self.tree, index))
        if preceding == NIL:
            return None

        return int(self.tree[preceding, KEY])

    def rank(
        self,
        key: int

    ) -> int:

        """Number of stored keys strictly smaller than `key` (any integer)."""

        key = self._check_integer(key, "key")
        if key < 0:
            return 0
        if key > MAX_KEY:
            return self.size()

        return int(rank(self.tree, self.root, key))

    def select(
        self,
        order: int

    ) -> Optional[int]:

        """Key with exactly `order` smaller keys (0-based), None if out of range."""

        order = self._check_integer(order, "order")
        if not (0 <= order < self.size()):
            return None

        return int(self.tree[select(self.tree, self.root, order), KEY])

    # ---------- Exports ----------
    def _inorder(self) -> np.ndarray:
        return inorder_handles(self.tree, self.root, self.size())

    def keys_to_array(self) -> np.ndarray:
        """Sorted array of all keys (empty for an empty tree)."""

        return self.tree[self._inorder(), KEY]

    def values_to_array(self) -> List[str]:
        """All values, ordered by their keys."""

        return [self._values[index] for index in self._inorder()]

    def items(self) -> List[Tuple[int, str]]:
        return [(int(self.tree[index, KEY]), self._values[index]) for index in self._inorder()]

    def __iter__(self):
        return iter(self.keys_to_array().tolist())

    # ---------- Integrity ----------
    def check_invariants(self) -> None:
        """
        Verify every structural invariant of the tree.

        Intended for tests and debugging; walks the whole arena.

        Raises:
            AssertionError: naming the first invariant found broken.
        """

        tree = self.tree

        assert not tree[NIL].any(), "Sentinel row was modified"
        assert tree[self.root, COLOR] == BLACK, "Root is not black"
        if self.root != NIL:
            assert tree[self.root, PARENT] == NIL, "Root has a parent"

        def walk(index: int, low: Optional[int], high: Optional[int]) -> int:
            """Black height of the subtree at `index`."""

            if index == NIL:
                return 1

            key, left, right, _, size, color = self.get_node(index)

            assert low is None or key > low, f"BST order violated at key {key}"
            assert high is None or key < high, f"BST order violated at key {key}"

            if color == RED:
                assert tree[left, COLOR] == BLACK, f"Red node {key} has a red left child"
                assert tree[right, COLOR] == BLACK, f"Red node {key} has a red right child"

            if left != NIL:
                assert tree[left, PARENT] == index, f"Broken parent link under key {key}"
            if right != NIL:
                assert tree[right, PARENT] == index, f"Broken parent link under key {key}"

            assert size == tree[left, SIZE] + tree[right, SIZE] + 1, f"Size mismatch at key {key}"

            left_height  = walk(left, low, key)
            right_height = walk(right, key, high)
            assert left_height == right_height, f"Black-height mismatch at key {key}"

            return left_height + (1 if color == BLACK else 0)

        walk(self.root, None, None)

        live = self._free - 1 - self._free_list_top
        assert self.size() == live, f"Root size {self.size()} != {live} live nodes"

    def __str__(self) -> str:
        return (
            "RBTree(size=" + str(self.size()) + ", root=" + str(self.root)
            + ", black_height=" + str(self.black_height) + ")"
        )



# --------- Utils ---------
def warmup(tree_size: int = 16) -> bool:
    """
    Minimally triggers JIT compilation for core red-black operations.
    """

    rbt         = RBTree(tree_size)
    warmup_data = [30, 20, 10, 40, 50, 25, 35, 5]

    for key in warmup_data:
        rbt.insert(key, str(key))

    rbt.search(20)
    rbt.rank(33)
    rbt.select(2)
    rbt.keys_to_array()

    for key in warmup_data[:4]:
        rbt.delete(key)

    return True

def build_rbtree(
    items:    Iterable[Tuple[int, str]],
    capacity: Optional[int] = None

) -> RBTree:

    """
    Builds and populates an RBTree from (key, value) pairs.

    Args:
        items (Iterable[Tuple[int, str]]): Pairs to insert; duplicates after
            the first occurrence are ignored.
        capacity (Optional[int]): Initial arena capacity, defaults to the
            number of pairs when `items` is sized.

    Returns:
        RBTree: A tree holding every distinct key from `items`.
    """

    if capacity is None:
        capacity = len(items) if hasattr(items, "__len__") else DEFAULT_CAPACITY

    rbt = RBTree(capacity)
    for key, value in items:
        rbt.insert(key, value)

    return rbt
