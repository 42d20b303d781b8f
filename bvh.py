import logging
from functools import cmp_to_key

from aabb import make_all_covering, split_on_covering

logger = logging.getLogger(__name__)


class CoveringTree:
    ''' A bvh node. Its cover contains every leaf box below it.

    Leaves hold the box of one object (payload set) and no children, internal
    nodes hold the payload-free union of their subtree. A node owns its
    children and never points back up.
    '''

    __slots__ = ('cover', 'left', 'right', 'total')

    def __init__(self, cover, left=None, right=None):
        self.cover = cover
        self.left = left
        self.right = right
        self.total = 1
        if left is not None:
            self.total += left.total
        if right is not None:
            self.total += right.total

    @property
    def is_leaf(self):
        return self.left is None and self.right is None

    @property
    def bounding_box(self):
        return self.cover.bounding_box

    @property
    def depth(self):
        children = [c.depth + 1 for c in (self.left, self.right) if c is not None]
        return max(children, default=0)

    def leaves(self):
        ''' Yields the leaf nodes left to right '''
        if self.is_leaf:
            yield self
        for child in (self.left, self.right):
            if child is not None:
                yield from child.leaves()


def _build(boxes):
    if len(boxes) == 1:
        # the leaf takes the box itself, payload included
        return CoveringTree(boxes[0])

    cover = make_all_covering(boxes)
    left_half, right_half = split_on_covering(boxes)
    return CoveringTree(cover, _build(left_half), _build(right_half))


def build(boxes):
    ''' Builds a covering tree from a list of leaf boxes.

    The list is reordered in place. It must hold at least one box.
    '''
    if len(boxes) == 0:
        raise ValueError("cannot build a covering tree from zero boxes")
    root = _build(boxes)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("built covering tree: %d leaves, %d nodes, depth %d",
                     len(boxes), root.total, root.depth)
    return root


def query(root, ray, out):
    ''' Collects (object, hit parameter or None) for every leaf box the ray
    passes through, appending to out. Subtrees whose cover the ray misses
    are skipped. Returns out.
    '''
    if root.cover.check_intersection(ray):
        if root.cover.payload is not None:
            obj = root.cover.payload
            out.append((obj, obj.intersect(ray)))
        if root.left is not None:
            query(root.left, ray, out)
        if root.right is not None:
            query(root.right, ray, out)
    return out


def cmp_intersection(a, b):
    ''' Orders hit parameters, a missing hit is larger than any hit '''
    if a is not None and b is not None:
        return (a > b) - (a < b)
    if a is not None:
        return -1
    if b is not None:
        return 1
    return 0


def closest_hit(candidates):
    ''' Returns the (object, t) with the smallest t, None if nothing hits '''
    if not candidates:
        return None
    obj, t = min(candidates, key=cmp_to_key(lambda x, y: cmp_intersection(x[1], y[1])))
    if t is None:
        return None
    return obj, t
