import math

import numpy as np
import pytest

from aabb import AxisAlignedBoundingBox, cover_of, make_all_covering
from bvh import CoveringTree, build, query, cmp_intersection, closest_hit
from hittable import Sphere
from intervals import Interval
from ray import Ray


def box(*dims):
    return AxisAlignedBoundingBox([Interval(*d) for d in dims])


class Recorder:
    ''' A primitive that records every exact intersection request '''

    def __init__(self, bbox, t=None):
        self.bbox = bbox
        self.t = t
        self.calls = 0

    def make_covering(self):
        return AxisAlignedBoundingBox(self.bbox.dims, payload=self)

    def intersect(self, ray):
        self.calls += 1
        return self.t


def diagonal_spheres(n, seed=0):
    ''' Spheres whose boxes all straddle the line x = y = z '''
    rng = np.random.default_rng(seed)
    spheres = []
    for _ in range(n):
        s = rng.uniform(-50.0, 50.0)
        spheres.append(Sphere([s, s, s], rng.uniform(0.5, 2.0)))
    return spheres


def check_covers(node):
    ''' Recomputes the union of leaf boxes bottom up, comparing on the way '''
    if node.is_leaf:
        assert node.cover.payload is not None
        return node.cover
    assert node.cover.payload is None
    children = [check_covers(c) for c in (node.left, node.right) if c is not None]
    union = make_all_covering(children)
    assert node.cover == union
    return union


def test_coveringtree():
    bbox1 = box((0.0, 1.0), (0.0, 2.0), (-1.0, 2.0))
    bbox2 = box((-2.0, 0.0), (-3.0, 0.0), (-2.0, 0.0))
    bbox3 = box((-2.0, 1.0), (0.0, 1.0), (3.0, 4.0))

    b1b3cover = cover_of(bbox1, bbox3)
    b2cover = bbox2.dims_copy()

    tree = build([bbox1, bbox2, bbox3])
    assert tree.cover == box((-2.0, 1.0), (-3.0, 2.0), (-2.0, 4.0))
    assert tree.left.is_leaf
    assert tree.left.cover == b2cover
    assert tree.left.cover is bbox2
    assert tree.right is not None
    assert tree.right.cover == b1b3cover
    assert tree.right.left.cover is bbox1
    assert tree.right.right.cover is bbox3
    assert tree.total == 5
    assert tree.depth == 2


def test_coveringtree_away_from_origin():
    # the covers reach down to y = 0, so y is the longest axis at the root
    bbox1 = box((0.0, 5.0), (100.0, 101.0), (0.0, 6.0))
    bbox2 = box((1.0, 2.0), (100.0, 101.0), (2.0, 3.0))
    bbox3 = box((3.0, 4.0), (100.0, 101.0), (4.0, 5.0))

    tree = build([bbox1, bbox2, bbox3])
    assert tree.cover == box((0.0, 5.0), (0.0, 101.0), (0.0, 6.0))
    assert tree.left.cover is bbox1
    assert tree.right.cover == box((0.0, 4.0), (0.0, 101.0), (0.0, 5.0))
    assert tree.right.left.cover is bbox2
    assert tree.right.right.cover is bbox3


def test_build_single():
    sphere = Sphere([1.0, 2.0, 3.0], 0.5)
    leaf_box = sphere.make_covering()
    tree = build([leaf_box])

    assert tree.is_leaf
    assert tree.left is None and tree.right is None
    assert tree.cover is leaf_box
    assert tree.cover.payload is sphere
    assert tree.total == 1
    assert tree.depth == 0


def test_build_empty():
    with pytest.raises(ValueError):
        build([])


def test_build_two():
    a = Sphere([-3.0, 0.0, 0.0], 1.0)
    b = Sphere([3.0, 0.0, 0.0], 1.0)
    tree = build([b.make_covering(), a.make_covering()])

    assert tree.cover.payload is None
    assert tree.left.cover.payload is a
    assert tree.right.cover.payload is b


def test_build_reorders_input_in_place():
    spheres = [Sphere([x, 0.0, 0.0], 0.25) for x in (4.0, -2.0, 9.0, 0.0)]
    boxes = [s.make_covering() for s in spheres]
    build(boxes)
    assert [b.payload.center[0] for b in boxes] == [-2.0, 0.0, 4.0, 9.0]


@pytest.mark.parametrize("n", [1, 2, 3, 7, 8, 37, 100])
def test_tree_shape(n):
    spheres = diagonal_spheres(n, seed=n)
    tree = build([s.make_covering() for s in spheres])

    leaves = list(tree.leaves())
    assert len(leaves) == n
    assert {id(leaf.cover.payload) for leaf in leaves} == {id(s) for s in spheres}
    assert tree.total == 2 * n - 1
    assert tree.depth == math.ceil(math.log2(n))
    check_covers(tree)


def test_no_loss():
    spheres = diagonal_spheres(64, seed=3)
    tree = build([s.make_covering() for s in spheres])

    out = query(tree, Ray([-100.0, -100.0, -100.0], [1.0, 1.0, 1.0]), [])
    assert len(out) == len(spheres)
    assert {id(obj) for obj, _ in out} == {id(s) for s in spheres}
    # the line runs through every centre
    assert all(t is not None for _, t in out)


def test_query_prunes_missed_subtrees():
    near = Recorder(box((0.0, 1.0), (0.0, 1.0), (0.0, 1.0)), t=0.5)
    far = Recorder(box((10.0, 11.0), (10.0, 11.0), (10.0, 11.0)), t=10.5)
    tree = build([near.make_covering(), far.make_covering()])

    out = query(tree, Ray([-1.0, 0.5, 0.5], [1.0, 0.0, 0.0]), [])
    assert out == [(near, 0.5)]
    assert near.calls == 1
    assert far.calls == 0

    out = query(tree, Ray([-1.0, 50.0, 50.0], [1.0, 0.0, 0.0]), [])
    assert out == []
    assert near.calls == 1


def test_query_keeps_exact_misses():
    sphere = Sphere([0.0, 0.0, 0.0], 1.0)
    tree = build([sphere.make_covering()])

    # passes through the box corner region but outside the sphere
    out = query(tree, Ray([-5.0, 0.9, 0.9], [1.0, 0.0, 0.0]), [])
    assert out == [(sphere, None)]


def test_query_appends_to_out():
    sphere = Sphere([0.0, 0.0, 0.0], 1.0)
    tree = build([sphere.make_covering()])
    out = [("earlier", None)]
    result = query(tree, Ray([-5.0, 0.0, 0.0], [1.0, 0.0, 0.0]), out)
    assert result is out
    assert len(out) == 2
    assert out[1][0] is sphere
    assert out[1][1] == pytest.approx(4.0)


def test_cmp_intersection():
    assert cmp_intersection(1.0, 2.0) == -1
    assert cmp_intersection(2.0, 1.0) == 1
    assert cmp_intersection(1.0, 1.0) == 0
    assert cmp_intersection(1.0, None) == -1
    assert cmp_intersection(None, 1.0) == 1
    assert cmp_intersection(None, None) == 0


def test_closest_hit():
    assert closest_hit([]) is None
    assert closest_hit([("a", None), ("b", None)]) is None
    assert closest_hit([("a", None), ("b", 3.0), ("c", 1.0)]) == ("c", 1.0)


def test_coveringtree_intersect():
    spheres = [
        Sphere([0.0, 0.0, 0.0], 5.0),
        Sphere([0.0, 0.0, 2.0], 1.0),
        Sphere([0.0, 2.0, 0.0], 1.0),
    ]
    tree = build([s.make_covering() for s in spheres])
    ray = Ray([-1.5, -0.5, -0.5], [1.0, 0.0, 0.0])

    assert tree.cover.check_intersection(ray), "intersection failed!"

    subscene = query(tree, ray, [])
    assert subscene, "subscene should contain the large sphere"

    hittable, param = closest_hit(subscene)
    assert hittable is spheres[0]
    assert math.isfinite(param) and param > 0.0
    assert param == pytest.approx(1.5 + math.sqrt(24.5))


def test_node_children_are_owned():
    spheres = diagonal_spheres(16, seed=11)
    tree = build([s.make_covering() for s in spheres])

    seen = set()

    def walk(node):
        assert isinstance(node, CoveringTree)
        assert id(node) not in seen
        seen.add(id(node))
        for child in (node.left, node.right):
            if child is not None:
                walk(child)

    walk(tree)
    assert len(seen) == tree.total
