"""Coverage and sizing arithmetic of the GPU dispatch grid."""

import itertools

import pytest

from shabench.backends.sizing import DispatchGeometry, ceil_div


def covered(geometry):
    seen = []
    for r in geometry.ranges():
        seen.extend(r)
    return seen


class TestDispatchGeometry:
    @pytest.mark.parametrize("n, width, groups", [
        (1, 64, 1),
        (64, 64, 1),
        (65, 64, 2),
        (32768, 64, 512),
        (32769, 64, 513),
    ])
    def test_group_count(self, n, width, groups):
        g = DispatchGeometry(n, width)
        assert g.group_count == groups
        assert g.global_size == (groups * width,)
        assert g.local_size == (width,)

    def test_chunked_invocations(self):
        g = DispatchGeometry(1000, 64, chunk_size=8)
        assert g.invocations == 125
        assert g.group_count == 2
        assert g.invocation_range(0) == range(0, 8)
        assert g.invocation_range(124) == range(992, 1000)

    def test_over_provisioned_invocations_are_empty(self):
        g = DispatchGeometry(65, 64)
        assert g.global_size == (128,)
        assert all(len(g.invocation_range(gid)) == 0 for gid in range(65, 128))

    def test_partial_last_chunk(self):
        g = DispatchGeometry(10, 4, chunk_size=3)
        assert g.invocation_range(3) == range(9, 10)
        assert len(g.invocation_range(4)) == 0

    @pytest.mark.parametrize("n, width, chunk", list(itertools.product(
        [1, 2, 7, 63, 64, 65, 127, 128, 129, 1000],
        [1, 3, 32, 64, 256],
        [1, 2, 5],
    )))
    def test_exact_coverage(self, n, width, chunk):
        seen = covered(DispatchGeometry(n, width, chunk))
        assert sorted(seen) == list(range(n))
        assert len(seen) == len(set(seen))

    @pytest.mark.parametrize("args", [(0, 64), (10, 0), (10, 64, 0)])
    def test_invalid(self, args):
        with pytest.raises(ValueError):
            DispatchGeometry(*args)


def test_ceil_div():
    assert ceil_div(1, 64) == 1
    assert ceil_div(64, 64) == 1
    assert ceil_div(65, 64) == 2
