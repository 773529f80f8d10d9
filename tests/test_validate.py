"""Tests for validation policies and the known-vector spot check."""

import pytest

from shabench.backends.cpu import CpuBackend
from shabench.batch import DigestBuffer
from shabench.config import ValidationPolicy
from shabench.errors import ValidationError
from shabench.validate import indices_to_check, spot_check, validate

from conftest import HELLO1_DIGEST, FakeBackend

GOOD = HELLO1_DIGEST
BAD = bytes(32)


def buffer_of(*digests):
    return DigestBuffer.from_digests(digests)


class TestIndices:
    def test_first(self):
        assert list(indices_to_check(10, ValidationPolicy.FIRST)) == [0]

    def test_first_and_last(self):
        assert list(indices_to_check(10, ValidationPolicy.FIRST_AND_LAST)) == [0, 9]

    def test_first_and_last_single(self):
        assert list(indices_to_check(1, ValidationPolicy.FIRST_AND_LAST)) == [0]

    def test_all(self):
        assert list(indices_to_check(4, ValidationPolicy.ALL)) == [0, 1, 2, 3]

    def test_accepts_string_policy(self):
        assert list(indices_to_check(3, "all")) == [0, 1, 2]


class TestValidate:
    def test_all_good(self):
        for policy in ValidationPolicy:
            validate(buffer_of(GOOD, GOOD, GOOD), GOOD, policy)

    def test_last_mismatch_caught_by_default(self):
        with pytest.raises(ValidationError) as info:
            validate(buffer_of(GOOD, GOOD, BAD), GOOD)
        assert info.value.index == 2
        assert info.value.actual == BAD
        assert info.value.expected == GOOD

    def test_middle_mismatch_only_caught_by_all(self):
        buf = buffer_of(GOOD, BAD, GOOD)
        validate(buf, GOOD, ValidationPolicy.FIRST)
        validate(buf, GOOD, ValidationPolicy.FIRST_AND_LAST)
        with pytest.raises(ValidationError) as info:
            validate(buf, GOOD, ValidationPolicy.ALL)
        assert info.value.index == 1

    def test_count_mismatch(self):
        with pytest.raises(ValidationError):
            validate(buffer_of(GOOD), GOOD, count=2)


class TestSpotCheck:
    def test_cpu_backend_passes(self):
        with CpuBackend(2) as backend:
            assert spot_check(backend) == 5

    def test_corrupted_backend_fails(self):
        with pytest.raises(ValidationError):
            spot_check(FakeBackend(corrupt_index=1))

    def test_single_heterogeneous_dispatch(self):
        backend = FakeBackend()
        spot_check(backend)
        assert backend.calls == 1
        lengths = [r.length for r in backend.last_batch]
        assert lengths == [0, 3, 56, 112, 6]
