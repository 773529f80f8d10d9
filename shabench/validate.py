"""Digest checks: a per-iteration policy check and a one-off known-vector spot check."""

from __future__ import annotations

from typing import Iterable, Optional

from .batch import Batch, DigestBuffer
from .config import KNOWN_DIGESTS, ValidationPolicy
from .errors import ValidationError


def indices_to_check(count: int, policy: ValidationPolicy) -> Iterable[int]:
    policy = ValidationPolicy(policy)
    if count == 0:
        return ()
    if policy is ValidationPolicy.FIRST:
        return (0,)
    if policy is ValidationPolicy.FIRST_AND_LAST:
        return (0,) if count == 1 else (0, count - 1)
    return range(count)


def validate(
    digests: DigestBuffer,
    expected: bytes,
    policy: ValidationPolicy = ValidationPolicy.FIRST_AND_LAST,
    count: Optional[int] = None,
) -> None:
    """Compare the digests selected by ``policy`` against ``expected``.

    Raises ValidationError on the first mismatch, or when ``count`` is given and
    the buffer does not hold exactly that many digests.
    """
    if count is not None and len(digests) != count:
        raise ValidationError(f"backend returned {len(digests)} digests for {count} records")
    for i in indices_to_check(len(digests), policy):
        actual = digests[i]
        if actual != expected:
            raise ValidationError(
                f"digest mismatch at record {i}: expected {expected.hex()}, got {actual.hex()}",
                index=i,
                expected=expected,
                actual=actual,
            )


def spot_check(backend) -> int:
    """Run the known SHA-256 vectors through ``backend`` as one heterogeneous batch.

    Returns the number of vectors checked.
    """
    payloads = list(KNOWN_DIGESTS)
    digests, _ = backend.dispatch(Batch.from_payloads(payloads))
    if len(digests) != len(payloads):
        raise ValidationError(f"spot check returned {len(digests)} digests for {len(payloads)} vectors")
    for i, payload in enumerate(payloads):
        expected = bytes.fromhex(KNOWN_DIGESTS[payload])
        if digests[i] != expected:
            raise ValidationError(
                f"known vector {payload[:16]!r} hashed to {digests[i].hex()}, expected {expected.hex()}",
                index=i,
                expected=expected,
                actual=digests[i],
            )
    return len(payloads)
