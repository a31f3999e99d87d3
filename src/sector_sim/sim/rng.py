from __future__ import annotations

import hashlib
from random import Random
from typing import Callable

# Uniform [0, 1) sample source; the only non-determinism in turn resolution.
RandFn = Callable[[], float]


def derive_seed(base_seed: int, *, turn: int, stream: str, purpose: str) -> int:
    payload = f"{base_seed}|{turn}|{stream}|{purpose}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=8).digest()
    return int.from_bytes(digest, "big")


def rand_fn(base_seed: int, *, turn: int, stream: str, purpose: str) -> RandFn:
    return Random(derive_seed(base_seed, turn=turn, stream=stream, purpose=purpose)).random
