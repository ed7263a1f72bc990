from __future__ import annotations

import hashlib
from dataclasses import dataclass
from random import Random


def derive_seed(base_seed: int, *, turn: int, stream: str, purpose: str, key: str = "") -> int:
    payload = f"{base_seed}|{turn}|{stream}|{purpose}|{key}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=8).digest()
    return int.from_bytes(digest, "big")


@dataclass(frozen=True)
class TurnContext:
    base_seed: int
    turn: int

    def rng(self, stream: str, purpose: str, key: str = "") -> Random:
        return Random(derive_seed(self.base_seed, turn=self.turn, stream=stream, purpose=purpose, key=key))
