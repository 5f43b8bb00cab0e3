"""Merkle Proof - genesis admission whitelist: leaf hashing, roots, proofs, verification.

Invariants:
    - leaf = keccak256(20 address bytes)
    - parent = keccak256(min(left, right) || max(left, right)) (sorted pairs, so
      proofs carry no left/right flags)
    - An odd node at any level is promoted unchanged
    - Roots and proof elements are 0x-prefixed 32-byte hex strings

Design Decisions:
    - Keccak-256 (the pre-standard SHA-3 padding, not hashlib.sha3_256) so
      roots built by merkletreejs with sortPairs over keccak256(address)
      leaves verify here unchanged
    - build_root / build_proof included so operators can publish a root and
      hand each settler a proof
"""

from Crypto.Hash import keccak


def _node(value: str) -> bytes:
    raw = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(raw)


def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def _hex(node: bytes) -> str:
    return "0x" + node.hex()


def _parent(left: bytes, right: bytes) -> bytes:
    if right < left:
        left, right = right, left
    return keccak256(left + right)


def hash_leaf(address: str) -> bytes:
    return keccak256(_node(address.lower()))


def _levels(addresses: list[str]) -> list[list[bytes]]:
    if not addresses:
        raise ValueError("cannot build a merkle tree without leaves")
    level = [hash_leaf(a) for a in addresses]
    levels = [level]
    while len(level) > 1:
        nxt = [
            _parent(level[i], level[i + 1]) if i + 1 < len(level) else level[i]
            for i in range(0, len(level), 2)
        ]
        levels.append(nxt)
        level = nxt
    return levels


def build_root(addresses: list[str]) -> str:
    return _hex(_levels(addresses)[-1][0])


def build_proof(addresses: list[str], address: str) -> list[str]:
    """Sibling path from address's leaf to the root."""
    lowered = [a.lower() for a in addresses]
    index = lowered.index(address.lower())
    proof: list[str] = []
    for level in _levels(lowered)[:-1]:
        sibling = index ^ 1
        if sibling < len(level):
            proof.append(_hex(level[sibling]))
        index //= 2
    return proof


def verify_proof(proof: list[str], root: str, address: str) -> bool:
    """Fold the proof over address's leaf and compare with root."""
    try:
        computed = hash_leaf(address)
        for element in proof:
            computed = _parent(computed, _node(element))
        return computed == _node(root)
    except ValueError:
        return False
