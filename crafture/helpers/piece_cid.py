"""
Piece commitment (CommP) and its v2 piece CID.

The payload is zero-filled to the next 127 * 2^n bytes and Fr32-expanded, so
every 254 bits occupy one 32-byte node. The nodes are hashed as a binary
SHA-256 tree whose digests have their top two bits cleared. The CID carries
the amount of zero fill, the tree height and the root under the
fr32-sha256-trunc254-padbintree multihash with the raw codec.
"""
import base64
import hashlib
from typing import Tuple

from crafture.constants.networks import MIN_UPLOAD_SIZE

NODE_SIZE = 32
FR32_CHUNK = 127
FR32_MASK = (1 << 254) - 1

CID_VERSION = 0x01
RAW_CODEC = 0x55
FR32_SHA256_TRUNC254_PADBINTREE = 0x1011


def _varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if not value:
            out.append(byte)
            return bytes(out)
        out.append(byte | 0x80)


def unpadded_piece_size(size: int) -> int:
    piece = MIN_UPLOAD_SIZE
    while piece < size:
        piece *= 2
    return piece


def fr32_pad(data: bytes) -> bytes:
    """Expand each 127-byte chunk to 128 bytes, two zero bits after every 254"""
    out = bytearray()
    for offset in range(0, len(data), FR32_CHUNK):
        value = int.from_bytes(data[offset:offset + FR32_CHUNK], "little")
        for i in range(4):
            out += ((value >> (254 * i)) & FR32_MASK).to_bytes(NODE_SIZE, "little")
    return bytes(out)


def _hash_pair(left: bytes, right: bytes) -> bytes:
    digest = bytearray(hashlib.sha256(left + right).digest())
    digest[-1] &= 0x3F
    return bytes(digest)


def commitment(data: bytes) -> Tuple[bytes, int, int]:
    """Return (root, tree height, zero-fill length) for a payload"""
    unpadded = unpadded_piece_size(len(data))
    padded = fr32_pad(data + b"\x00" * (unpadded - len(data)))
    nodes = [padded[i:i + NODE_SIZE] for i in range(0, len(padded), NODE_SIZE)]
    height = 0
    while len(nodes) > 1:
        nodes = [_hash_pair(nodes[i], nodes[i + 1]) for i in range(0, len(nodes), 2)]
        height += 1
    return nodes[0], height, unpadded - len(data)


def piece_cid(data: bytes) -> str:
    root, height, padding = commitment(data)
    digest = _varint(padding) + bytes([height]) + root
    multihash = _varint(FR32_SHA256_TRUNC254_PADBINTREE) + _varint(len(digest)) + digest
    cid = _varint(CID_VERSION) + _varint(RAW_CODEC) + multihash
    return "b" + base64.b32encode(cid).decode("ascii").lower().rstrip("=")
