"""
secp256k1 ECDSA - deterministic signing, low-s, public key recovery.

Points are kept in Jacobian coordinates (X, Y, Z) during scalar
multiplication and converted to affine (x, y) at the boundaries.
Nonces follow RFC 6979 with HMAC-SHA256.
"""
import hashlib
import hmac
import logging
from typing import Iterator, Optional, Tuple

from hlsigner.errors import MalformedInputError, RecoveryFailure
from hlsigner.hashing import keccak256

logger = logging.getLogger(__name__)

P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
A = 0
B = 7
G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)
HALF_N = N // 2

Point = Tuple[int, int]
_Jacobian = Tuple[int, int, int]

_INFINITY: _Jacobian = (0, 1, 0)


def _to_jacobian(p: Point) -> _Jacobian:
    return p[0], p[1], 1


def _from_jacobian(p: _Jacobian) -> Optional[Point]:
    x, y, z = p
    if z == 0:
        return None
    zinv = pow(z, -1, P)
    zinv2 = zinv * zinv % P
    return x * zinv2 % P, y * zinv2 * zinv % P


def _jdouble(p: _Jacobian) -> _Jacobian:
    x, y, z = p
    if z == 0 or y == 0:
        return _INFINITY
    yy = y * y % P
    s = 4 * x * yy % P
    m = 3 * x * x % P  # a = 0
    nx = (m * m - 2 * s) % P
    ny = (m * (s - nx) - 8 * yy * yy) % P
    nz = 2 * y * z % P
    return nx, ny, nz


def _jadd(p: _Jacobian, q: _Jacobian) -> _Jacobian:
    if p[2] == 0:
        return q
    if q[2] == 0:
        return p
    x1, y1, z1 = p
    x2, y2, z2 = q
    z1z1 = z1 * z1 % P
    z2z2 = z2 * z2 % P
    u1 = x1 * z2z2 % P
    u2 = x2 * z1z1 % P
    s1 = y1 * z2 * z2z2 % P
    s2 = y2 * z1 * z1z1 % P
    if u1 == u2:
        if s1 != s2:
            return _INFINITY
        return _jdouble(p)
    h = (u2 - u1) % P
    r = (s2 - s1) % P
    hh = h * h % P
    hhh = h * hh % P
    v = u1 * hh % P
    nx = (r * r - hhh - 2 * v) % P
    ny = (r * (v - nx) - s1 * hhh) % P
    nz = h * z1 * z2 % P
    return nx, ny, nz


def _jmul(k: int, p: _Jacobian) -> _Jacobian:
    result = _INFINITY
    addend = p
    while k:
        if k & 1:
            result = _jadd(result, addend)
        addend = _jdouble(addend)
        k >>= 1
    return result


def point_mul(k: int, point: Point = G) -> Optional[Point]:
    return _from_jacobian(_jmul(k % N, _to_jacobian(point)))


def is_on_curve(point: Point) -> bool:
    x, y = point
    return (y * y - x * x * x - A * x - B) % P == 0


def _check_digest(digest: bytes) -> int:
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != 32:
        raise MalformedInputError("digest must be 32 bytes", {"field": "digest"})
    return int.from_bytes(digest, "big")


def _check_scalar(d: int) -> int:
    if isinstance(d, bool) or not isinstance(d, int) or not 1 <= d < N:
        raise MalformedInputError("private scalar out of range", {"field": "private_key"})
    return d


def rfc6979_nonces(d: int, digest: bytes) -> Iterator[int]:
    """Deterministic candidate nonces k in [1, N-1] (RFC 6979 section 3.2)."""
    x = d.to_bytes(32, "big")
    h = (int.from_bytes(digest, "big") % N).to_bytes(32, "big")
    v = b"\x01" * 32
    k = b"\x00" * 32
    k = hmac.new(k, v + b"\x00" + x + h, hashlib.sha256).digest()
    v = hmac.new(k, v, hashlib.sha256).digest()
    k = hmac.new(k, v + b"\x01" + x + h, hashlib.sha256).digest()
    v = hmac.new(k, v, hashlib.sha256).digest()
    while True:
        v = hmac.new(k, v, hashlib.sha256).digest()
        candidate = int.from_bytes(v, "big")
        if 1 <= candidate < N:
            yield candidate
        k = hmac.new(k, v + b"\x00", hashlib.sha256).digest()
        v = hmac.new(k, v, hashlib.sha256).digest()


def public_key_from_private(d: int) -> Point:
    _check_scalar(d)
    return point_mul(d, G)


def public_key_bytes(point: Point) -> bytes:
    """Uncompressed SEC1 encoding: 0x04 || x || y."""
    return b"\x04" + point[0].to_bytes(32, "big") + point[1].to_bytes(32, "big")


def address_from_public_key(point: Point) -> str:
    return "0x" + keccak256(public_key_bytes(point)[1:])[-20:].hex()


def address_from_private_key(d: int) -> str:
    return address_from_public_key(public_key_from_private(d))


def recover_public_key(digest: bytes, r: int, s: int, rec_id: int) -> Point:
    """Q = r^-1 (sR - eG) for the candidate R selected by rec_id."""
    e = _check_digest(digest)
    if rec_id not in (0, 1):
        raise RecoveryFailure("recovery id must be 0 or 1", {"rec_id": rec_id})
    if not (1 <= r < N and 1 <= s < N):
        raise RecoveryFailure("r or s out of range")
    x = r
    alpha = (x * x * x + A * x + B) % P
    y = pow(alpha, (P + 1) // 4, P)
    if y * y % P != alpha:
        raise RecoveryFailure("r is not the x coordinate of a curve point", {"rec_id": rec_id})
    if y & 1 != rec_id:
        y = P - y
    r_inv = pow(r, -1, N)
    u1 = (-e * r_inv) % N
    u2 = (s * r_inv) % N
    q = _from_jacobian(_jadd(_jmul(u1, _to_jacobian(G)), _jmul(u2, (x, y, 1))))
    if q is None:
        raise RecoveryFailure("recovered point at infinity", {"rec_id": rec_id})
    return q


def resolve_recovery_id(digest: bytes, r: int, s: int, public_key: Point) -> int:
    for rec_id in (0, 1):
        try:
            candidate = recover_public_key(digest, r, s, rec_id)
        except RecoveryFailure:
            continue
        if candidate == public_key:
            return rec_id
    raise RecoveryFailure(
        "neither recovery id reproduces the signing key",
        {"digest": digest.hex(), "r": hex(r)},
    )


def sign_digest(digest: bytes, d: int, public_key: Optional[Point] = None) -> Tuple[int, int, int]:
    """Deterministic low-s ECDSA signature (r, s, rec_id) over a 32-byte digest."""
    e = _check_digest(digest)
    _check_scalar(d)
    if public_key is None:
        public_key = point_mul(d, G)
    for k in rfc6979_nonces(d, digest):
        point = point_mul(k, G)
        r = point[0] % N
        if r == 0:
            continue
        s = pow(k, -1, N) * (e + r * d) % N
        if s == 0:
            continue
        if s > HALF_N:
            s = N - s
        rec_id = resolve_recovery_id(digest, r, s, public_key)
        return r, s, rec_id
    raise RecoveryFailure("nonce generator exhausted")  # unreachable


def recover_address(digest: bytes, r: int, s: int, rec_id: int) -> str:
    return address_from_public_key(recover_public_key(digest, r, s, rec_id))
