"""
ShareBox — Primitive Test Suite

Tests field/curve math, polynomial splitting, commitments and proofs,
per-recipient encryption, and the secret codec.
"""

import os
import sys
from unittest import mock

# Add parent to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sharebox import codec, commitment, crypto, curve, polynomial
from sharebox.curve import G, N, P, KeyPair, Point
from sharebox.errors import (
    CryptoError, DecryptionError, DuplicateIndex, EntropyError,
    InvalidThreshold, PayloadTooLarge, ValidationError,
)


# ==========================================================================
# Field / Curve Tests
# ==========================================================================

def test_curve_generator_valid():
    """Generator lies on the curve and encodes with an even-y prefix."""
    assert G.is_valid()
    assert G.to_bytes()[0] == 0x02
    assert Point.from_bytes(G.to_bytes()) == G


def test_curve_known_multiples():
    """2G and 3G match the published secp256k1 values."""
    two_g = G * 2
    three_g = G * 3
    assert two_g == G + G
    assert two_g.x == 0xC6047F9441ED7D6D3045406E95C07CD85C778E4B8CEF3CA7ABAC09B95C709EE5
    assert three_g.x == 0xF9308A019258C31049344F85F89D5229B531C845836F99B08601F113BCE036F9
    assert three_g == two_g + G


def test_curve_group_order():
    """(N-1)G + G is the identity, and so is NG."""
    assert (G * (N - 1) + G).is_identity
    assert (G * N).is_identity
    assert G - G == Point.identity()


def test_curve_scalar_mult_distributes():
    a = curve.random_scalar()
    b = curve.random_scalar()
    assert G * a + G * b == G * curve.scalar_add(a, b)
    assert (G * a) * b == G * curve.scalar_mul(a, b)


def test_curve_point_round_trip():
    for _ in range(5):
        p = G * curve.random_scalar()
        assert Point.from_bytes(p.to_bytes()) == p
        assert Point.from_bytes((-p).to_bytes()) == -p


def test_curve_rejects_bad_encodings():
    """Wrong length, wrong prefix and unreduced x all fail to decode."""
    good = G.to_bytes()
    bad = [
        good[:-1],
        b'\x04' + good[1:],
        b'\x00' * 33,
        b'\x02' + P.to_bytes(32, 'big'),
    ]
    for data in bad:
        try:
            Point.from_bytes(data)
            assert False, f"Should have raised CryptoError for {data.hex()}"
        except CryptoError:
            pass


def test_curve_rejects_off_curve_x():
    """About half of all x values have no point; some small ones must fail."""
    failures = 0
    for x in range(1, 40):
        try:
            Point.from_bytes(b'\x02' + x.to_bytes(32, 'big'))
        except CryptoError:
            failures += 1
    assert failures > 0


def test_curve_identity_has_no_encoding():
    try:
        Point.identity().to_bytes()
        assert False, "Should have raised CryptoError"
    except CryptoError:
        pass


def test_scalar_ops():
    a = curve.random_scalar()
    assert curve.scalar_mul(a, curve.scalar_inv(a)) == 1
    assert curve.scalar_add(a, curve.scalar_neg(a)) == 0
    assert curve.scalar_from_bytes(curve.scalar_to_bytes(a)) == a


def test_scalar_inverse_of_zero():
    try:
        curve.scalar_inv(0)
        assert False, "Should have raised CryptoError"
    except CryptoError:
        pass


def test_scalar_decode_rejects_unreduced():
    try:
        curve.scalar_from_bytes(N.to_bytes(32, 'big'))
        assert False, "Should have raised CryptoError"
    except CryptoError:
        pass


def test_keypair_generate():
    kp = KeyPair.generate()
    assert 0 < kp.private_key < N
    assert kp.public_key == G * kp.private_key
    assert str(kp.private_key) not in repr(kp)
    assert format(kp.private_key, 'x') not in repr(kp)


def test_keypair_from_invalid_private_key():
    for bad in (0, N, -1):
        try:
            KeyPair.from_private_key(bad)
            assert False, f"Should have raised CryptoError for {bad}"
        except CryptoError:
            pass


def test_entropy_failure_is_fatal():
    """No CSPRNG → EntropyError, never a weaker fallback."""
    with mock.patch('sharebox.curve.secrets.randbelow', side_effect=NotImplementedError("no source")):
        try:
            curve.random_scalar()
            assert False, "Should have raised EntropyError"
        except EntropyError:
            pass
    with mock.patch('sharebox.curve.os.urandom', side_effect=NotImplementedError("no source")):
        try:
            curve.random_bytes(12)
            assert False, "Should have raised EntropyError"
        except EntropyError:
            pass


def test_hash_to_scalar_length_prefixed():
    d = b"test"
    assert curve.hash_to_scalar(d, b"ab", b"c") != curve.hash_to_scalar(d, b"a", b"bc")
    assert curve.hash_to_scalar(d, b"x") == curve.hash_to_scalar(d, b"x")
    assert curve.hash_to_scalar(b"other", b"x") != curve.hash_to_scalar(d, b"x")


# ==========================================================================
# Polynomial Tests
# ==========================================================================

def test_polynomial_shape():
    secret = curve.random_scalar()
    poly = polynomial.generate_polynomial(secret, 4)
    assert poly.coefficients[0] == secret
    assert poly.threshold == 4
    assert poly.degree == 3
    assert poly(0) == secret
    assert str(secret) not in repr(poly)


def test_polynomial_horner_matches_naive():
    poly = polynomial.Polynomial(coefficients=(5, 7, 11))
    x = 123456789
    expected = (5 + 7 * x + 11 * x * x) % N
    share = polynomial.evaluate(poly, x)
    assert share.index == x
    assert share.value == expected


def test_polynomial_invalid_threshold():
    for bad in (0, -1, True, 2.0):
        try:
            polynomial.generate_polynomial(1, bad)
            assert False, f"Should have raised InvalidThreshold for {bad!r}"
        except InvalidThreshold:
            pass


def test_polynomial_zero_index_rejected():
    poly = polynomial.generate_polynomial(42, 2)
    try:
        polynomial.evaluate(poly, 0)
        assert False, "Should have raised ValidationError"
    except ValidationError:
        pass


def test_interpolate_any_subset():
    """Any t points recover f(0); so do more than t."""
    secret = curve.random_scalar()
    poly = polynomial.generate_polynomial(secret, 3)
    xs = [curve.random_scalar() for _ in range(5)]
    points = [(x, poly(x)) for x in xs]

    assert polynomial.interpolate_at_zero(points[:3]) == secret
    assert polynomial.interpolate_at_zero(points[2:]) == secret
    assert polynomial.interpolate_at_zero([points[0], points[2], points[4]]) == secret
    assert polynomial.interpolate_at_zero(points) == secret


def test_interpolate_duplicate_index():
    try:
        polynomial.interpolate_at_zero([(1, 5), (1, 5), (2, 9)])
        assert False, "Should have raised DuplicateIndex"
    except DuplicateIndex:
        pass


def test_canonical_index_deterministic():
    pk1 = KeyPair.generate().public_key
    pk2 = KeyPair.generate().public_key
    i1 = polynomial.canonical_index(pk1)
    assert i1 == polynomial.canonical_index(Point.from_bytes(pk1.to_bytes()))
    assert 0 < i1 < N
    assert i1 != polynomial.canonical_index(pk2)


def test_share_value_round_trip():
    share = polynomial.ShareValue(index=7, value=curve.random_scalar())
    data = share.to_bytes()
    assert len(data) == polynomial.SHARE_SIZE
    assert polynomial.ShareValue.from_bytes(data) == share
    assert str(share.value) not in repr(share)


# ==========================================================================
# Commitment Tests
# ==========================================================================

def _committed(threshold=3):
    poly = polynomial.generate_polynomial(curve.random_scalar(), threshold)
    return poly, commitment.commit(poly)


def test_commitment_length_and_points():
    poly, comm = _committed(4)
    assert len(comm) == 4
    assert comm.is_valid()
    assert comm[0] == G * poly.coefficients[0]


def test_commitment_verifies_honest_shares():
    poly, comm = _committed()
    for x in (1, 2, curve.random_scalar()):
        share = polynomial.evaluate(poly, x)
        assert commitment.verify_share_value(comm, share)


def test_commitment_rejects_wrong_value():
    poly, comm = _committed()
    share = polynomial.evaluate(poly, 9)
    forged = polynomial.ShareValue(index=9, value=curve.scalar_add(share.value, 1))
    assert not commitment.verify_share_value(comm, forged)


def test_commitment_bytes_round_trip():
    _, comm = _committed(3)
    assert commitment.Commitment.from_bytes(comm.to_bytes(), 3) == comm
    try:
        commitment.Commitment.from_bytes(comm.to_bytes(), 2)
        assert False, "Should have raised ValidationError"
    except ValidationError:
        pass


def test_share_proof_valid():
    poly, comm = _committed()
    pk = KeyPair.generate().public_key
    share = polynomial.evaluate(poly, polynomial.canonical_index(pk))
    proof = commitment.prove_share(share, comm, pk)
    assert commitment.verify_share_proof(proof, share.index, comm, pk)


def test_share_proof_fails_for_any_flipped_bit():
    """Altering one bit of the value before proving breaks the proof."""
    poly, comm = _committed()
    pk = KeyPair.generate().public_key
    share = polynomial.evaluate(poly, polynomial.canonical_index(pk))
    for bit in (0, 1, 17, 128, 255):
        altered = polynomial.ShareValue(index=share.index, value=(share.value ^ (1 << bit)) % N)
        proof = commitment.prove_share(altered, comm, pk)
        assert not commitment.verify_share_proof(proof, share.index, comm, pk), f"bit {bit}"


def test_share_proof_bound_to_key_and_index():
    poly, comm = _committed()
    pk = KeyPair.generate().public_key
    other = KeyPair.generate().public_key
    share = polynomial.evaluate(poly, polynomial.canonical_index(pk))
    proof = commitment.prove_share(share, comm, pk)
    assert not commitment.verify_share_proof(proof, share.index, comm, other)
    assert not commitment.verify_share_proof(proof, share.index + 1, comm, pk)


def test_share_proof_tampered_scalars():
    poly, comm = _committed()
    pk = KeyPair.generate().public_key
    share = polynomial.evaluate(poly, polynomial.canonical_index(pk))
    proof = commitment.prove_share(share, comm, pk)
    bad_c = commitment.ShareProof(challenge=curve.scalar_add(proof.challenge, 1), response=proof.response)
    bad_r = commitment.ShareProof(challenge=proof.challenge, response=curve.scalar_add(proof.response, 1))
    out_of_range = commitment.ShareProof(challenge=N, response=proof.response)
    for bad in (bad_c, bad_r, out_of_range):
        assert not commitment.verify_share_proof(bad, share.index, comm, pk)


def test_share_proof_encoding():
    proof = commitment.ShareProof(challenge=5, response=6)
    assert commitment.ShareProof.from_bytes(proof.to_bytes()) == proof
    try:
        commitment.ShareProof.from_bytes(b'\x00' * 63)
        assert False, "Should have raised CryptoError"
    except CryptoError:
        pass


def test_dealer_proof_valid_and_bound():
    poly, comm = _committed(3)
    transcript = b"threshold-and-keys"
    proof = commitment.prove_coefficients(poly, comm, transcript)
    assert commitment.verify_coefficients(proof, comm, transcript)
    assert not commitment.verify_coefficients(proof, comm, b"other transcript")


def test_dealer_proof_rejects_foreign_commitment_point():
    """A commitment point from another polynomial invalidates the proof."""
    poly, comm = _committed(3)
    _, other = _committed(3)
    proof = commitment.prove_coefficients(poly, comm, b"t")
    for j in range(3):
        points = list(comm.points)
        points[j] = other[j]
        swapped = commitment.Commitment(points)
        assert not commitment.verify_coefficients(proof, swapped, b"t"), f"point {j}"


def test_dealer_proof_encoding():
    poly, comm = _committed(2)
    proof = commitment.prove_coefficients(poly, comm, b"t")
    assert commitment.DealerProof.from_bytes(proof.to_bytes(), 2) == proof


# ==========================================================================
# Crypto Tests
# ==========================================================================

def test_crypto_encrypt_decrypt():
    """Basic encrypt/decrypt round-trip."""
    kp = KeyPair.generate()
    plaintext = b"The documents are in the safe." * 2
    sealed = crypto.encrypt(plaintext, kp.public_key)
    assert sealed.recipient == kp.public_key
    assert len(sealed.nonce) == crypto.NONCE_SIZE
    assert len(sealed.tag) == crypto.TAG_SIZE
    assert len(sealed.ciphertext) == len(plaintext)
    assert crypto.decrypt(sealed, kp) == plaintext


def test_crypto_fresh_ephemeral_per_call():
    kp = KeyPair.generate()
    a = crypto.encrypt(b"same", kp.public_key)
    b = crypto.encrypt(b"same", kp.public_key)
    assert a.ephemeral_public_key != b.ephemeral_public_key
    assert a.ciphertext != b.ciphertext


def test_crypto_wrong_key():
    """Wrong key must fail decryption."""
    kp1 = KeyPair.generate()
    kp2 = KeyPair.generate()
    sealed = crypto.encrypt(b"Secret message", kp1.public_key)
    try:
        crypto.decrypt(sealed, kp2)
        assert False, "Should have raised DecryptionError"
    except DecryptionError:
        pass


def _flip(data: bytes, pos: int = 0) -> bytes:
    tampered = bytearray(data)
    tampered[pos] ^= 0xFF
    return bytes(tampered)


def test_crypto_tampered_fields():
    """Any tampered field must fail authentication."""
    from dataclasses import replace

    kp = KeyPair.generate()
    sealed = crypto.encrypt(b"Secret share bytes", kp.public_key)
    variants = [
        replace(sealed, ciphertext=_flip(sealed.ciphertext, 3)),
        replace(sealed, tag=_flip(sealed.tag)),
        replace(sealed, nonce=_flip(sealed.nonce)),
        replace(sealed, ephemeral_public_key=KeyPair.generate().public_key),
    ]
    for tampered in variants:
        try:
            crypto.decrypt(tampered, kp)
            assert False, "Should have raised DecryptionError"
        except DecryptionError:
            pass


def test_crypto_encrypted_share_bytes():
    kp = KeyPair.generate()
    sealed = crypto.encrypt(b'\x00' * 64, kp.public_key)
    data = sealed.to_bytes()
    assert crypto.EncryptedShare.from_bytes(data, 64) == sealed
    try:
        crypto.EncryptedShare.from_bytes(data[:-1], 64)
        assert False, "Should have raised CryptoError"
    except CryptoError:
        pass


# ==========================================================================
# Codec Tests
# ==========================================================================

def test_codec_round_trip():
    payloads = [
        b'',
        b'\x00',
        b'\x00\x00abc',
        b'This is a secret!',
        os.urandom(codec.CAPACITY),
        b'\xff' * codec.CAPACITY,
    ]
    for payload in payloads:
        secret = codec.bytes_to_secret(payload)
        assert 0 < secret < N
        assert codec.secret_to_bytes(secret) == payload
        assert codec.bytes_to_secret(codec.secret_to_bytes(secret)) == secret


def test_codec_capacity_boundary():
    """Exactly CAPACITY bytes fit; one more raises PayloadTooLarge."""
    codec.bytes_to_secret(b'a' * codec.CAPACITY)
    try:
        codec.bytes_to_secret(b'a' * (codec.CAPACITY + 1))
        assert False, "Should have raised PayloadTooLarge"
    except PayloadTooLarge:
        pass


def test_codec_rejects_non_bytes():
    try:
        codec.bytes_to_secret("text")
        assert False, "Should have raised ValidationError"
    except ValidationError:
        pass


def test_codec_rejects_unmarked_scalar():
    for bad in (0, 0x02FF, N):
        try:
            codec.secret_to_bytes(bad)
            assert False, f"Should have raised CryptoError for {bad:#x}"
        except CryptoError:
            pass


# ==========================================================================
# Runner
# ==========================================================================

def run_all():
    tests = [v for k, v in sorted(globals().items()) if k.startswith('test_') and callable(v)]

    passed = 0
    failed = 0
    for t in tests:
        try:
            t()
            print(f"[PASS] {t.__name__}")
            passed += 1
        except Exception as e:
            print(f"[FAIL] {t.__name__}: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print(f"\n--- ShareBox primitive tests: {passed} passed, {failed} failed ---")
    return failed == 0


if __name__ == "__main__":
    sys.exit(0 if run_all() else 1)
