"""Detached-signature backends.

Bridge boundary
---------------
Anything with a ``sign(path) -> Path`` method satisfies the ``Signer``
protocol. Two backends ship:

1. **GpgSigner**: shells out to ``gpg`` for an ASCII-armored detached
   signature with a SHA-512 digest. This is what package managers verify.

2. **Ed25519Signer**: native Ed25519 via PyNaCl (libsodium). Signs the
   SHA-512 digest of the file and writes an armored block. Useful where
   gpg is unavailable and in tests, since ``verify_detached()`` checks its
   output without any external tool.

Both write ``<path>.asc`` and overwrite whatever was there.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import nacl.signing
from nacl.encoding import Base64Encoder
from nacl.exceptions import BadSignatureError

from repokeeper.bridge.process import run_tool
from repokeeper.models.artifacts import SIGNATURE_SUFFIX

logger = logging.getLogger(__name__)

DIGEST_ALGORITHM = "SHA512"

ARMOR_BEGIN = "-----BEGIN REPOKEEPER SIGNATURE-----"
ARMOR_END = "-----END REPOKEEPER SIGNATURE-----"


class SigningError(RuntimeError):
    """Raised when a signature could not be produced.

    Always fatal to a run: a stale signature is indistinguishable from a
    tampered one to a downstream verifier.
    """


@runtime_checkable
class Signer(Protocol):
    """Protocol for detached-signature backends."""

    def sign(self, path: Path) -> Path:
        """Write a detached armored signature for *path*; return its path."""
        ...


def signature_path_for(path: Path) -> Path:
    """Path of the detached signature for *path*."""
    return path.with_name(path.name + SIGNATURE_SUFFIX)


# ---------------------------------------------------------------------------
# gpg
# ---------------------------------------------------------------------------


class GpgSigner:
    """Detached, armored gpg signatures with a fixed SHA-512 digest.

    Parameters
    ----------
    key_id:
        Passed as ``--local-user`` when set; gpg's default key otherwise.
    binary:
        Name or path of the gpg executable.
    """

    def __init__(self, key_id: str = "", binary: str = "gpg") -> None:
        self.key_id = key_id
        self.binary = binary

    def command(self, path: Path) -> list[str]:
        argv = [
            self.binary,
            "--batch",
            "--yes",
            "--armor",
            "--detach-sign",
            "--digest-algo",
            DIGEST_ALGORITHM,
        ]
        if self.key_id:
            argv += ["--local-user", self.key_id]
        argv += ["--output", str(signature_path_for(path)), str(path)]
        return argv

    def sign(self, path: Path) -> Path:
        run_tool(self.command(Path(path)), error_cls=SigningError)
        return signature_path_for(Path(path))


# ---------------------------------------------------------------------------
# Ed25519 (PyNaCl)
# ---------------------------------------------------------------------------


def generate_keypair() -> tuple[str, str]:
    """Generate an Ed25519 key-pair.

    Returns
    -------
    tuple[str, str]
        ``(private_key_hex, public_key_hex)``
    """
    sk = nacl.signing.SigningKey.generate()
    return (sk.encode().hex(), sk.verify_key.encode().hex())


def key_fingerprint(public_key: str) -> str:
    """First 16 hex characters of SHA-256(public_key)."""
    if not public_key:
        return ""
    return hashlib.sha256(public_key.encode("utf-8")).hexdigest()[:16]


def _file_digest(path: Path) -> bytes:
    digest = hashlib.sha512()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.digest()


class Ed25519Signer:
    """Armored detached Ed25519 signatures over a file's SHA-512 digest.

    Parameters
    ----------
    private_key:
        Hex-encoded 32-byte seed, as returned by ``generate_keypair()``.
    """

    def __init__(self, private_key: str) -> None:
        try:
            self._key = nacl.signing.SigningKey(bytes.fromhex(private_key))
        except (ValueError, TypeError) as exc:
            raise SigningError(f"Invalid Ed25519 private key: {exc}") from exc
        self.public_key = self._key.verify_key.encode().hex()

    def sign(self, path: Path) -> Path:
        path = Path(path)
        try:
            digest = _file_digest(path)
        except OSError as exc:
            raise SigningError(f"Cannot read {path}: {exc}") from exc

        signature = self._key.sign(digest).signature
        body = "\n".join([
            ARMOR_BEGIN,
            f"Digest: {DIGEST_ALGORITHM}",
            f"Key: {key_fingerprint(self.public_key)}",
            "",
            Base64Encoder.encode(signature).decode("ascii"),
            ARMOR_END,
            "",
        ])
        out = signature_path_for(path)
        try:
            out.write_text(body, encoding="ascii")
        except OSError as exc:
            raise SigningError(f"Cannot write {out}: {exc}") from exc
        return out


def verify_detached(path: Path, public_key: str) -> bool:
    """Check an ``Ed25519Signer`` signature for *path* against *public_key*.

    Fail-closed: a missing, malformed or mismatched signature returns False.
    """
    path = Path(path)
    sig_path = signature_path_for(path)
    try:
        lines = sig_path.read_text(encoding="ascii").splitlines()
        if not lines or lines[0] != ARMOR_BEGIN or ARMOR_END not in lines:
            return False
        payload = lines[lines.index("") + 1]
        signature = Base64Encoder.decode(payload.encode("ascii"))
        vk = nacl.signing.VerifyKey(bytes.fromhex(public_key))
        vk.verify(_file_digest(path), signature)
        return True
    except (BadSignatureError, ValueError, OSError, IndexError):
        return False
