"""Bridges to the external collaborators: object store/CDN, signer, metadata compiler.

Each bridge exposes a Protocol the orchestrator depends on, plus a backend
that drives the real tool.
"""

from repokeeper.bridge.metadata import CreaterepoCompiler, MetadataBuildError, MetadataCompiler
from repokeeper.bridge.remote import AwsCliRemote, RemoteSync, RemoteSyncError
from repokeeper.bridge.signer import Ed25519Signer, GpgSigner, Signer, SigningError

__all__ = [
    "AwsCliRemote",
    "CreaterepoCompiler",
    "Ed25519Signer",
    "GpgSigner",
    "MetadataBuildError",
    "MetadataCompiler",
    "RemoteSync",
    "RemoteSyncError",
    "Signer",
    "SigningError",
]
