"""
Tar archive reader — package archives as plain (compressed) tarballs.

Layout of an archive::

    control/manifest        click manifest (JSON)
    control/hashes.yaml     content hashes
    control/license.txt     optional, for explicit license agreement
    data/...                payload, including data/meta/package.yaml

Authentication is a detached checksum next to the archive
(``<archive>.checksum`` containing ``algo:hexdigest``). Archives without
one can only be opened with ``allow_unauthenticated``.
"""

from __future__ import annotations

import hashlib
import logging
import posixpath
import tarfile
from pathlib import Path

from clickpkg.adapters.base import ArchiveHandle, ArchiveReader
from clickpkg.core.errors import ClickError, VerificationFailed

logger = logging.getLogger(__name__)

CONTROL_PREFIX = "control/"
DATA_PREFIX = "data/"
HASHES_MEMBER = "hashes.yaml"
HASHES_FILE = "content.hash"
CHECKSUM_SUFFIX = ".checksum"


def verify_checksum(path: Path, expected: str) -> bool:
    """Check a file against ``algo:hexdigest``."""
    algo, _, expected_hash = expected.strip().partition(":")
    try:
        h = hashlib.new(algo)
    except ValueError:
        return False
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest() == expected_hash.lower()


def _safe_relpath(name: str, prefix: str) -> str | None:
    """Member name relative to ``prefix``, or None if it escapes."""
    if not name.startswith(prefix):
        return None
    rel = posixpath.normpath(name[len(prefix):])
    if rel in (".", "") or rel.startswith("../") or rel == ".." or posixpath.isabs(rel):
        return None
    return rel


class TarArchive(ArchiveHandle):
    """An opened tar package archive."""

    def __init__(self, path: str):
        self._path = path
        try:
            self._tar = tarfile.open(path, "r:*")
        except (OSError, tarfile.TarError) as e:
            raise ClickError(f"cannot open archive {path}: {e}") from e

    @property
    def path(self) -> str:
        return self._path

    def _read(self, member: str) -> bytes:
        try:
            f = self._tar.extractfile(member)
        except KeyError as e:
            raise ClickError(f"{self._path} has no member {member!r}") from e
        if f is None:
            raise ClickError(f"{self._path}: {member!r} is not a regular file")
        with f:
            return f.read()

    def control_member(self, name: str) -> bytes:
        return self._read(CONTROL_PREFIX + name)

    def meta_member(self, name: str) -> bytes:
        return self._read(f"{DATA_PREFIX}meta/{name}")

    def extract_hashes(self, dest_dir: Path) -> None:
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        (dest_dir / HASHES_FILE).write_bytes(self.control_member(HASHES_MEMBER))

    def unpack_into(self, dest_dir: Path) -> None:
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        members = []
        for member in self._tar.getmembers():
            rel = _safe_relpath(member.name, DATA_PREFIX)
            if rel is None:
                if member.name.startswith(DATA_PREFIX) and member.name.rstrip("/") != DATA_PREFIX.rstrip("/"):
                    raise ClickError(f"refusing unsafe archive member {member.name!r}")
                continue
            if member.isdev():
                raise ClickError(f"refusing device node {member.name!r}")
            member.name = rel
            members.append(member)

        if hasattr(tarfile, "tar_filter"):
            self._tar.extractall(dest_dir, members=members, filter="tar")
        else:
            self._tar.extractall(dest_dir, members=members)
        logger.debug("Unpacked %d members of %s into %s", len(members), self._path, dest_dir)

    def close(self) -> None:
        self._tar.close()


class TarArchiveReader(ArchiveReader):
    """Opens tar package archives, checking their detached checksum."""

    def open(self, path: str, allow_unauthenticated: bool = False) -> ArchiveHandle:
        archive = Path(path)
        if not archive.is_file():
            raise ClickError(f"no such archive: {path}")

        checksum = archive.with_name(archive.name + CHECKSUM_SUFFIX)
        if checksum.is_file():
            if not verify_checksum(archive, checksum.read_text(encoding="utf-8")):
                raise VerificationFailed(f"checksum mismatch for {path}")
        elif not allow_unauthenticated:
            raise VerificationFailed(
                f"{path} is not authenticated (no {checksum.name})"
            )
        else:
            logger.info("Opening unauthenticated archive %s", path)

        return TarArchive(str(archive))
