"""Package archive readers."""

from clickpkg.adapters.archive.tar import TarArchive, TarArchiveReader

__all__ = ["TarArchive", "TarArchiveReader"]
