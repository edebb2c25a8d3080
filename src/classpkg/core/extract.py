"""Turn binary ``.ezpkg`` archives into editable package folders."""

import glob
import logging
import tarfile
from dataclasses import dataclass, field
from pathlib import Path

from classpkg.core.definition import transform_definition
from classpkg.core.ports.clock import Clock
from classpkg.core.ports.extractor import ArchiveExtractor
from classpkg.errors import ClassPackageError, NotFoundError

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".ezpkg"
CLASS_FILE_PATTERN = "ezcontentclass/class-*.xml"


class TarArchiveExtractor:
    """Binary packages are tar archives, plain or gzip/bzip2 compressed."""

    def extract_to(self, archive: Path, destination: Path) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(archive, "r:*") as tar:
                tar.extractall(destination, filter="data")
        except (tarfile.TarError, OSError) as exc:
            raise ClassPackageError(f"Could not extract {archive}: {exc}") from exc


@dataclass
class ExtractResult:
    archive: Path
    package_path: Path
    transformed: list[Path] = field(default_factory=list)
    error: str = ""


def package_name_from_file(path: str | Path) -> str:
    """``repo/mypkg-1.1-1.ezpkg`` becomes ``mypkg``."""
    name = Path(path).name
    if "-" in name:
        return name.split("-", 1)[0]
    return Path(name).stem


def package_path_from_file(path: str | Path) -> Path:
    archive = Path(path).resolve()
    return archive.parent / package_name_from_file(archive)


def extract_package(archive: str | Path, extractor: ArchiveExtractor) -> Path:
    archive_path = Path(archive)
    if not archive_path.is_file():
        raise NotFoundError(f"Package file {archive_path} not found")
    destination = package_path_from_file(archive_path)
    logger.info("Extracting %s into %s", archive_path, destination)
    extractor.extract_to(archive_path.resolve(), destination)
    return destination


def extract_and_transform(pattern: str, extractor: ArchiveExtractor, clock: Clock) -> list[ExtractResult]:
    """Extract every ``.ezpkg`` matching *pattern* and normalise its class definitions.

    An archive that cannot be extracted or transformed carries its error in
    the result; the remaining archives are still processed.
    """
    results: list[ExtractResult] = []
    for file_name in sorted(glob.glob(pattern)):
        archive = Path(file_name)
        if archive.suffix != ARCHIVE_SUFFIX or not archive.is_file():
            continue

        result = ExtractResult(archive=archive, package_path=package_path_from_file(archive))
        try:
            extract_package(archive, extractor)
            class_files = sorted(result.package_path.glob(CLASS_FILE_PATTERN))
            if not class_files:
                logger.info("Package contains no class definitions: %s", archive)
            for class_file in class_files:
                transform_definition(class_file, clock)
                result.transformed.append(class_file)
        except ClassPackageError as exc:
            logger.error("Package %s failed: %s", archive.name, exc)
            result.error = str(exc)
        results.append(result)
    return results
