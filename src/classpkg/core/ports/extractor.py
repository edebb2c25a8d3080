from pathlib import Path
from typing import Protocol


class ArchiveExtractor(Protocol):
    def extract_to(self, archive: Path, destination: Path) -> None: ...
