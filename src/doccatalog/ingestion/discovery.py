"""Watch target preparation and file discovery."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator

from .detectors import KindDetector
from .errors import TargetError
from .models import SUPPORTED_EXTENSIONS, CandidateFile, WatchTarget


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


def ensure_target(path: Path | str) -> WatchTarget:
    """Return the state of a watch target, creating the directory when missing.

    Args:
        path: Configured directory path.

    Returns:
        WatchTarget: Target description; ``error`` is set when it cannot be used.
    """
    target_path = Path(path).expanduser()
    if target_path.is_dir():
        return WatchTarget(path=target_path, existed=True)
    if target_path.exists():
        return WatchTarget(path=target_path, existed=True, error="path is not a directory")

    try:
        target_path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return WatchTarget(path=target_path, error=str(exc))
    return WatchTarget(path=target_path, created=True)


class DirectoryScanner:
    """Discover supported files within a directory tree."""

    def __init__(
        self,
        *,
        extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
        include_hidden: bool = False,
        follow_symlinks: bool = False,
        detector: KindDetector | None = None,
    ) -> None:
        self.extensions = frozenset(ext.lower() for ext in extensions)
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.detector = detector or KindDetector()

    def scan(self, root: Path) -> list[CandidateFile]:
        """Return every supported file under ``root`` in a stable order.

        Raises:
            TargetError: If the tree cannot be read.
        """
        root = root.expanduser()
        if not root.is_dir():
            raise TargetError(root, f"{root} is not a readable directory")

        candidates: list[CandidateFile] = []
        try:
            for path in self._iter_paths(root):
                extension = path.suffix.lower()
                if extension not in self.extensions:
                    continue
                if not self.include_hidden and _is_hidden(path.relative_to(root)):
                    continue
                candidates.append(
                    CandidateFile(
                        path=path.resolve(),
                        extension=extension,
                        kind=self.detector.detect(path),
                    )
                )
        except OSError as exc:
            raise TargetError(root, str(exc)) from exc

        candidates.sort(key=lambda candidate: str(candidate.path))
        return candidates

    def _iter_paths(self, root: Path) -> Iterator[Path]:
        """Yield regular files under ``root``, surfacing walk errors."""

        def _raise(error: OSError) -> None:
            raise error

        for dirpath, dirnames, filenames in os.walk(
            root, onerror=_raise, followlinks=self.follow_symlinks
        ):
            dirnames.sort()
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if path.is_file():
                    yield path
