"""File collection utilities for document imports."""
from pathlib import Path
from typing import List, Union

from ..errors import InvalidPathError


class FolderScanner:
    """Finds agent folders and the files each agent imports."""

    @staticmethod
    def resolve_root(path: Union[str, Path, None]) -> Path:
        """
        Validate the import root and return it as an absolute path.

        Stray quotes and surrounding whitespace (common when the path is
        pasted into a shell) are removed first.

        Raises:
            InvalidPathError: If the path is blank or not an existing directory
        """
        cleaned = "" if path is None else str(path).replace("'", "").replace('"', "").strip()
        if not cleaned:
            raise InvalidPathError(path, "Directory is null or empty")

        root = Path(cleaned).expanduser()
        if not root.is_dir():
            raise InvalidPathError(path, "Directory does not exist")
        return root.resolve()

    @staticmethod
    def subfolders(root: Path) -> List[Path]:
        """
        First-level subfolders of root, one per agent.

        Returns ``[root]`` when root has no subfolders so at least one agent
        always runs.
        """
        folders = sorted(item for item in Path(root).iterdir() if item.is_dir())
        return folders or [Path(root)]

    @staticmethod
    def collect_files(folder: Path) -> List[Path]:
        """
        Collect all files recursively.

        Args:
            folder: Folder to scan

        Returns:
            Sorted list of file paths
        """
        files = []
        for item in Path(folder).rglob("*"):
            if item.is_file():
                files.append(item)
        return sorted(files)
