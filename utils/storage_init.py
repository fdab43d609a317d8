import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_ARCHIVE_DIR = Path(__file__).resolve().parent.parent / "archive"


@dataclass(frozen=True)
class StorageConfig:
    """
    Locations of the on-disk archive.

    - Uploaded images live in <root>/uploads
    - Rendered PDF reports live in <root>/reports
    - JSON metadata records live in <root>/reports/meta
    - `ensure_directories()` creates whatever is missing and never removes
      anything, so it is safe to call on every startup.
    """

    root: Path

    @property
    def uploads_dir(self) -> Path:
        return self.root / "uploads"

    @property
    def reports_dir(self) -> Path:
        return self.root / "reports"

    @property
    def meta_dir(self) -> Path:
        return self.reports_dir / "meta"

    @classmethod
    def from_env(cls, default: Optional[Path | str] = None) -> "StorageConfig":
        """
        Build the config from ARCHIVE_DIR, falling back to `default` and then
        to the `archive/` folder next to the application.
        """
        env_dir = os.getenv("ARCHIVE_DIR")
        if env_dir is not None and env_dir.strip():
            root = Path(env_dir).expanduser()
        else:
            root = Path(default) if default is not None else DEFAULT_ARCHIVE_DIR
        return cls(root=root)

    def ensure_directories(self) -> None:
        """
        Create the archive directories if absent.

        Raises RuntimeError when the root points to a file or a directory
        cannot be created.
        """
        if self.root.exists() and not self.root.is_dir():
            raise RuntimeError(
                f"ARCHIVE_DIR={str(self.root)!r} points to a file, not a directory. "
                "Please set ARCHIVE_DIR to a directory path."
            )

        for directory in (self.uploads_dir, self.reports_dir, self.meta_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise RuntimeError(
                    f"Failed to create or access archive directory at {directory}"
                ) from exc
