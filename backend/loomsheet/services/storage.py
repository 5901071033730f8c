"""
JSON Collection Storage

Each collection (rolls, work orders) is one JSON array on disk, read and
written whole. There is no row-level update and no locking: the last writer
wins.
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, List, Union

from loomsheet.exceptions import StorageError
from loomsheet.logging_config import get_logger

logger = get_logger(__name__)


class JsonCollectionStore:
    """
    Whole-collection store backed by a single JSON file

    Features:
    - Missing file reads as an empty collection
    - Writes go to a temp file in the same directory and are swapped in with
      os.replace, so a reader never sees a half-written file
    - Any I/O or decode failure surfaces as StorageError
    """

    def __init__(self, path: Union[str, Path], name: str = "collection"):
        self.path = Path(path)
        self.name = name

    def read(self) -> List[Any]:
        """
        Return the stored array, or [] if the file does not exist.

        Raises:
            StorageError: the file cannot be read or is not a JSON array
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {self.name} from {self.path}: {e}")
            raise StorageError(
                f"Failed to read {self.name}",
                details={"path": str(self.path)},
            ) from e

        if not isinstance(data, list):
            raise StorageError(
                f"{self.name} file does not contain a JSON array",
                details={"path": str(self.path)},
            )
        return data

    def write(self, records: List[Any]) -> None:
        """
        Overwrite the whole collection.

        Raises:
            StorageError: the data cannot be serialised or written
        """
        try:
            payload = json.dumps(records, indent=2)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Failed to serialise {self.name}: {e}") from e

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            logger.error(f"Failed to write {self.name} to {self.path}: {e}")
            raise StorageError(
                f"Failed to write {self.name}",
                details={"path": str(self.path)},
            ) from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug(f"Wrote {len(records)} {self.name} records to {self.path}")
