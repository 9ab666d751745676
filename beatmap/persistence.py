"""
Chart file I/O.

File formats:
- .json: canonical chart text (see codec)
- .bmap: MessagePack binary wrapping the same canonical dictionary
  together with a format version
"""
import logging
from pathlib import Path
from typing import Optional, Union

import msgpack

from beatmap.chart import Chart
from beatmap.codec import chart_from_dict, chart_to_dict, decode, encode
from beatmap.errors import CorruptData

logger = logging.getLogger(__name__)

PACKED_VERSION = "1.0"
TEXT_SUFFIX = ".json"
PACKED_SUFFIX = ".bmap"

PathLike = Union[str, Path]


class ChartFile:
    """Handles chart file I/O."""

    @staticmethod
    def save(chart: Chart, path: PathLike, indent: Optional[int] = None) -> Path:
        """
        Save chart as canonical JSON text.

        Args:
            chart: Chart to save
            path: Destination file path (.json is added if missing)
            indent: Pretty-print indent (compact when None)

        Returns:
            Path actually written

        Raises:
            IOError: If save fails
        """
        path = Path(path)
        if path.suffix != TEXT_SUFFIX:
            path = path.with_suffix(TEXT_SUFFIX)

        text = encode(chart, indent=indent)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise IOError(f"Failed to save chart to {path}: {e}") from e

        logger.info("Saved chart to %s", path)
        return path

    @staticmethod
    def load(path: PathLike) -> Chart:
        """
        Load chart from a JSON text file.

        Raises:
            IOError: If the file cannot be read
            CorruptData: If the content is not a valid chart
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise IOError(f"Failed to load chart from {path}: {e}") from e

        chart = decode(text)
        logger.info("Loaded chart from %s: %r", path, chart)
        return chart

    @staticmethod
    def save_packed(chart: Chart, path: PathLike) -> Path:
        """
        Save chart to a .bmap MessagePack file.

        Returns:
            Path actually written

        Raises:
            IOError: If save fails
        """
        path = Path(path)
        if path.suffix != PACKED_SUFFIX:
            path = path.with_suffix(PACKED_SUFFIX)

        packed_data = msgpack.packb(
            {"version": PACKED_VERSION, "chart": chart_to_dict(chart)},
            use_bin_type=True,
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(packed_data)
        except OSError as e:
            raise IOError(f"Failed to save chart to {path}: {e}") from e

        logger.info("Saved packed chart to %s (%d bytes)", path, len(packed_data))
        return path

    @staticmethod
    def load_packed(path: PathLike) -> Chart:
        """
        Load chart from a .bmap MessagePack file.

        Raises:
            IOError: If the file cannot be read
            CorruptData: If the file is not a valid packed chart
        """
        path = Path(path)
        try:
            with open(path, "rb") as f:
                packed_data = f.read()
        except OSError as e:
            raise IOError(f"Failed to load chart from {path}: {e}") from e

        try:
            data = msgpack.unpackb(packed_data, raw=False, strict_map_key=False)
        except (msgpack.exceptions.UnpackException, ValueError, TypeError) as e:
            raise CorruptData([f"invalid {PACKED_SUFFIX} file format: {e}"]) from e

        if not isinstance(data, dict):
            raise CorruptData([f"invalid {PACKED_SUFFIX} file format: expected a map"])

        version = str(data.get("version", "unknown"))
        if not version.startswith("1."):
            raise CorruptData([f"incompatible chart version: {version}. Expected 1.x"])

        chart = chart_from_dict(data.get("chart"))
        logger.info("Loaded packed chart from %s: %r", path, chart)
        return chart

    @staticmethod
    def auto_save(chart: Chart, chart_name: str, auto_save_dir: Optional[PathLike] = None) -> bool:
        """
        Auto-save chart to a backup location.

        Failures are logged, not raised, so an editor keeps running.

        Args:
            chart: Chart to auto-save
            chart_name: Name used for the backup file
            auto_save_dir: Backup directory (default ~/.beatmap/autosave)

        Returns:
            True if the backup was written
        """
        try:
            ChartFile.save(chart, ChartFile.get_auto_save_path(chart_name, auto_save_dir))
        except IOError as e:
            logger.error("Auto-save failed: %s", e)
            return False
        return True

    @staticmethod
    def get_auto_save_path(chart_name: str, auto_save_dir: Optional[PathLike] = None) -> Path:
        """
        Get path to the auto-save file for a chart.

        Args:
            chart_name: Chart name
            auto_save_dir: Backup directory (default ~/.beatmap/autosave)

        Returns:
            Path to auto-save file
        """
        if auto_save_dir is None:
            auto_save_dir = Path.home() / ".beatmap" / "autosave"
        auto_save_dir = Path(auto_save_dir)

        # Sanitize chart name for file system
        safe_name = "".join(c for c in chart_name if c.isalnum() or c in (' ', '-', '_')).strip()
        if not safe_name:
            safe_name = "untitled"

        return auto_save_dir / f"{safe_name}{TEXT_SUFFIX}"

    @staticmethod
    def has_auto_save(chart_name: str, auto_save_dir: Optional[PathLike] = None) -> bool:
        """Check if an auto-save file exists for a chart."""
        return ChartFile.get_auto_save_path(chart_name, auto_save_dir).exists()
