"""
Edit session.

An EditSession is the handle an editor front end keeps for the open chart:
- Current chart (no global chart instance exists)
- File path the chart was loaded from / saved to
- Dirty flag, set by chart change events and cleared on save
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from beatmap.chart import ChangeEvent, Chart
from beatmap.persistence import PACKED_SUFFIX, ChartFile
from beatmap.settings import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


class EditSession:
    """Owns the chart being edited and tracks unsaved changes."""

    def __init__(self, chart: Optional[Chart] = None, file_path: Optional[Path] = None,
                 settings: Optional[Dict[str, Dict[str, Any]]] = None):
        """
        Args:
            chart: Chart to edit (a new empty chart if None)
            file_path: Where the chart lives on disk (None if unsaved)
            settings: Settings dictionary (see settings.load_settings)
        """
        self.settings = settings if settings is not None else DEFAULT_SETTINGS
        self._chart: Optional[Chart] = None
        self._unsubscribe = None
        self._is_dirty = False
        self.file_path: Optional[Path] = Path(file_path) if file_path is not None else None
        self.set_chart(chart if chart is not None else Chart.create())

    @property
    def chart(self) -> Chart:
        """Chart being edited."""
        return self._chart

    def set_chart(self, chart: Chart):
        """Replace the edited chart, moving the change subscription to it."""
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._chart = chart
        self._unsubscribe = chart.subscribe(self._on_change)
        self._is_dirty = False

    def _on_change(self, event: ChangeEvent):
        self._is_dirty = True

    def is_dirty(self) -> bool:
        """Check if chart has unsaved changes."""
        return self._is_dirty

    def mark_clean(self):
        """Mark chart as saved."""
        self._is_dirty = False

    @classmethod
    def new(cls, settings: Optional[Dict[str, Dict[str, Any]]] = None) -> "EditSession":
        """
        Start a session on a new chart with one timepoint at time 0.

        Tempo comes from the "editor" settings category.
        """
        session = cls(settings=settings)
        editor = {**DEFAULT_SETTINGS["editor"], **session.settings.get("editor", {})}
        session.chart.add_timepoint(0.0, editor["default_bpm"], editor["default_bpb"])
        session.mark_clean()
        return session

    @classmethod
    def open(cls, path: Path, settings: Optional[Dict[str, Dict[str, Any]]] = None) -> "EditSession":
        """
        Open a chart file (.json text or .bmap packed).

        Raises:
            IOError: If the file cannot be read
            CorruptData: If the file is not a valid chart
        """
        path = Path(path)
        if path.suffix == PACKED_SUFFIX:
            chart = ChartFile.load_packed(path)
        else:
            chart = ChartFile.load(path)
        return cls(chart=chart, file_path=path, settings=settings)

    def save(self, path: Optional[Path] = None) -> Path:
        """
        Save the chart and clear the dirty flag.

        Args:
            path: Destination (default: the session's file path)

        Returns:
            Path actually written

        Raises:
            ValueError: If no path is given and the chart was never saved
            IOError: If save fails
        """
        if path is None:
            path = self.file_path
        if path is None:
            raise ValueError("Chart has no file path; pass one to save()")
        path = Path(path)

        if path.suffix == PACKED_SUFFIX:
            written = ChartFile.save_packed(self.chart, path)
        else:
            written = ChartFile.save(self.chart, path, indent=self.settings.get("files", {}).get("indent"))
        self.file_path = written
        self.mark_clean()
        return written

    def auto_save(self, chart_name: str) -> bool:
        """
        Write a backup if auto-save is enabled and there are unsaved changes.

        Returns:
            True if a backup was written
        """
        files = {**DEFAULT_SETTINGS["files"], **self.settings.get("files", {})}
        if not files["auto_save_enabled"] or not self._is_dirty:
            return False
        return ChartFile.auto_save(self.chart, chart_name, files["auto_save_dir"])

    def close(self):
        """Stop tracking changes of the current chart."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        logger.debug("Session closed (dirty=%s)", self._is_dirty)
