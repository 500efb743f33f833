import logging
from typing import Any, Generic, Iterable, List, Optional, TypeVar

from PyQt5.QtCore import (
    QAbstractListModel,
    QModelIndex,
    QObject,
    Qt,
    pyqtSignal,
    pyqtSlot,
)

from exgrid_qt.row import QtRow

T = TypeVar("T")
logger = logging.getLogger(__name__)


class QtRowCollection(Generic[T], QAbstractListModel):
    """An observable, ordered collection of rows for an interactive grid.

    Structural changes are reported through the usual model signals
    (`rowsInserted`, `rowsRemoved`). A batch of records added with
    `add_rows()` is a single insertion. The derived flags are recomputed
    synchronously after each change and their signals are only emitted
    when the value actually changes.

    The collection keeps at most one current row. The current row is only
    changed through `set_current_row()` (or the `current_row` property), which
    also updates the `is_current` flag of the rows involved.

    Attributes:
        rows: The rows, in order.
        current_row: The current row or `None`.
        has_any_row: The collection is not empty.
        any_selected: At least one row is selected.
        is_selectable: The rows show a check box that controls the selection.
        empty_grid_message: The text shown by the grid when there are no
            rows.

    Signals:
        hasAnyRowChanged: The `has_any_row` flag changed.
        anySelectedChanged: The `any_selected` flag changed.
        currentRowChanged: The current row changed; receives the new row or
            `None`.
        isSelectableChanged: The `is_selectable` flag changed.
        emptyGridMessageChanged: The `empty_grid_message` changed.
        rowSelected: The user selected a row; receives the row and the event.
        rowAdded: The user added a row; receives the row and the event.
        rowSaved: The user saved a row; receives the row and the event.
        rowDeleted: The user deleted a row; receives the row and the event.
    """

    _rows: List[QtRow[T]]
    _current_row: Optional[QtRow[T]]
    _has_any_row: bool
    _any_selected: bool
    _is_selectable: bool
    _empty_grid_message: str

    hasAnyRowChanged = pyqtSignal(bool)
    anySelectedChanged = pyqtSignal(bool)
    currentRowChanged = pyqtSignal(object)
    isSelectableChanged = pyqtSignal(bool)
    emptyGridMessageChanged = pyqtSignal(str)

    rowSelected = pyqtSignal(object, object)
    rowAdded = pyqtSignal(object, object)
    rowSaved = pyqtSignal(object, object)
    rowDeleted = pyqtSignal(object, object)

    def __init__(
        self,
        records: Optional[Iterable[T]] = None,
        is_selectable: bool = False,
        empty_grid_message: str = "",
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._rows = []
        self._current_row = None
        self._has_any_row = False
        self._any_selected = False
        self._is_selectable = is_selectable
        self._empty_grid_message = empty_grid_message
        if records is not None:
            self.add_rows(records)

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    @property
    def rows(self) -> List[QtRow[T]]:
        """A copy of the list of rows."""
        return list(self._rows)

    @property
    def records(self) -> List[T]:
        """The records wrapped by the rows, in order."""
        return [row.data for row in self._rows]

    @property
    def selected_rows(self) -> List[QtRow[T]]:
        """The rows that are selected, in order."""
        return [row for row in self._rows if row.is_selected]

    def row_at(self, position: int) -> QtRow[T]:
        """Get the row at a position."""
        return self._rows[position]

    def _create_row(self, record: T) -> QtRow[T]:
        row: QtRow[T] = QtRow(record)
        row.selectedChanged.connect(self._on_row_selected_changed)
        row.dataChanged.connect(self._on_row_data_changed)
        return row

    def _release_row(self, row: QtRow[T]) -> None:
        row.selectedChanged.disconnect(self._on_row_selected_changed)
        row.dataChanged.disconnect(self._on_row_data_changed)

    def _position_of(self, row: QtRow[T]) -> int:
        for i, crt in enumerate(self._rows):
            if crt is row:
                return i
        return -1

    def add_row(self, record: T) -> QtRow[T]:
        """Wrap a record in a new row and append it.

        Returns:
            The new row.
        """
        return self.add_rows([record])[0]

    def add_rows(self, records: Iterable[T]) -> List[QtRow[T]]:
        """Wrap the records in new rows and append them.

        The whole batch is inserted as a single change. An empty batch
        changes nothing.

        Returns:
            The new rows, in the order of the records.
        """
        new_rows = [self._create_row(record) for record in records]
        if not new_rows:
            return new_rows

        first = len(self._rows)
        self.beginInsertRows(QModelIndex(), first, first + len(new_rows) - 1)
        self._rows.extend(new_rows)
        self.endInsertRows()
        logger.debug("Added %d rows at %d", len(new_rows), first)

        self._update_derived()
        return new_rows

    def remove_row(self, row: QtRow[T]) -> None:
        """Remove a row from the collection.

        If the row is the current row the collection is first left without
        a current row.

        Raises:
            ValueError: The row is not part of this collection.
        """
        position = self._position_of(row)
        if position == -1:
            raise ValueError(f"{row!r} is not part of this collection")

        if row is self._current_row:
            self.set_current_row(None)

        self.beginRemoveRows(QModelIndex(), position, position)
        del self._rows[position]
        self._release_row(row)
        self.endRemoveRows()
        logger.debug("Removed row %d", position)

        self._update_derived()

    def remove_all_rows(self) -> None:
        """Remove all the rows.

        The current row is cleared first, as a change of its own, so that
        nobody sees a current row that is no longer in the collection.
        """
        self.set_current_row(None)
        if not self._rows:
            return

        count = len(self._rows)
        self.beginRemoveRows(QModelIndex(), 0, count - 1)
        for row in self._rows:
            self._release_row(row)
        self._rows = []
        self.endRemoveRows()
        logger.debug("Removed all %d rows", count)

        self._update_derived()

    # ------------------------------------------------------------------
    # Current row and selection
    # ------------------------------------------------------------------

    @property
    def current_row(self) -> Optional[QtRow[T]]:
        """The current row, if any."""
        return self._current_row

    @current_row.setter
    def current_row(self, row: Optional[QtRow[T]]) -> None:
        self.set_current_row(row)

    def set_current_row(self, row: Optional[QtRow[T]]) -> None:
        """Change the current row.

        Args:
            row: The new current row or `None` to have no current row.

        Raises:
            ValueError: The row is not part of this collection.
        """
        if row is self._current_row:
            return
        if row is not None and self._position_of(row) == -1:
            raise ValueError(f"{row!r} is not part of this collection")

        previous = self._current_row
        self._current_row = row
        if previous is not None:
            previous._set_current(False)
        if row is not None:
            row._set_current(True)

        logger.debug("Current row changed from %r to %r", previous, row)
        self.currentRowChanged.emit(row)

    def clear_selection(self) -> None:
        """Deselect all the rows."""
        for row in self._rows:
            row.is_selected = False

    @property
    def has_any_row(self) -> bool:
        """Tell if the collection has rows."""
        return self._has_any_row

    @property
    def any_selected(self) -> bool:
        """Tell if at least one row is selected."""
        return self._any_selected

    def _update_derived(self) -> None:
        has_any_row = len(self._rows) > 0
        if has_any_row != self._has_any_row:
            self._has_any_row = has_any_row
            self.hasAnyRowChanged.emit(has_any_row)
        self._update_any_selected()

    def _update_any_selected(self) -> None:
        any_selected = any(row.is_selected for row in self._rows)
        if any_selected != self._any_selected:
            self._any_selected = any_selected
            self.anySelectedChanged.emit(any_selected)

    @pyqtSlot(bool)
    def _on_row_selected_changed(self, value: bool) -> None:
        row = self.sender()
        self._update_any_selected()
        position = self._position_of(row)  # type: ignore[arg-type]
        if position != -1:
            index = self.index(position)
            self.dataChanged.emit(
                index, index, [Qt.ItemDataRole.CheckStateRole]
            )

    @pyqtSlot(object)
    def _on_row_data_changed(self, value: Any) -> None:
        position = self._position_of(self.sender())  # type: ignore[arg-type]
        if position != -1:
            index = self.index(position)
            self.dataChanged.emit(index, index)

    # ------------------------------------------------------------------
    # Other observable state
    # ------------------------------------------------------------------

    @property
    def is_selectable(self) -> bool:
        """Tell if the rows can be selected through a check box."""
        return self._is_selectable

    @is_selectable.setter
    def is_selectable(self, value: bool) -> None:
        value = bool(value)
        if value == self._is_selectable:
            return
        self._is_selectable = value
        self.isSelectableChanged.emit(value)
        if self._rows:
            self.dataChanged.emit(
                self.index(0),
                self.index(len(self._rows) - 1),
                [Qt.ItemDataRole.CheckStateRole],
            )

    @property
    def empty_grid_message(self) -> str:
        """The text shown when there are no rows."""
        return self._empty_grid_message

    @empty_grid_message.setter
    def empty_grid_message(self, value: str) -> None:
        if value != self._empty_grid_message:
            self._empty_grid_message = value
            self.emptyGridMessageChanged.emit(value)

    # ------------------------------------------------------------------
    # Lifecycle hooks used by the interactive surface
    # ------------------------------------------------------------------

    def on_row_selected(self, row: QtRow[T], event: Any = None) -> None:
        """The user selected a row."""
        self.rowSelected.emit(row, event)

    def on_row_added(self, row: QtRow[T], event: Any = None) -> None:
        """The user added a row."""
        self.rowAdded.emit(row, event)

    def on_row_saved(self, row: QtRow[T], event: Any = None) -> None:
        """The user saved the changes to a row."""
        self.rowSaved.emit(row, event)

    def on_row_deleted(self, row: QtRow[T], event: Any = None) -> None:
        """The user deleted a row."""
        self.rowDeleted.emit(row, event)

    # ------------------------------------------------------------------
    # Qt model
    # ------------------------------------------------------------------

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self._rows)

    def data(
        self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole
    ) -> Any:
        if not index.isValid() or not 0 <= index.row() < len(self._rows):
            return None
        row = self._rows[index.row()]
        if role == Qt.ItemDataRole.DisplayRole:
            return "" if row.data is None else str(row.data)
        if role == Qt.ItemDataRole.CheckStateRole:
            if not self._is_selectable:
                return None
            return (
                Qt.CheckState.Checked
                if row.is_selected
                else Qt.CheckState.Unchecked
            )
        if role == Qt.ItemDataRole.UserRole:
            return row
        return None

    def setData(
        self,
        index: QModelIndex,
        value: Any,
        role: int = Qt.ItemDataRole.EditRole,
    ) -> bool:
        if not index.isValid() or not 0 <= index.row() < len(self._rows):
            return False
        if role == Qt.ItemDataRole.CheckStateRole and self._is_selectable:
            row = self._rows[index.row()]
            row.is_selected = value == Qt.CheckState.Checked
            return True
        return False

    def flags(self, index: QModelIndex) -> Qt.ItemFlags:
        result = super().flags(index)
        if index.isValid() and self._is_selectable:
            result |= Qt.ItemFlag.ItemIsUserCheckable
        return result
