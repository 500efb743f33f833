from typing import Generic, Optional, TypeVar

from PyQt5.QtCore import QObject, pyqtSignal

T = TypeVar("T")


class QtRow(Generic[T], QObject):
    """Wraps a record with the state of its row in an interactive grid.

    A row belongs to a single collection; it is created when the record is
    added to the collection and dropped when it is removed.

    Attributes:
        data: The record. It can be replaced; the row does not own it.
        is_selected: The row is part of the selection. Any number of rows
            can be selected at the same time.
        is_current: The row is the current row of its collection. Only the
            collection changes this flag.

    Signals:
        dataChanged: Emitted with the new record when it is replaced.
        selectedChanged: Emitted when the selection flag changes.
        currentChanged: Emitted when the current flag changes.
    """

    _data: T
    _is_selected: bool
    _is_current: bool

    dataChanged = pyqtSignal(object)
    selectedChanged = pyqtSignal(bool)
    currentChanged = pyqtSignal(bool)

    def __init__(self, data: T, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._data = data
        self._is_selected = False
        self._is_current = False

    def __repr__(self) -> str:
        return f"QtRow({self._data!r})"

    @property
    def data(self) -> T:
        """The record wrapped by this row."""
        return self._data

    @data.setter
    def data(self, value: T) -> None:
        if self._data is not value:
            self._data = value
            self.dataChanged.emit(value)

    @property
    def is_selected(self) -> bool:
        """Tell if the row is selected."""
        return self._is_selected

    @is_selected.setter
    def is_selected(self, value: bool) -> None:
        value = bool(value)
        if self._is_selected != value:
            self._is_selected = value
            self.selectedChanged.emit(value)

    @property
    def is_current(self) -> bool:
        """Tell if the row is the current row of its collection."""
        return self._is_current

    def _set_current(self, value: bool) -> None:
        # Reserved to the collection, which keeps a single current row.
        if self._is_current != value:
            self._is_current = value
            self.currentChanged.emit(value)
