from decimal import Decimal
from typing import List

import pytest
from attrs import define, field
from PyQt5.QtCore import QModelIndex, Qt

from exgrid.builder import ColumnBuilder
from exgrid_qt.row import QtRow
from exgrid_qt.rows import QtRowCollection


@define
class Item:
    name: str
    price: Decimal = field(default=Decimal(0), metadata={"format": ".2f"})

    def __str__(self) -> str:
        return self.name


@pytest.fixture
def items() -> List[Item]:
    return [
        Item("apple", Decimal("1.5")),
        Item("pear", Decimal("2.25")),
        Item("plum", Decimal("0.75")),
    ]


@pytest.fixture
def collection(items) -> QtRowCollection[Item]:
    return QtRowCollection(items, is_selectable=True)


def spy_on(signal) -> list:
    result: list = []
    signal.connect(lambda *args: result.append(args))
    return result


def spy_on_changes(collection: QtRowCollection) -> list:
    """Record the rows and roles reported by `dataChanged`."""
    result: list = []
    collection.dataChanged.connect(
        lambda tl, br, roles: result.append((tl.row(), br.row(), list(roles)))
    )
    return result


class TestConstruction:
    def test_empty(self):
        rows = QtRowCollection()
        assert rows.rows == []
        assert rows.rowCount() == 0
        assert rows.has_any_row is False
        assert rows.any_selected is False
        assert rows.current_row is None
        assert rows.is_selectable is False
        assert rows.empty_grid_message == ""

    def test_with_records(self, collection, items):
        assert collection.records == items
        assert collection.rowCount() == 3
        assert collection.has_any_row is True
        assert all(isinstance(r, QtRow) for r in collection.rows)
        assert [r.data for r in collection.rows] == items

    def test_rows_is_a_copy(self, collection):
        collection.rows.clear()
        assert collection.rowCount() == 3


class TestAddRows:
    def test_add_row(self):
        rows = QtRowCollection()
        has_any = spy_on(rows.hasAnyRowChanged)
        inserted = spy_on(rows.rowsInserted)

        row = rows.add_row(Item("kiwi"))
        assert row.data.name == "kiwi"
        assert rows.row_at(0) is row
        assert has_any == [(True,)]
        assert len(inserted) == 1
        assert inserted[0][1:] == (0, 0)

    def test_batch_is_one_insertion(self, collection, items):
        inserted = spy_on(collection.rowsInserted)
        new_rows = collection.add_rows([Item("a"), Item("b"), Item("c")])
        assert len(inserted) == 1
        assert inserted[0][1:] == (3, 5)
        assert [r.data.name for r in new_rows] == ["a", "b", "c"]
        assert collection.records[3:] == [r.data for r in new_rows]

    def test_batch_on_empty(self):
        rows = QtRowCollection()
        inserted = spy_on(rows.rowsInserted)
        rows.add_rows(Item(n) for n in "xyz")
        assert [i[1:] for i in inserted] == [(0, 2)]
        assert [str(r) for r in rows.records] == ["x", "y", "z"]

    def test_empty_batch_changes_nothing(self, collection):
        about = spy_on(collection.rowsAboutToBeInserted)
        inserted = spy_on(collection.rowsInserted)
        has_any = spy_on(collection.hasAnyRowChanged)
        assert collection.add_rows([]) == []
        assert about == []
        assert inserted == []
        assert has_any == []
        assert collection.rowCount() == 3


class TestRemoveRows:
    def test_remove_row(self, collection, items):
        removed = spy_on(collection.rowsRemoved)
        collection.remove_row(collection.row_at(1))
        assert collection.records == [items[0], items[2]]
        assert [r[1:] for r in removed] == [(1, 1)]

    def test_remove_foreign_row(self, collection):
        with pytest.raises(ValueError):
            collection.remove_row(QtRow(Item("alien")))

    def test_remove_current_row(self, collection):
        row = collection.row_at(0)
        collection.set_current_row(row)
        current = spy_on(collection.currentRowChanged)
        collection.remove_row(row)
        assert collection.current_row is None
        assert row.is_current is False
        assert current == [(None,)]

    def test_remove_last_row(self):
        rows = QtRowCollection([Item("a")])
        has_any = spy_on(rows.hasAnyRowChanged)
        rows.remove_row(rows.row_at(0))
        assert rows.has_any_row is False
        assert has_any == [(False,)]

    def test_removed_row_is_detached(self, collection):
        row = collection.row_at(0)
        collection.remove_row(row)
        changed = spy_on_changes(collection)
        row.is_selected = True
        assert changed == []
        assert collection.any_selected is False

    def test_remove_all(self, collection):
        removed = spy_on(collection.rowsRemoved)
        has_any = spy_on(collection.hasAnyRowChanged)
        collection.remove_all_rows()
        assert collection.rowCount() == 0
        assert collection.has_any_row is False
        assert [r[1:] for r in removed] == [(0, 2)]
        assert has_any == [(False,)]

    def test_remove_all_clears_current_first(self, collection):
        row = collection.row_at(2)
        collection.current_row = row
        events = []
        seen_current = []

        def on_about(*args):
            events.append("about")
            seen_current.append(collection.current_row)

        collection.currentRowChanged.connect(
            lambda r: events.append(("current", r))
        )
        collection.rowsAboutToBeRemoved.connect(on_about)
        collection.remove_all_rows()

        assert events == [("current", None), "about"]
        assert seen_current == [None]
        assert row.is_current is False

    def test_remove_all_on_empty(self):
        rows = QtRowCollection()
        removed = spy_on(rows.rowsRemoved)
        current = spy_on(rows.currentRowChanged)
        rows.remove_all_rows()
        assert removed == []
        assert current == []


class TestCurrentRow:
    def test_set(self, collection):
        spy = spy_on(collection.currentRowChanged)
        row = collection.row_at(1)
        collection.set_current_row(row)
        assert collection.current_row is row
        assert row.is_current is True
        assert spy == [(row,)]

    def test_single_current_row(self, collection):
        first, second = collection.row_at(0), collection.row_at(1)
        collection.current_row = first
        collection.current_row = second
        assert first.is_current is False
        assert second.is_current is True
        assert [r.is_current for r in collection.rows].count(True) == 1

    def test_same_row_is_not_reported(self, collection):
        row = collection.row_at(0)
        collection.current_row = row
        spy = spy_on(collection.currentRowChanged)
        collection.current_row = row
        assert spy == []

    def test_clear(self, collection):
        row = collection.row_at(0)
        collection.current_row = row
        collection.current_row = None
        assert collection.current_row is None
        assert row.is_current is False

    def test_foreign_row(self, collection):
        with pytest.raises(ValueError):
            collection.set_current_row(QtRow(Item("alien")))
        assert collection.current_row is None


class TestSelection:
    def test_any_selected_is_synchronous(self, collection):
        spy = spy_on(collection.anySelectedChanged)
        row = collection.row_at(0)

        row.is_selected = True
        assert collection.any_selected is True
        collection.row_at(1).is_selected = True
        assert collection.selected_rows == [row, collection.row_at(1)]

        collection.clear_selection()
        assert collection.any_selected is False
        assert collection.selected_rows == []
        assert spy == [(True,), (False,)]

    def test_selection_reported_as_data_change(self, collection):
        changed = spy_on_changes(collection)
        collection.row_at(2).is_selected = True
        assert len(changed) == 1
        assert changed == [(2, 2, [Qt.ItemDataRole.CheckStateRole])]

    def test_removing_selected_row(self, collection):
        row = collection.row_at(0)
        row.is_selected = True
        collection.remove_row(row)
        assert collection.any_selected is False

    def test_remove_all_recomputes_selection(self, collection):
        collection.row_at(0).is_selected = True
        collection.remove_all_rows()
        assert collection.any_selected is False


class TestObservableState:
    def test_is_selectable(self, collection):
        spy = spy_on(collection.isSelectableChanged)
        collection.is_selectable = True
        collection.is_selectable = False
        assert collection.is_selectable is False
        assert spy == [(False,)]

    def test_empty_grid_message(self, collection):
        spy = spy_on(collection.emptyGridMessageChanged)
        collection.empty_grid_message = "Nothing here"
        collection.empty_grid_message = "Nothing here"
        assert collection.empty_grid_message == "Nothing here"
        assert spy == [("Nothing here",)]

    def test_row_data_replaced(self, collection):
        changed = spy_on_changes(collection)
        collection.row_at(1).data = Item("quince")
        assert collection.records[1].name == "quince"
        assert changed == [(1, 1, [])]


class TestLifecycle:
    @pytest.mark.parametrize(
        "hook, signal",
        [
            ("on_row_selected", "rowSelected"),
            ("on_row_added", "rowAdded"),
            ("on_row_saved", "rowSaved"),
            ("on_row_deleted", "rowDeleted"),
        ],
    )
    def test_hooks(self, collection, hook, signal):
        spy = spy_on(getattr(collection, signal))
        row = collection.row_at(0)
        event = object()
        getattr(collection, hook)(row, event)
        getattr(collection, hook)(row)
        assert spy == [(row, event), (row, None)]


class TestModel:
    def test_display(self, collection):
        index = collection.index(1)
        assert collection.data(index) == "pear"
        assert collection.data(index, Qt.ItemDataRole.UserRole) is (
            collection.row_at(1)
        )

    def test_invalid_index(self, collection):
        assert collection.data(QModelIndex()) is None
        assert collection.rowCount(collection.index(0)) == 0

    def test_check_state(self, collection):
        index = collection.index(0)
        role = Qt.ItemDataRole.CheckStateRole
        assert collection.data(index, role) == Qt.CheckState.Unchecked

        assert collection.setData(index, Qt.CheckState.Checked, role)
        assert collection.row_at(0).is_selected is True
        assert collection.data(index, role) == Qt.CheckState.Checked

        assert collection.setData(index, Qt.CheckState.Unchecked, role)
        assert collection.row_at(0).is_selected is False

    def test_not_selectable(self, items):
        rows = QtRowCollection(items)
        index = rows.index(0)
        role = Qt.ItemDataRole.CheckStateRole
        assert rows.data(index, role) is None
        assert rows.setData(index, Qt.CheckState.Checked, role) is False
        assert rows.row_at(0).is_selected is False
        flags = rows.flags(index)
        assert int(flags & Qt.ItemFlag.ItemIsUserCheckable) == 0

    def test_flags(self, collection):
        flags = collection.flags(collection.index(0))
        assert int(flags & Qt.ItemFlag.ItemIsUserCheckable) != 0


def test_footer_over_records(collection):
    builder: ColumnBuilder[Item] = ColumnBuilder(Item)
    builder.add("name").footer(len)
    builder.add("price").footer(lambda rs: sum(r.price for r in rs))
    table = builder.build()

    assert table.render_row(collection.row_at(0).data) == ["apple", "1.50"]
    assert table.render_footer(collection.records) == ["3", "4.50"]

    collection.remove_row(collection.row_at(0))
    assert table.render_footer(collection.records) == ["2", "3.00"]
