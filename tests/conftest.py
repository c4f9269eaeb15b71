import sys
import pathlib
import datetime

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parent.parent))
from library_catalog import LibraryCatalog

START = datetime.datetime(2024, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


class FakeClock:
    """Settable clock passed to LibraryCatalog in place of the wall clock."""

    def __init__(self, now: datetime.datetime = START):
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + datetime.timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lib(clock):
    return LibraryCatalog(clock=clock)


@pytest.fixture
def three_books(lib):
    a = lib.add_book("Cien años de soledad", "Gabriel García Márquez", "Realismo Mágico", "978-0307474278")
    b = lib.add_book("1984", "George Orwell", "Distopía", "978-0451524935")
    c = lib.add_book("El señor de los anillos", "J.R.R. Tolkien", "Fantasía", "978-0618053267")
    return a, b, c


@pytest.fixture
def set_due_date(lib):
    """Overwrite a book's due date in place, bypassing the catalog operations."""
    def _set(book_id, due_date):
        lib.books_df.loc[lib.books_df["id"] == book_id, "due_date"] = due_date
    return _set
