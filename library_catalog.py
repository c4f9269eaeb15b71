#!/usr/bin/env python3
"""
library_catalog.py

In-memory library catalog: books, lending state, due dates and overdue fines.
"""

from __future__ import annotations
import argparse
import dataclasses
import datetime
import itertools
import logging
import math
from typing import Callable, Dict, List, Optional

import pandas as pd

# Configuration
DEFAULT_LOAN_DAYS = 14
DEFAULT_FINE_RATE = 0.50
SECONDS_PER_DAY = 24 * 60 * 60

BOOK_COLUMNS = ["id", "title", "author", "genre", "isbn", "is_available",
                "borrowed_by", "borrowed_at", "due_date", "created_at"]
REQUIRED_FIELDS = ["title", "author", "genre", "isbn"]

# Logging
logger = logging.getLogger("LibraryCatalog")


class LibraryCatalogError(Exception):
    """Base class for errors raised by the catalog."""


class ValidationError(LibraryCatalogError, ValueError):
    """Raised when a book is created with missing or empty required fields."""

    def __init__(self, fields: List[str]):
        self.fields = list(fields)
        super().__init__("Missing required book field(s): " + ", ".join(self.fields))


@dataclasses.dataclass(frozen=True)
class Book:
    """Read-only snapshot of one catalog record."""
    id: int
    title: str
    author: str
    genre: str
    isbn: str
    is_available: bool = True
    borrowed_by: Optional[str] = None
    borrowed_at: Optional[datetime.datetime] = None
    due_date: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None

    def to_dict(self) -> Dict:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True)
class OverdueEntry(Book):
    """A borrowed book past its due date, with the fine owed so far."""
    fine: float = 0.0


@dataclasses.dataclass(frozen=True)
class LendingResult:
    success: bool
    message: str
    book: Optional[Book] = None
    due_date: Optional[datetime.datetime] = None


@dataclasses.dataclass(frozen=True)
class ReturnResult:
    success: bool
    message: str
    fine: float = 0.0
    book: Optional[Book] = None


@dataclasses.dataclass(frozen=True)
class Report:
    total_books: int
    borrowed_books: int
    available_books: int
    overdue_books: int
    total_fines: float

    def to_dict(self) -> Dict:
        return dataclasses.asdict(self)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _is_blank(value) -> bool:
    return value is None or str(value).strip() == ""


def _optional(value):
    """Map pandas missing markers (None, NaN, NaT) to None."""
    return None if pd.isna(value) else value


def _as_datetime(value) -> Optional[datetime.datetime]:
    value = _optional(value)
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


class LibraryCatalog:
    """
    LibraryCatalog keeps book records and their lending state in memory.

    Books live in a pandas DataFrame (`books_df`), one row per book in insertion
    order. The borrowed-index is derived from that frame (rows whose
    `is_available` flag is False) and rebuilt whenever it is read or the frame
    changes, so it always agrees with the books themselves. Every query returns
    frozen `Book` snapshots; state only changes through add/borrow/return/remove.
    """

    def __init__(self,
                 loan_days: int = DEFAULT_LOAN_DAYS,
                 fine_rate: float = DEFAULT_FINE_RATE,
                 clock: Optional[Callable[[], datetime.datetime]] = None):
        """
        Initialize an empty catalog.

        Args:
            loan_days: default number of days for a loan when borrowing.
            fine_rate: default fine charged per overdue day.
            clock: zero-argument callable returning the current aware datetime.
        """
        self.loan_days = int(loan_days)
        self.fine_rate = float(fine_rate)
        self._clock = clock or utc_now
        self._ids = itertools.count(1)

        self.books_df = pd.DataFrame({col: pd.Series(dtype="object") for col in BOOK_COLUMNS})
        self._borrowed_index: Dict[int, Book] = {}

    # -------------- Internal helpers ----------------
    def _now(self) -> datetime.datetime:
        return self._clock()

    def _mask(self, book_id) -> pd.Series:
        return self.books_df["id"] == book_id

    def _frame_to_books(self, df: pd.DataFrame) -> List[Book]:
        return [self._record_to_book(rec) for rec in df.to_dict(orient="records")]

    @staticmethod
    def _record_to_book(rec: Dict) -> Book:
        return Book(
            id=int(rec["id"]),
            title=rec["title"],
            author=rec["author"],
            genre=rec["genre"],
            isbn=rec["isbn"],
            is_available=bool(rec["is_available"]),
            borrowed_by=_optional(rec["borrowed_by"]),
            borrowed_at=_as_datetime(rec["borrowed_at"]),
            due_date=_as_datetime(rec["due_date"]),
            created_at=_as_datetime(rec["created_at"]),
        )

    def _recompute_borrowed_index(self) -> Dict[int, Book]:
        """
        Rebuild the mapping of book id -> Book for books currently lent out.

        Derived from `books_df` only, so removed books drop out automatically.
        """
        if self.books_df.empty:
            self._borrowed_index = {}
            return self._borrowed_index
        borrowed = self.books_df.loc[~self.books_df["is_available"].astype(bool)]
        self._borrowed_index = {book.id: book for book in self._frame_to_books(borrowed)}
        return self._borrowed_index

    # ---------------- Core operations ----------------
    def create_book(self, title: str, author: str, genre: str, isbn: str) -> Book:
        """
        Build a new, available Book without adding it to the catalog.

        Raises ValidationError if any of title/author/genre/isbn is missing or empty.
        """
        values = {"title": title, "author": author, "genre": genre, "isbn": isbn}
        missing = [name for name in REQUIRED_FIELDS if values[name] is None or values[name] == ""]
        if missing:
            raise ValidationError(missing)
        return Book(id=next(self._ids), title=title, author=author, genre=genre, isbn=isbn,
                    is_available=True, created_at=self._now())

    def add_book(self, title: str, author: str, genre: str, isbn: str) -> Book:
        """
        Create a book and append it to the catalog.

        Returns the added Book. ValidationError from create_book propagates.
        """
        book = self.create_book(title, author, genre, isbn)
        new_row = pd.DataFrame([book.to_dict()], columns=BOOK_COLUMNS, dtype="object")
        if self.books_df.empty:
            self.books_df = new_row
        else:
            self.books_df = pd.concat([self.books_df, new_row], ignore_index=True)
        logger.info("Added book '%s' (ID: %s)", book.title, book.id)
        return book

    def remove_book(self, book_id: int) -> Optional[Book]:
        """
        Remove a book from the catalog, whatever its lending state.

        Returns the removed Book, or None if no book has that id.
        """
        book = self.get_book(book_id)
        if book is None:
            logger.warning("No book found with ID: %s", book_id)
            return None
        if not book.is_available:
            logger.warning("Removing book %s while it is borrowed by %s", book_id, book.borrowed_by)
        self.books_df = self.books_df.loc[~self._mask(book_id)].reset_index(drop=True)
        self._recompute_borrowed_index()
        logger.info("Removed book '%s' (ID: %s)", book.title, book_id)
        return book

    def borrow_book(self, book_id: int, borrower_name: str, days: Optional[int] = None) -> LendingResult:
        """
        Lend a book to a borrower for `days` calendar days (catalog default if None).

        Returns a LendingResult; failures leave the book untouched.
        """
        book = self.get_book(book_id)
        if book is None:
            return LendingResult(False, f"Book with ID {book_id} does not exist.")
        if not book.is_available:
            return LendingResult(
                False, f"Book '{book.title}' is unavailable, currently held by {book.borrowed_by}.")
        if _is_blank(borrower_name):
            return LendingResult(False, "Borrower name is required.")

        ld = int(days) if (days is not None) else self.loan_days
        borrowed_at = self._now()
        due_date = borrowed_at + datetime.timedelta(days=ld)

        mask = self._mask(book_id)
        self.books_df.loc[mask, "is_available"] = False
        self.books_df.loc[mask, "borrowed_by"] = borrower_name
        self.books_df.loc[mask, "borrowed_at"] = borrowed_at
        self.books_df.loc[mask, "due_date"] = due_date
        self._recompute_borrowed_index()

        logger.info("Borrowed '%s' to %s until %s", book.title, borrower_name, due_date.date().isoformat())
        return LendingResult(True, "Book borrowed successfully.", self.get_book(book_id), due_date)

    def return_book(self, book_id: int) -> ReturnResult:
        """
        Take back a borrowed book, charging a fine if it is past due.

        Returns a ReturnResult whose fine is rounded to 2 decimals.
        """
        book = self.get_book(book_id)
        if book is None or book.is_available:
            return ReturnResult(False, f"Book with ID {book_id} is not currently borrowed.")

        fine = 0.0
        if book.due_date < self._now():
            fine = self.calculate_fine(book.due_date)
            logger.info("Late return of '%s': fine %.2f", book.title, fine)

        mask = self._mask(book_id)
        self.books_df.loc[mask, "is_available"] = True
        for col in ("borrowed_by", "borrowed_at", "due_date"):
            self.books_df.loc[mask, col] = None
        self._recompute_borrowed_index()

        logger.info("Book '%s' returned by %s", book.title, book.borrowed_by)
        return ReturnResult(True, "Book returned successfully.", round(fine, 2), self.get_book(book_id))

    def calculate_fine(self, due_date: datetime.datetime, fine_rate: Optional[float] = None) -> float:
        """
        Fine for a loan due at `due_date`, as of now.

        Every started overdue day is charged in full (ceiling of elapsed days).
        """
        rate = self.fine_rate if fine_rate is None else float(fine_rate)
        overdue_seconds = (self._now() - due_date).total_seconds()
        if overdue_seconds <= 0:
            return 0.0
        overdue_days = math.ceil(overdue_seconds / SECONDS_PER_DAY)
        return overdue_days * rate

    # ---------------- Reports / Queries ----------------
    def get_book(self, book_id: int) -> Optional[Book]:
        """
        Retrieve a single book by id.

        Returns a Book snapshot or None if not found.
        """
        row = self.books_df.loc[self._mask(book_id)]
        if row.empty:
            return None
        return self._record_to_book(row.iloc[0].to_dict())

    def list_books(self) -> List[Book]:
        return self._frame_to_books(self.books_df)

    def borrowed_books(self) -> List[Book]:
        return list(self._recompute_borrowed_index().values())

    def search_books(self, criteria: str) -> List[Book]:
        """
        Case-insensitive substring search over title, author and genre.

        Blank criteria match every book. Results keep catalog order.
        """
        if criteria is None or criteria.strip() == "":
            results = self.list_books()
        else:
            mask = pd.Series(False, index=self.books_df.index)
            for col in ("title", "author", "genre"):
                mask |= self.books_df[col].astype(str).str.contains(criteria, case=False, regex=False, na=False)
            results = self._frame_to_books(self.books_df.loc[mask])
        logger.debug("Found %d result(s) for '%s'", len(results), criteria)
        return results

    def get_books_by_genre(self, genre: str) -> List[Book]:
        """Return books whose genre equals `genre`, ignoring case."""
        g = (genre or "").lower()
        mask = self.books_df["genre"].astype(str).str.lower() == g
        results = self._frame_to_books(self.books_df.loc[mask])
        logger.debug("Found %d book(s) in genre '%s'", len(results), genre)
        return results

    def get_overdue_books(self, fine_rate: Optional[float] = None) -> List[OverdueEntry]:
        """
        List borrowed books whose due date has passed, with the fine owed on each.

        Fines use `fine_rate` (catalog default if None) and are rounded to 2 decimals.
        """
        now = self._now()
        overdue = []
        for book in self._recompute_borrowed_index().values():
            if book.due_date < now:
                fine = self.calculate_fine(book.due_date, fine_rate)
                overdue.append(OverdueEntry(**book.to_dict(), fine=round(fine, 2)))
        logger.debug("Found %d overdue book(s)", len(overdue))
        return overdue

    def generate_report(self) -> Report:
        """Summarize inventory, lending and outstanding fines."""
        total = len(self.books_df)
        borrowed = len(self._recompute_borrowed_index())
        overdue = self.get_overdue_books()
        return Report(
            total_books=total,
            borrowed_books=borrowed,
            available_books=total - borrowed,
            overdue_books=len(overdue),
            total_fines=round(sum((entry.fine for entry in overdue), 0.0), 2),
        )

    def export_report_books(self) -> pd.DataFrame:
        """
        Produce a DataFrame suitable for reporting the books inventory.

        The returned DataFrame contains human-friendly Availability values.
        """
        out = self.books_df.copy()
        out["Availability"] = out["is_available"].map({True: "Available", False: "Borrowed"})
        return out[["id", "title", "author", "genre", "isbn", "Availability", "borrowed_by", "due_date"]]


# ---------------- Demo ----------------
def _print_books(label: str, books: List[Book]) -> None:
    print(f"\n{label} ({len(books)}):")
    for b in books:
        status = "Available" if b.is_available else f"Borrowed by {b.borrowed_by}"
        print(f"{b.id}: {b.title} | {b.author} | {b.genre} | {status}")


def demo_run() -> Report:
    """
    Replay a short scripted session against a fresh catalog and print the results.

    The whole session runs at one frozen instant. Returns the final report.
    """
    now = utc_now()
    lib = LibraryCatalog(clock=lambda: now)
    book1 = lib.add_book("Cien años de soledad", "Gabriel García Márquez", "Realismo Mágico", "978-0307474278")
    book2 = lib.add_book("1984", "George Orwell", "Distopía", "978-0451524935")
    book3 = lib.add_book("El señor de los anillos", "J.R.R. Tolkien", "Fantasía", "978-0618053267")

    result = lib.borrow_book(book1.id, "Juan Pérez", 7)
    print(result.message)
    if result.success:
        # simulate a late return: due five days ago
        lib.books_df.loc[lib.books_df["id"] == book1.id, "due_date"] = now - datetime.timedelta(days=5)

    print(lib.borrow_book(book3.id, "María López", 21).message)

    _print_books("Search results for 'señor'", lib.search_books("señor"))
    _print_books("Fantasy books", lib.get_books_by_genre("Fantasía"))

    overdue = lib.get_overdue_books()
    print(f"\nOverdue books ({len(overdue)}):")
    for entry in overdue:
        print(f"{entry.id}: {entry.title} | {entry.borrowed_by} | fine ${entry.fine:.2f}")

    returned = lib.return_book(book1.id)
    print(f"\n{returned.message} Fine: ${returned.fine:.2f}")
    print("Report:", lib.generate_report().to_dict())

    lib.remove_book(book2.id)
    report = lib.generate_report()
    print("Report:", report.to_dict())
    print("\nInventory:")
    print(lib.export_report_books().to_string(index=False))
    return report


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="In-memory library catalog demo")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="logging level (default: INFO)")
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")
    demo_run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
