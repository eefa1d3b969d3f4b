"""
test_includes.py - Multi-file ledgers

Scenarios:
- A main file including account, price and monthly journal files
- Relative paths resolved against the including file
- Missing files, include cycles and error notes
- In-memory readers
"""

import pytest
from datetime import date
from decimal import Decimal
from pathlib import Path
from textwrap import dedent

from roasted import (
    parse, parse_file, ParsedAccount, BalanceCheck,
    IncludeError, IncludeCycleError, AccountNotValidAtDate, LedgerError,
)


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(text), encoding="utf-8")
    return path


@pytest.fixture
def books(tmp_path):
    """main.ledger -> accounts.ledger, prices.ledger, journal/2021-10.ledger"""
    write(tmp_path / "accounts.ledger", '''\
        unit USD
        unit EUR
        2021-10-01 open Assets:Bank:Jawir
        2021-10-01 open Expenses:Dining
        2021-10-01 open Equity:Opening
    ''')
    write(tmp_path / "prices.ledger", '''\
        2021-10-01 price EUR 1.1 USD
        2021-10-15 price EUR 1.2 USD
    ''')
    write(tmp_path / "journal" / "2021-10.ledger", '''\
        2021-10-28 * "Warung" "Lunch"
            Expenses:Dining        199 USD
            Assets:Bank:Jawir

        2021-10-29 * "Cafe"
            Assets:Bank:Jawir     -12 USD
            Expenses:Dining        10 EUR @ 1.2 USD
    ''')
    return write(tmp_path / "main.ledger", '''\
        option "title" "Household"
        include "accounts.ledger"
        include "prices.ledger"

        2021-10-01 pad Assets:Bank:Jawir Equity:Opening

        include "journal/2021-10.ledger"
    ''')


class TestIncludedBooks:
    """A realistic multi-file ledger."""

    def test_parse_file(self, books):
        ledger = parse_file(books)
        assert ledger.get_option("title") == "Household"
        assert ledger.currencies.codes == ["USD", "EUR"]
        assert len(ledger.get_at(date(2021, 10, 1)).pads) == 1
        assert [txn.title for _, txn in ledger.transactions()] == ["Lunch", "Cafe"]
        assert ledger.errors(BalanceCheck.WITH_SUM) == []

    def test_prices_from_included_file(self, books):
        ledger = parse_file(str(books))
        assert ledger.get_price("EUR", "USD", date(2021, 10, 14)) == Decimal("1.1")
        assert ledger.get_price("EUR", "USD", date(2021, 10, 31)) == Decimal("1.2")

    def test_parse_with_source_resolves_relative_includes(self, books):
        ledger = parse(books.read_text(encoding="utf-8"), source=books)
        assert len(list(ledger.transactions())) == 2

    def test_include_without_source_uses_cwd(self, books, monkeypatch):
        monkeypatch.chdir(books.parent)
        ledger = parse('include "accounts.ledger"\n')
        assert ledger.accounts.is_open(ParsedAccount.from_str("Equity:Opening"), date(2021, 10, 2))

    def test_same_file_included_twice_is_not_a_cycle(self, tmp_path):
        write(tmp_path / "units.ledger", "unit USD\n")
        main = write(tmp_path / "main.ledger", 'include "units.ledger"\ninclude "units.ledger"\n')
        assert parse_file(main).currencies.codes == ["USD"]

    def test_verbose_include(self, books, capsys):
        parse_file(books, verbose=True)
        out = capsys.readouterr().out
        assert "accounts.ledger" in out
        assert "Opened: Assets:Bank:Jawir" in out


class TestIncludeErrors:
    """Failures while following includes."""

    def test_missing_main_file(self, tmp_path):
        with pytest.raises(IncludeError) as exc_info:
            parse_file(tmp_path / "nope.ledger")
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_missing_included_file(self, tmp_path):
        main = write(tmp_path / "main.ledger", 'unit USD\ninclude "gone.ledger"\n')
        with pytest.raises(IncludeError, match="gone.ledger"):
            parse_file(main)

    def test_direct_cycle(self, tmp_path):
        main = write(tmp_path / "main.ledger", 'include "main.ledger"\n')
        with pytest.raises(IncludeCycleError):
            parse_file(main)

    def test_indirect_cycle(self, tmp_path):
        write(tmp_path / "a.ledger", 'include "b.ledger"\n')
        write(tmp_path / "b.ledger", 'include "sub/c.ledger"\n')
        write(tmp_path / "sub" / "c.ledger", 'include "../a.ledger"\n')
        with pytest.raises(IncludeCycleError) as exc_info:
            parse_file(tmp_path / "a.ledger")
        names = [p.name for p in exc_info.value.chain]
        assert names == ["a.ledger", "b.ledger", "c.ledger"]
        assert "a.ledger -> " in str(exc_info.value)

    def test_cycle_through_parse_source(self, tmp_path):
        main = write(tmp_path / "main.ledger", 'include "main.ledger"\n')
        with pytest.raises(IncludeCycleError):
            parse(main.read_text(encoding="utf-8"), source=main)

    def test_error_in_included_file_has_notes(self, tmp_path):
        write(tmp_path / "journal.ledger", '''\
            unit USD
            2021-10-01 open Assets:Bank
            2021-10-01 open Expenses:Dining

            2021-09-30 * "Too early"
                Expenses:Dining  1 USD
                Assets:Bank
        ''')
        main = write(tmp_path / "main.ledger", '; books\ninclude "journal.ledger"\n')
        with pytest.raises(AccountNotValidAtDate) as exc_info:
            parse_file(main)
        inner, outer = exc_info.value.__notes__
        assert "journal.ledger, line 5" in inner
        assert "main.ledger, line 2: include" in outer

    def test_not_utf8(self, tmp_path):
        (tmp_path / "bad.ledger").write_bytes(b"unit \xff\xfe\n")
        with pytest.raises(IncludeError, match="not UTF-8"):
            parse_file(tmp_path / "bad.ledger")

    def test_failed_include_leaves_ledger_untouched(self, tmp_path, lunch_ledger):
        main = write(tmp_path / "main.ledger", 'unit EUR\ninclude "gone.ledger"\n')
        with pytest.raises(LedgerError):
            parse_file(main, lunch_ledger)
        assert lunch_ledger.currencies.codes == ["USD"]


class TestMemoryReader:
    """Includes served by a custom reader."""

    def test_in_memory_books(self, memory_reader):
        reader = memory_reader({
            "/books/main.ledger": '''\
                include "units.ledger"
                include "/shared/accounts.ledger"
            ''',
            "/books/units.ledger": "unit USD\n",
            "/shared/accounts.ledger": "2021-01-01 open Assets:Cash\n",
        })
        ledger = parse_file("/books/main.ledger", reader=reader)
        assert ledger.currencies.codes == ["USD"]
        assert [p.name for p in reader.reads] == ["main.ledger", "units.ledger", "accounts.ledger"]

    def test_reader_error_becomes_include_error(self, memory_reader):
        with pytest.raises(IncludeError, match="No such file or directory"):
            parse('include "/books/missing.ledger"\n', reader=memory_reader({}))
