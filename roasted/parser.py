"""
parser.py - Entry points: ledger text or files in, Ledger out

parse() and parse_file() tokenize the source, build statements and apply
them to a ledger. `include` directives are followed depth-first through a
reader callable (by default reading UTF-8 text from disk), so tests and
embedders can serve files from memory.

Both entry points are all-or-nothing: they work on a clone of the ledger
passed in and only return it once every statement applied.
"""

from __future__ import annotations
from pathlib import Path
from typing import Callable, List, Optional, Union

from .core import LedgerError, IncludeError, IncludeCycleError
from .grammar import Rule, Token, parse_ledger
from .statement import build_statement
from .ledger import Ledger


Reader = Callable[[Path], str]


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class _Loader:
    """Applies token streams to a ledger, following includes."""

    def __init__(self, ledger: Ledger, reader: Reader):
        self.ledger = ledger
        self.reader = reader
        self.include_stack: List[Path] = []

    def load_file(self, path: Path) -> None:
        path = path.resolve()
        if path in self.include_stack:
            raise IncludeCycleError(path, tuple(self.include_stack))
        try:
            text = self.reader(path)
        except OSError as e:
            raise IncludeError(path, e.strerror or str(e)) from e
        except UnicodeDecodeError as e:
            raise IncludeError(path, f"not UTF-8 text ({e.reason})") from e
        self.include_stack.append(path)
        try:
            self.load_text(text, path)
        finally:
            self.include_stack.pop()

    def load_text(self, text: str, path: Optional[Path] = None) -> None:
        source = str(path) if path is not None else None
        # Parse the whole file before applying anything from it.
        tokens = parse_ledger(text, source)
        for token in tokens:
            try:
                self.apply(token, path)
            except LedgerError as e:
                first_line = token.text.split("\n", 1)[0]
                e.add_note(f"in {source or '<string>'}, line {token.position.line}: {first_line}")
                raise

    def apply(self, token: Token, path: Optional[Path]) -> None:
        if token.rule is Rule.INCLUDE:
            base = path.parent if path is not None else Path.cwd()
            target = base / token.child(0).value
            if self.ledger.verbose:
                print(f"📂 Include: {target}")
            self.load_file(target)
        elif token.rule is Rule.OPTION:
            key, value = token.children
            self.ledger.set_option(key.value, value.value)
        else:
            self.ledger.process_statement(build_statement(token))


def parse(
    text: str,
    ledger: Optional[Ledger] = None,
    *,
    source: Optional[Union[str, Path]] = None,
    reader: Optional[Reader] = None,
    verbose: bool = False,
) -> Ledger:
    """
    Parse ledger text.

    Args:
        text: Ledger source
        ledger: Existing ledger to extend; it is cloned and never modified
        source: Path the text was read from. Names the text in error
            messages and anchors relative `include` paths (the current
            directory otherwise)
        reader: Callable returning the text of an included file
        verbose: Print registry changes (only used when `ledger` is None)

    Returns:
        A new Ledger holding everything in `text` (and `ledger`, if given)

    Raises:
        LedgerError: On the first failing statement, with a note giving its
            location; nothing is applied to `ledger`

    Example:
        ledger = parse(dedent('''
        unit USD
        2021-10-25 open Assets:Bank:Jawir
        2021-10-25 open Expenses:Dining
        2021-10-28 * "Lunch"
            Expenses:Dining  199 USD
            Assets:Bank:Jawir
        '''))
    """
    working = Ledger(verbose=verbose) if ledger is None else ledger.clone()
    loader = _Loader(working, reader or read_text)
    if source is None:
        loader.load_text(text)
    else:
        path = Path(source).resolve()
        loader.include_stack.append(path)
        loader.load_text(text, path)
    return working


def parse_file(
    path: Union[str, Path],
    ledger: Optional[Ledger] = None,
    *,
    reader: Optional[Reader] = None,
    verbose: bool = False,
) -> Ledger:
    """
    Parse a ledger file and everything it includes.

    Same semantics as parse(); a file that cannot be read raises
    IncludeError chained to the underlying OSError.
    """
    working = Ledger(verbose=verbose) if ledger is None else ledger.clone()
    _Loader(working, reader or read_text).load_file(Path(path))
    return working
