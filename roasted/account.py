"""
account.py - Account names and the account registry

Accounts are written `Kind:Segment:Segment...`, e.g. `Assets:Bank:Jawir`.
The AccountStore interns every path segment into one shared table, so an
account is referenced internally as a kind plus a tuple of segment indices
(TxnAccount). Each account path carries its open/close windows; an account
may be closed and reopened later, and is only usable at dates covered by one
of its windows.

Classes:
- ParsedAccount: account as written in the source (kind + segment strings)
- TxnAccount: resolved account (kind + segment indices)
- AccountActivities: one open/close window
- AccountStore: segment interner and window registry
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .core import (
    AccountKind, ACCOUNT_SEPARATOR,
    AccountError, InvalidAccount, UnknownSegment, UnresolvedAccount,
    AccountNotValidAtDate, CloseWithoutOpen, DuplicateClose,
)
from .grammar import Token


@dataclass(frozen=True, slots=True)
class ParsedAccount:
    """
    An account name as written in ledger source.

    Attributes:
        kind: One of the five account kinds
        segments: Path below the kind, e.g. ("Bank", "Jawir")
    """
    kind: AccountKind
    segments: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, 'segments', tuple(self.segments))
        if not self.segments:
            raise ValueError(f"{self.kind.value} account needs at least one segment")
        for segment in self.segments:
            if not segment or ACCOUNT_SEPARATOR in segment:
                raise ValueError(f"invalid account segment `{segment}'")

    def __str__(self) -> str:
        return ACCOUNT_SEPARATOR.join((self.kind.value, *self.segments))

    @classmethod
    def from_str(cls, text: str) -> ParsedAccount:
        """
        Parse `Kind:Segment:...`.

        Raises:
            InvalidAccount: If the kind is unknown or a segment is missing
        """
        kind, sep, path = text.partition(ACCOUNT_SEPARATOR)
        try:
            account_kind = AccountKind(kind)
        except ValueError:
            raise InvalidAccount(text) from None
        segments = path.split(ACCOUNT_SEPARATOR)
        if not sep or not all(segments):
            raise InvalidAccount(text)
        return cls(account_kind, tuple(segments))

    @classmethod
    def parse(cls, token: Token) -> ParsedAccount:
        return cls.from_str(token.text)


@dataclass(frozen=True, slots=True)
class TxnAccount:
    """
    A resolved account reference: kind plus indices into AccountStore.segments.

    Only meaningful together with the store that produced it.
    """
    kind: AccountKind
    indices: Tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, 'indices', tuple(self.indices))


@dataclass(frozen=True, slots=True)
class AccountActivities:
    """
    One validity window of an account.

    The account is usable at date d when opened_at <= d and, if the window
    is closed, d < closed_at.
    """
    opened_at: date
    closed_at: Optional[date] = None

    def __post_init__(self):
        if self.closed_at is not None and self.closed_at < self.opened_at:
            raise ValueError(
                f"window closes ({self.closed_at}) before it opens ({self.opened_at})"
            )

    def valid_at(self, at: date) -> bool:
        if self.opened_at > at:
            return False
        return self.closed_at is None or self.closed_at > at


class AccountStore:
    """
    Registry of account segments and open/close windows.

    Segment indices are assigned on first `open` and never change; the same
    segment string gets the same index under every account kind. Lookups
    (`resolve`, `close`) never intern new segments.

    Example:
        store = AccountStore()
        bank = ParsedAccount.from_str("Assets:Bank:Jawir")
        store.open(bank, date(2021, 10, 25))
        store.resolve(bank, date(2021, 11, 1))
        # TxnAccount(kind=AccountKind.ASSETS, indices=(0, 1))
    """

    def __init__(self):
        self.segments: List[str] = []
        self._segment_ids: Dict[str, int] = {}
        self._windows: Dict[AccountKind, Dict[Tuple[int, ...], List[AccountActivities]]] = {
            kind: {} for kind in AccountKind
        }

    def __len__(self) -> int:
        """Number of distinct account paths ever opened."""
        return sum(len(paths) for paths in self._windows.values())

    # ========================================================================
    # SEGMENT INTERNING
    # ========================================================================

    def _intern(self, segments: Sequence[str]) -> Tuple[int, ...]:
        indices = []
        for segment in segments:
            index = self._segment_ids.get(segment)
            if index is None:
                index = len(self.segments)
                self.segments.append(segment)
                self._segment_ids[segment] = index
            indices.append(index)
        return tuple(indices)

    def _lookup(self, account: ParsedAccount, at: date) -> Tuple[int, ...]:
        indices = []
        for segment in account.segments:
            index = self._segment_ids.get(segment)
            if index is None:
                raise UnknownSegment(account, at, segment)
            indices.append(index)
        return tuple(indices)

    def _lookup_windows(self, account: ParsedAccount) -> Optional[List[AccountActivities]]:
        indices = []
        for segment in account.segments:
            index = self._segment_ids.get(segment)
            if index is None:
                return None
            indices.append(index)
        return self._windows[account.kind].get(tuple(indices))

    # ========================================================================
    # OPEN / CLOSE (Mutating)
    # ========================================================================

    def open(self, account: ParsedAccount, opened_at: date) -> TxnAccount:
        """
        Open an account at a date.

        If the account's latest window is still open it is replaced by one
        starting at `opened_at`; otherwise (never opened, or closed) a new
        window is appended.

        Returns:
            The resolved account
        """
        indices = self._intern(account.segments)
        windows = self._windows[account.kind].setdefault(indices, [])
        window = AccountActivities(opened_at)
        if windows and windows[-1].closed_at is None:
            windows[-1] = window
        else:
            windows.append(window)
        return TxnAccount(account.kind, indices)

    def close(self, account: ParsedAccount, closed_at: date) -> TxnAccount:
        """
        Close the account's current window at a date.

        Raises:
            CloseWithoutOpen: If the account was never opened
            DuplicateClose: If the latest window is already closed
            AccountNotValidAtDate: If `closed_at` precedes the window's open date
        """
        windows = self._lookup_windows(account)
        if not windows:
            raise CloseWithoutOpen(account, closed_at)
        current = windows[-1]
        if current.closed_at is not None:
            raise DuplicateClose(account, closed_at, current.closed_at)
        if closed_at < current.opened_at:
            raise AccountNotValidAtDate(
                account, closed_at, f"opened at {current.opened_at.isoformat()}"
            )
        windows[-1] = replace(current, closed_at=closed_at)
        return TxnAccount(account.kind, self._lookup(account, closed_at))

    # ========================================================================
    # RESOLUTION (read-only)
    # ========================================================================

    def resolve(self, account: ParsedAccount, at: date) -> TxnAccount:
        """
        Resolve an account for use at a date.

        Raises:
            UnknownSegment: If a segment was never introduced by `open`
            UnresolvedAccount: If the path itself was never opened
            AccountNotValidAtDate: If no window of the account covers `at`
        """
        indices = self._lookup(account, at)
        windows = self._windows[account.kind].get(indices)
        if not windows:
            raise UnresolvedAccount(account, at)
        if not any(window.valid_at(at) for window in windows):
            raise AccountNotValidAtDate(account, at)
        return TxnAccount(account.kind, indices)

    def unresolve(self, account: TxnAccount) -> ParsedAccount:
        """
        Map a resolved account back to its segment strings, regardless of its windows.

        Raises:
            AccountError: If an index is not in the segment table
        """
        segments = []
        for index in account.indices:
            if not 0 <= index < len(self.segments):
                raise AccountError(f"undefined account segment index {index}")
            segments.append(self.segments[index])
        return ParsedAccount(account.kind, tuple(segments))

    def name(self, account: TxnAccount) -> str:
        return str(self.unresolve(account))

    def windows(self, account: ParsedAccount) -> Tuple[AccountActivities, ...]:
        """Return the account's windows in opening order (empty if never opened)."""
        return tuple(self._lookup_windows(account) or ())

    def is_open(self, account: ParsedAccount, at: date) -> bool:
        return any(window.valid_at(at) for window in self.windows(account))

    def accounts(self, kind: Optional[AccountKind] = None) -> Iterator[ParsedAccount]:
        """Iterate every account path ever opened, optionally restricted to one kind."""
        kinds = [kind] if kind is not None else list(AccountKind)
        for account_kind in kinds:
            for indices in self._windows[account_kind]:
                yield self.unresolve(TxnAccount(account_kind, indices))

    def clone(self) -> AccountStore:
        cloned = AccountStore()
        cloned.segments = list(self.segments)
        cloned._segment_ids = dict(self._segment_ids)
        cloned._windows = {
            kind: {indices: list(windows) for indices, windows in paths.items()}
            for kind, paths in self._windows.items()
        }
        return cloned

    def __repr__(self) -> str:
        return f"AccountStore({len(self)} accounts, {len(self.segments)} segments)"
