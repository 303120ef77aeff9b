"""An in-memory account database for executing a block."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .keccak import KECCAK_EMPTY

__all__ = [
    "DbError",
    "AccountNotLoadedError",
    "AccountState",
    "AccountInfo",
    "StorageSlot",
    "Account",
    "DbAccount",
    "MemDb",
]

_U64_MAX = (1 << 64) - 1
_ZERO_HASH = bytes(32)


class DbError(Exception):
    """A lookup asked for data that the database does not hold."""


class AccountNotLoadedError(DbError):
    """An account was accessed that was not loaded into the database."""

    def __init__(self, address: bytes) -> None:
        self.address = address
        super().__init__(f"account 0x{bytes(address).hex()} not loaded")


class AccountState(enum.Enum):
    """What execution did to an account."""

    DELETED = "deleted"
    """The account can be removed from the state."""
    TOUCHED = "touched"
    """Execution touched the account."""
    STORAGE_CLEARED = "storage_cleared"
    """Execution cleared the account's storage, mostly by self-destruction."""
    NONE = "none"
    """Execution did not interact with the account."""


@dataclass(frozen=True)
class AccountInfo:
    """Balance, nonce and code of an account."""

    balance: int = 0
    nonce: int = 0
    code_hash: bytes = KECCAK_EMPTY
    code: Optional[bytes] = field(default=None, compare=False)

    def is_empty(self) -> bool:
        """Return whether the account has no balance, no nonce and no code."""
        return (
            self.code_hash in (KECCAK_EMPTY, _ZERO_HASH)
            and self.balance == 0
            and self.nonce == 0
        )


@dataclass(frozen=True)
class StorageSlot:
    """A storage value before and after execution."""

    original_value: int = 0
    present_value: int = 0

    def is_changed(self) -> bool:
        """Return whether execution changed the value."""
        return self.original_value != self.present_value


@dataclass
class Account:
    """An account as changed by execution."""

    info: AccountInfo = field(default_factory=AccountInfo)
    storage: dict[int, StorageSlot] = field(default_factory=dict)
    touched: bool = False
    selfdestructed: bool = False
    created: bool = False

    def is_empty(self) -> bool:
        """Return whether the account's info is empty."""
        return self.info.is_empty()

    def mark_touch(self) -> None:
        """Mark the account as touched."""
        self.touched = True

    def mark_selfdestruct(self) -> None:
        """Mark the account as self-destructed."""
        self.selfdestructed = True

    def mark_created(self) -> None:
        """Mark the account as newly created."""
        self.created = True


@dataclass
class DbAccount:
    """An account held by the database."""

    info: AccountInfo = field(default_factory=AccountInfo)
    state: AccountState = AccountState.NONE
    storage: dict[int, int] = field(default_factory=dict)

    def existing_info(self) -> Optional[AccountInfo]:
        """Return the account info, or None if the account has been deleted."""
        if self.state is AccountState.DELETED:
            return None
        return self.info

    def _delete(self) -> None:
        self.storage.clear()
        self.state = AccountState.DELETED
        self.info = AccountInfo()


@dataclass
class MemDb:
    """Accounts and block hashes needed to execute a block."""

    accounts: dict[bytes, DbAccount] = field(default_factory=dict)
    block_hashes: dict[int, bytes] = field(default_factory=dict)

    def accounts_len(self) -> int:
        """Return the number of accounts held."""
        return len(self.accounts)

    def storage_keys(self) -> dict[bytes, list[int]]:
        """Return the storage slots held for each account."""
        return {address: list(account.storage) for address, account in self.accounts.items()}

    def insert_account_info(self, address: bytes, info: AccountInfo) -> None:
        """Add an account without touching its storage.

        Raises DbError if a different info is already held for the address.
        """
        existing = self.accounts.get(address)
        if existing is None:
            self.accounts[address] = DbAccount(info)
        elif existing.info != info:
            raise DbError(f"conflicting account info for 0x{bytes(address).hex()}")

    def insert_account_storage(self, address: bytes, index: int, data: int) -> None:
        """Set a storage value of a held account."""
        account = self.accounts.get(address)
        if account is None:
            raise AccountNotLoadedError(address)
        account.storage[index] = data

    def insert_block_hash(self, block_no: int, block_hash: bytes) -> None:
        """Add a block hash; raise DbError if a different one is already held."""
        existing = self.block_hashes.setdefault(block_no, block_hash)
        if existing != block_hash:
            raise DbError(f"conflicting hash for block {block_no}")

    def basic(self, address: bytes) -> Optional[AccountInfo]:
        """Return the info of an account, or None if it has been deleted."""
        account = self.accounts.get(address)
        if account is None:
            raise AccountNotLoadedError(address)
        return account.existing_info()

    def storage(self, address: bytes, index: int) -> int:
        """Return the storage value of an account at a slot."""
        account = self.accounts.get(address)
        if account is None:
            raise AccountNotLoadedError(address)
        if index in account.storage:
            return account.storage[index]
        if account.state is AccountState.DELETED:
            raise DbError(f"storage of deleted account 0x{bytes(address).hex()} accessed")
        if account.state is AccountState.STORAGE_CLEARED:
            return 0
        raise DbError(f"storage {index}@0x{bytes(address).hex()} not loaded")

    def block_hash(self, number: int) -> bytes:
        """Return the hash of a block."""
        if not 0 <= number <= _U64_MAX:
            raise DbError(f"invalid block number: expected <= {_U64_MAX}, got {number}")
        try:
            return self.block_hashes[number]
        except KeyError:
            raise DbError(f"block {number} not loaded") from None

    def commit(self, changes: Mapping[bytes, Account]) -> None:
        """Apply the account changes of an execution."""
        for address, new_account in changes.items():
            if not new_account.touched:
                continue

            if new_account.selfdestructed:
                destroyed = self.accounts.get(address)
                # created and destroyed in one go, or destroyed without being read
                if destroyed is not None:
                    destroyed._delete()
                continue

            db_account = self.accounts.get(address)
            if db_account is not None:
                # a touched account that is now empty is removed from the state
                if new_account.is_empty():
                    db_account._delete()
                    continue
                db_account.info = new_account.info
            else:
                if new_account.is_empty():
                    continue
                db_account = DbAccount(new_account.info)
                self.accounts[address] = db_account

            if new_account.created:
                db_account.storage.clear()
                db_account.state = AccountState.STORAGE_CLEARED
            elif db_account.state is not AccountState.STORAGE_CLEARED:
                db_account.state = AccountState.TOUCHED

            db_account.storage.update(
                (key, slot.present_value)
                for key, slot in new_account.storage.items()
                if slot.is_changed()
            )

    def is_optimistic(self) -> bool:
        """Return whether the database fills in missing data optimistically."""
        return False