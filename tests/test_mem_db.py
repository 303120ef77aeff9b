import pytest

from taikoproof.keccak import KECCAK_EMPTY
from taikoproof.mem_db import (
    Account,
    AccountInfo,
    AccountNotLoadedError,
    AccountState,
    DbAccount,
    DbError,
    MemDb,
    StorageSlot,
)

ADDR_A = b"\x11" * 20
ADDR_B = b"\x22" * 20


def _db_with(address=ADDR_A, info=None, state=AccountState.NONE, storage=None):
    db = MemDb()
    db.accounts[address] = DbAccount(info or AccountInfo(balance=5), state, dict(storage or {}))
    return db


def test_account_info_default_is_empty():
    info = AccountInfo()
    assert info.code_hash == KECCAK_EMPTY
    assert info.is_empty()
    assert not AccountInfo(balance=1).is_empty()
    assert not AccountInfo(nonce=1).is_empty()
    assert AccountInfo(code_hash=bytes(32)).is_empty()


def test_account_info_equality_ignores_code():
    assert AccountInfo(balance=3, code=b"\x60") == AccountInfo(balance=3, code=None)


def test_storage_slot_is_changed():
    assert StorageSlot(1, 2).is_changed()
    assert not StorageSlot(7, 7).is_changed()


def test_account_marks():
    account = Account()
    account.mark_touch()
    account.mark_selfdestruct()
    account.mark_created()
    assert (account.touched, account.selfdestructed, account.created) == (True, True, True)
    assert account.is_empty()


def test_existing_info_of_deleted_account_is_none():
    info = AccountInfo(balance=9)
    assert DbAccount(info).existing_info() == info
    assert DbAccount(info, AccountState.DELETED).existing_info() is None


def test_basic_missing_account_raises():
    with pytest.raises(AccountNotLoadedError):
        MemDb().basic(ADDR_A)


def test_basic_returns_info_and_none_when_deleted():
    db = _db_with()
    assert db.basic(ADDR_A) == AccountInfo(balance=5)
    db.accounts[ADDR_A].state = AccountState.DELETED
    assert db.basic(ADDR_A) is None


def test_storage_lookups():
    db = _db_with(storage={1: 42})
    assert db.storage(ADDR_A, 1) == 42
    with pytest.raises(DbError):
        db.storage(ADDR_A, 2)
    with pytest.raises(AccountNotLoadedError):
        db.storage(ADDR_B, 1)


def test_storage_of_cleared_account_is_zero():
    db = _db_with(state=AccountState.STORAGE_CLEARED)
    assert db.storage(ADDR_A, 99) == 0


def test_storage_of_deleted_account_raises():
    db = _db_with(state=AccountState.DELETED)
    with pytest.raises(DbError):
        db.storage(ADDR_A, 1)


def test_block_hash():
    db = MemDb()
    db.insert_block_hash(10, b"\xaa" * 32)
    assert db.block_hash(10) == b"\xaa" * 32
    with pytest.raises(DbError):
        db.block_hash(11)
    with pytest.raises(DbError):
        db.block_hash(1 << 64)


def test_insert_block_hash_conflict():
    db = MemDb()
    db.insert_block_hash(3, b"\x01" * 32)
    db.insert_block_hash(3, b"\x01" * 32)
    with pytest.raises(DbError):
        db.insert_block_hash(3, b"\x02" * 32)


def test_insert_account_info_keeps_storage_and_detects_conflict():
    db = _db_with(storage={1: 2})
    db.insert_account_info(ADDR_A, AccountInfo(balance=5))
    assert db.accounts[ADDR_A].storage == {1: 2}
    with pytest.raises(DbError):
        db.insert_account_info(ADDR_A, AccountInfo(balance=6))
    db.insert_account_info(ADDR_B, AccountInfo(nonce=1))
    assert db.accounts_len() == 2


def test_insert_account_storage():
    db = _db_with()
    db.insert_account_storage(ADDR_A, 4, 8)
    assert db.storage(ADDR_A, 4) == 8
    with pytest.raises(AccountNotLoadedError):
        db.insert_account_storage(ADDR_B, 4, 8)


def test_storage_keys():
    db = _db_with(storage={1: 2, 3: 4})
    assert sorted(db.storage_keys()[ADDR_A]) == [1, 3]


def test_commit_ignores_untouched():
    db = _db_with()
    db.commit({ADDR_A: Account(AccountInfo(balance=100))})
    assert db.accounts[ADDR_A].info == AccountInfo(balance=5)
    assert db.accounts[ADDR_A].state is AccountState.NONE


def test_commit_touched_updates_info_and_changed_slots():
    db = _db_with(storage={1: 10})
    change = Account(
        AccountInfo(balance=6),
        {1: StorageSlot(10, 11), 2: StorageSlot(0, 0)},
    )
    change.mark_touch()
    db.commit({ADDR_A: change})
    account = db.accounts[ADDR_A]
    assert account.info == AccountInfo(balance=6)
    assert account.state is AccountState.TOUCHED
    assert account.storage == {1: 11}


def test_commit_selfdestruct_deletes():
    db = _db_with(storage={1: 10})
    change = Account(AccountInfo(balance=6))
    change.mark_touch()
    change.mark_selfdestruct()
    db.commit({ADDR_A: change, ADDR_B: change})
    account = db.accounts[ADDR_A]
    assert account.state is AccountState.DELETED
    assert account.storage == {}
    assert account.info == AccountInfo()
    assert ADDR_B not in db.accounts


def test_commit_empty_account():
    db = _db_with(storage={1: 10})
    change = Account(AccountInfo())
    change.mark_touch()
    db.commit({ADDR_A: change, ADDR_B: change})
    assert db.accounts[ADDR_A].state is AccountState.DELETED
    assert ADDR_B not in db.accounts


def test_commit_created_clears_storage():
    db = _db_with(storage={1: 10})
    change = Account(AccountInfo(nonce=1), {5: StorageSlot(0, 7)})
    change.mark_touch()
    change.mark_created()
    db.commit({ADDR_A: change})
    account = db.accounts[ADDR_A]
    assert account.state is AccountState.STORAGE_CLEARED
    assert account.storage == {5: 7}


def test_commit_new_account_is_added():
    db = MemDb()
    change = Account(AccountInfo(balance=1), {2: StorageSlot(0, 3)})
    change.mark_touch()
    db.commit({ADDR_B: change})
    assert db.accounts[ADDR_B].state is AccountState.TOUCHED
    assert db.storage(ADDR_B, 2) == 3


def test_commit_keeps_storage_cleared_state():
    db = _db_with(state=AccountState.STORAGE_CLEARED, storage={1: 1})
    change = Account(AccountInfo(balance=9))
    change.mark_touch()
    db.commit({ADDR_A: change})
    assert db.accounts[ADDR_A].state is AccountState.STORAGE_CLEARED
    assert db.accounts[ADDR_A].storage == {1: 1}


def test_is_optimistic():
    assert MemDb().is_optimistic() is False