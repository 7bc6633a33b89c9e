"""
Tests for the account ledger write side.

- Accounts are created ACTIVE in their workplace.
- Status toggles ACTIVE <-> INACTIVE; repeating a state is rejected.
- Name and description can be edited; type and currency cannot.
- Workplace isolation: foreign accounts look missing.
"""

from uuid import uuid4

import pytest

from ledger_kernel.exceptions import (
    AccountAlreadyActiveError,
    AccountAlreadyInactiveError,
    AccountNotFoundError,
    ErrorKind,
    InvalidCurrencyError,
    InvalidInputError,
    WorkplaceNotFoundError,
)
from ledger_kernel.models.account import AccountStatus, AccountType


class TestCreateAccount:

    def test_created_active(self, ledger, workplace, test_actor_id, deterministic_clock):
        account = ledger.create_account(
            workplace.id, "Cash", AccountType.ASSET, "usd", test_actor_id, description="Till"
        )
        assert account.workplace_id == workplace.id
        assert account.account_type is AccountType.ASSET
        assert account.currency_code == "USD"
        assert account.status is AccountStatus.ACTIVE
        assert account.is_active
        assert account.description == "Till"
        assert account.created_by_id == test_actor_id
        assert account.version == 1

    def test_type_given_as_string(self, ledger, workplace, test_actor_id):
        account = ledger.create_account(workplace.id, "Rent", "expense", "USD", test_actor_id)
        assert account.account_type is AccountType.EXPENSE

    def test_unknown_type(self, ledger, workplace, test_actor_id):
        with pytest.raises(InvalidInputError) as exc_info:
            ledger.create_account(workplace.id, "X", "contra", "USD", test_actor_id)
        assert exc_info.value.field == "account_type"

    def test_blank_name(self, ledger, workplace, test_actor_id):
        with pytest.raises(InvalidInputError):
            ledger.create_account(workplace.id, "   ", AccountType.ASSET, "USD", test_actor_id)

    def test_unknown_currency(self, ledger, workplace, test_actor_id):
        with pytest.raises(InvalidCurrencyError) as exc_info:
            ledger.create_account(workplace.id, "Cash", AccountType.ASSET, "XTS", test_actor_id)
        assert exc_info.value.kind is ErrorKind.VALIDATION

    def test_unknown_workplace(self, ledger, currencies, test_actor_id):
        with pytest.raises(WorkplaceNotFoundError):
            ledger.create_account(uuid4(), "Cash", AccountType.ASSET, "USD", test_actor_id)

    def test_logs_creation(self, ledger, workplace, test_actor_id, captured_logs):
        account = ledger.create_account(workplace.id, "Cash", AccountType.ASSET, "USD", test_actor_id)
        (event,) = [r for r in captured_logs() if r["message"] == "account_created"]
        assert event["account_id"] == str(account.id)
        assert event["workplace_id"] == str(workplace.id)
        assert event["actor_id"] == str(test_actor_id)


class TestGetAndList:

    def test_get(self, ledger, workplace, standard_accounts):
        cash = standard_accounts["cash"]
        loaded = ledger.get_account(workplace.id, cash.id)
        assert (loaded.id, loaded.name, loaded.account_type, loaded.currency_code) == (
            cash.id, cash.name, cash.account_type, cash.currency_code
        )
        assert loaded.version == cash.version

    def test_other_workplace_cannot_see_account(self, ledger, other_workplace, standard_accounts):
        with pytest.raises(AccountNotFoundError):
            ledger.get_account(other_workplace.id, standard_accounts["cash"].id)

    def test_list_ordered_by_type_then_name(self, ledger, workplace, standard_accounts):
        listed = ledger.list_accounts(workplace.id)
        assert len(listed) == len(standard_accounts)
        keys = [(a.account_type.value, a.name) for a in listed]
        assert keys == sorted(keys)

    def test_list_excluding_inactive(self, ledger, workplace, standard_accounts, test_actor_id):
        ledger.deactivate_account(workplace.id, standard_accounts["rent"].id, test_actor_id)
        active = ledger.list_accounts(workplace.id, include_inactive=False)
        assert standard_accounts["rent"].id not in {a.id for a in active}
        assert len(active) == len(standard_accounts) - 1

    def test_list_other_workplace_is_empty(self, ledger, other_workplace, standard_accounts):
        assert ledger.list_accounts(other_workplace.id) == []


class TestUpdateAccount:

    def test_rename(self, ledger, workplace, standard_accounts, test_actor_id, deterministic_clock):
        cash = standard_accounts["cash"]
        deterministic_clock.advance(60)

        updated = ledger.update_account(workplace.id, cash.id, test_actor_id, name="  Petty Cash ")
        assert updated.name == "Petty Cash"
        assert updated.version == cash.version + 1
        assert updated.updated_by_id == test_actor_id
        assert updated.updated_at > cash.updated_at
        assert ledger.get_account(workplace.id, cash.id).name == "Petty Cash"

    def test_description_only(self, ledger, workplace, standard_accounts, test_actor_id):
        cash = standard_accounts["cash"]
        updated = ledger.update_account(workplace.id, cash.id, test_actor_id, description="Front desk till")
        assert updated.description == "Front desk till"
        assert updated.name == cash.name

    def test_type_and_currency_unchanged(self, ledger, workplace, standard_accounts, test_actor_id):
        eur_bank = standard_accounts["eur_bank"]
        updated = ledger.update_account(workplace.id, eur_bank.id, test_actor_id, name="Euro Account")
        assert updated.account_type is AccountType.ASSET
        assert updated.currency_code == "EUR"
        assert updated.status is AccountStatus.ACTIVE

    def test_no_change_keeps_version(self, ledger, workplace, standard_accounts, test_actor_id):
        cash = standard_accounts["cash"]
        updated = ledger.update_account(workplace.id, cash.id, test_actor_id, name=cash.name)
        assert updated.version == cash.version
        assert updated.updated_by_id is None

    def test_blank_name(self, ledger, workplace, standard_accounts, test_actor_id):
        cash = standard_accounts["cash"]
        with pytest.raises(InvalidInputError) as exc_info:
            ledger.update_account(workplace.id, cash.id, test_actor_id, name="   ")
        assert exc_info.value.field == "name"
        assert ledger.get_account(workplace.id, cash.id).name == cash.name

    def test_inactive_account_can_be_renamed(self, ledger, workplace, standard_accounts, test_actor_id):
        cash = standard_accounts["cash"]
        ledger.deactivate_account(workplace.id, cash.id, test_actor_id)
        updated = ledger.update_account(workplace.id, cash.id, test_actor_id, name="Old Till")
        assert updated.name == "Old Till"
        assert updated.status is AccountStatus.INACTIVE

    def test_other_workplace(self, ledger, other_workplace, standard_accounts, test_actor_id):
        with pytest.raises(AccountNotFoundError):
            ledger.update_account(other_workplace.id, standard_accounts["cash"].id, test_actor_id, name="Mine")

    def test_update_logged(self, ledger, workplace, standard_accounts, test_actor_id, captured_logs):
        cash = standard_accounts["cash"]
        ledger.update_account(workplace.id, cash.id, test_actor_id, name="Till", description="Front")
        (event,) = [r for r in captured_logs() if r["message"] == "account_updated"]
        assert event["account_id"] == str(cash.id)
        assert event["fields"] == ["name", "description"]
        assert event["actor_id"] == str(test_actor_id)


class TestStatusLifecycle:

    def test_deactivate(self, ledger, workplace, standard_accounts, test_actor_id, deterministic_clock):
        cash = standard_accounts["cash"]
        deterministic_clock.advance(60)

        updated = ledger.deactivate_account(workplace.id, cash.id, test_actor_id)
        assert updated.status is AccountStatus.INACTIVE
        assert updated.version == cash.version + 1
        assert updated.updated_by_id == test_actor_id
        assert ledger.get_account(workplace.id, cash.id).status is AccountStatus.INACTIVE

    def test_deactivate_twice(self, ledger, workplace, standard_accounts, test_actor_id):
        cash = standard_accounts["cash"]
        ledger.deactivate_account(workplace.id, cash.id, test_actor_id)
        with pytest.raises(AccountAlreadyInactiveError) as exc_info:
            ledger.deactivate_account(workplace.id, cash.id, test_actor_id)
        assert exc_info.value.kind is ErrorKind.VALIDATION

    def test_reactivate(self, ledger, workplace, standard_accounts, test_actor_id):
        cash = standard_accounts["cash"]
        ledger.deactivate_account(workplace.id, cash.id, test_actor_id)
        updated = ledger.reactivate_account(workplace.id, cash.id, test_actor_id)
        assert updated.is_active
        assert updated.version == cash.version + 2

    def test_reactivate_active_account(self, ledger, workplace, standard_accounts, test_actor_id):
        with pytest.raises(AccountAlreadyActiveError):
            ledger.reactivate_account(workplace.id, standard_accounts["cash"].id, test_actor_id)

    def test_deactivate_in_other_workplace(self, ledger, other_workplace, standard_accounts, test_actor_id):
        with pytest.raises(AccountNotFoundError):
            ledger.deactivate_account(other_workplace.id, standard_accounts["cash"].id, test_actor_id)

    def test_status_change_logged(self, ledger, workplace, standard_accounts, test_actor_id, captured_logs):
        ledger.deactivate_account(workplace.id, standard_accounts["cash"].id, test_actor_id)
        (event,) = [r for r in captured_logs() if r["message"] == "account_status_changed"]
        assert event["from_status"] == "active"
        assert event["to_status"] == "inactive"
