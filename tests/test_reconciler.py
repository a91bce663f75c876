import pytest

from outreach_desk.application import Reconciler
from outreach_desk.domain import ExternalSourceError

from conftest import FakeSource, row


@pytest.fixture
def reconciler(any_store):
    return Reconciler(any_store)


def test_new_keyed_row_is_created_with_message(reconciler, any_store):
    result = reconciler.reconcile([row("Ann", "Acne", "111", "k1")])

    assert result.created == 1
    [p] = any_store.get_all()
    assert p.external_key == "k1"
    assert p.status == "pending"
    assert p.message == "Hi Ann, we are here to help you with Acne."


def test_second_run_of_same_batch_changes_nothing(reconciler, any_store):
    batch = [row("Ann", "Acne", "111", "k1"), row("Bob", "Eczema", "222", "k2")]
    reconciler.reconcile(batch)
    before = any_store.get_all()

    result = reconciler.reconcile(batch)

    assert result.counts() == {
        "created": 0, "updated": 0, "unchanged": 2,
        "deleted": 0, "skipped": 0, "duplicates": 0,
    }
    assert not result.changed
    assert any_store.get_all() == before


def test_content_change_updates_message_and_keeps_status(reconciler, any_store):
    reconciler.reconcile([row("Ann", "Acne", "111", "k1")])
    p = any_store.get_by_external_key("k1")
    any_store.update_status(p.id, "sent")

    result = reconciler.reconcile([row("Ann", "Rosacea", "111", "k1")])

    assert result.updated == 1
    updated = any_store.get_by_external_key("k1")
    assert updated.id == p.id
    assert updated.status == "sent"
    assert updated.category == "Rosacea"
    assert updated.message == "Hi Ann, we are here to help you with Rosacea."


def test_missing_row_is_deleted(reconciler, any_store):
    reconciler.reconcile([row("Ann", "Acne", "111", "k1"), row("Bob", "Eczema", "222", "k2")])

    result = reconciler.reconcile([row("Ann", "Acne", "111", "k1")])

    assert result.deleted == 1
    assert [p.external_key for p in any_store.get_all()] == ["k1"]


def test_duplicate_keys_first_wins(reconciler, any_store):
    result = reconciler.reconcile([
        row("Ann", "Acne", "111", "k1"),
        row("Imposter", "Eczema", "999", "k1"),
    ])

    assert result.created == 1
    assert result.duplicates == 1
    [p] = any_store.get_all()
    assert p.name == "Ann"


def test_keyless_row_is_never_merged_by_phone(reconciler, any_store):
    reconciler.reconcile([row("Ann", "Acne", "111", "k1")])

    result = reconciler.reconcile([row("Ann", "Acne", "111", "k1"), row("Ann", "Acne", "111")])

    assert result.created == 1
    assert result.unchanged == 1
    prospects = any_store.get_all()
    assert len(prospects) == 2
    assert prospects[1].external_key not in ("", "k1")


def test_incomplete_rows_are_skipped(reconciler, any_store):
    result = reconciler.reconcile([
        row("  Ann ", " Acne ", " 111 ", " k1 "),
        row("", "Acne", "222", "k2"),
        row("Cat", "", "333", "k3"),
        row("Dan", "Acne", "   ", "k4"),
    ])

    assert result.created == 1
    assert result.skipped == 3
    p = any_store.get_by_external_key("k1")
    assert (p.name, p.category, p.phone_number) == ("Ann", "Acne", "111")


def test_empty_batch_never_deletes(reconciler, any_store):
    reconciler.reconcile([row("Ann", "Acne", "111", "k1")])

    result = reconciler.reconcile([])

    assert result.deleted == 0
    assert len(result.prospects) == 1
    assert len(any_store.get_all()) == 1


def test_batch_of_only_invalid_rows_never_deletes(reconciler, any_store):
    reconciler.reconcile([row("Ann", "Acne", "111", "k1")])

    result = reconciler.reconcile([row("", "", "", "k9")])

    assert result.skipped == 1
    assert len(any_store.get_all()) == 1


def test_sync_source_error_leaves_store_untouched(reconciler, any_store):
    reconciler.reconcile([row("Ann", "Acne", "111", "k1")])
    before = any_store.get_all()

    with pytest.raises(ExternalSourceError):
        reconciler.sync(FakeSource(error="Spreadsheet not found"))

    assert any_store.get_all() == before


def test_sync_reconciles_fetched_rows(reconciler, any_store):
    source = FakeSource(rows=[row("Ann", "Acne", "111", "k1"), row("Bob", "Eczema", "222", "k2")])

    result = reconciler.sync(source)

    assert source.calls == 1
    assert result.created == 2
    assert [p.name for p in result.prospects] == ["Ann", "Bob"]


def test_unchanged_row_keeps_sent_status(reconciler, any_store):
    reconciler.reconcile([row("Ann", "Acne", "111", "k1")])
    p = any_store.get_by_external_key("k1")
    any_store.update_status(p.id, "sent")

    result = reconciler.reconcile([row("Ann", "Acne", "111", "k1")])

    assert result.unchanged == 1
    assert any_store.get(p.id).status == "sent"


def test_name_change_keeps_sent_status_and_regenerates_message(reconciler, any_store):
    reconciler.reconcile([row("Ann", "Acne", "111", "k1")])
    p = any_store.get_by_external_key("k1")
    any_store.update_status(p.id, "sent")

    result = reconciler.reconcile([row("Anna", "Acne", "111", "k1")])

    assert result.updated == 1
    updated = any_store.get(p.id)
    assert updated.status == "sent"
    assert updated.name == "Anna"
    assert updated.message == "Hi Anna, we are here to help you with Acne."
