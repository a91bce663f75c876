import pytest

from outreach_desk.application import Dispatcher
from outreach_desk.domain import NotConnectedError, NotFoundError
from outreach_desk.infrastructure.whatsapp import to_address

from conftest import FakeProvider


def seed(store, *names):
    return [
        store.create(name=name, category="Acne", phone_number=f"+1 555-{index:04d}")
        for index, name in enumerate(names)
    ]


def make_dispatcher(store, provider, sleeps, delay=2.0):
    return Dispatcher(store, provider, delay_seconds=delay, sleep=sleeps.append)


def test_send_bulk_sends_every_pending_prospect(store, provider, sleeps):
    seed(store, "Ann", "Bob", "Cat")

    result = make_dispatcher(store, provider, sleeps).send_bulk()

    assert (result.sent, result.failed) == (3, 0)
    assert [address for address, _ in provider.sent] == ["15550000", "15550001", "15550002"]
    assert provider.sent[0][1] == "Hi Ann, we are here to help you with Acne."
    assert all(p.status == "sent" for p in store.get_all())


def test_send_bulk_pauses_between_sends_only(store, provider, sleeps):
    seed(store, "Ann", "Bob", "Cat")

    make_dispatcher(store, provider, sleeps, delay=1.5).send_bulk()

    assert sleeps == [1.5, 1.5]


def test_send_bulk_single_prospect_never_sleeps(store, provider, sleeps):
    seed(store, "Ann")

    make_dispatcher(store, provider, sleeps).send_bulk()

    assert sleeps == []


def test_send_bulk_records_failures_and_continues(store, sleeps):
    ann, bob = seed(store, "Ann", "Bob")
    provider = FakeProvider(fail_for={"15550000"})

    result = make_dispatcher(store, provider, sleeps).send_bulk()

    assert (result.sent, result.failed) == (1, 1)
    assert store.get(ann.id).status == "failed"
    assert store.get(bob.id).status == "sent"


def test_send_bulk_counts_exceptions_as_failures(store, sleeps):
    ann, bob = seed(store, "Ann", "Bob")
    provider = FakeProvider(raise_for={"15550000"})

    result = make_dispatcher(store, provider, sleeps).send_bulk()

    assert (result.sent, result.failed) == (1, 1)
    assert store.get(ann.id).status == "failed"


def test_send_bulk_skips_non_pending(store, provider, sleeps):
    ann, bob = seed(store, "Ann", "Bob")
    store.update_status(ann.id, "sent")

    result = make_dispatcher(store, provider, sleeps).send_bulk()

    assert (result.sent, result.failed) == (1, 0)
    assert len(provider.sent) == 1


def test_send_bulk_with_nothing_pending(store, provider, sleeps):
    result = make_dispatcher(store, provider, sleeps).send_bulk()

    assert result.to_dict() == {"sent": 0, "failed": 0}
    assert provider.sent == []


def test_send_bulk_requires_connection(store, sleeps):
    seed(store, "Ann")
    provider = FakeProvider(ready=False)

    with pytest.raises(NotConnectedError):
        make_dispatcher(store, provider, sleeps).send_bulk()

    assert store.get_all()[0].status == "pending"
    assert provider.sent == []


def test_send_one_override_is_not_persisted(store, provider, sleeps):
    [ann] = seed(store, "Ann")

    result = make_dispatcher(store, provider, sleeps).send_one(ann.id, override_text="Custom hello")

    assert provider.sent == [("15550000", "Custom hello")]
    assert result.status == "sent"
    assert result.message == ann.message


def test_send_one_blank_override_uses_stored_message(store, provider, sleeps):
    [ann] = seed(store, "Ann")

    make_dispatcher(store, provider, sleeps).send_one(ann.id, override_text="   ")

    assert provider.sent == [("15550000", ann.message)]


def test_send_one_unknown_prospect(store, provider, sleeps):
    with pytest.raises(NotFoundError):
        make_dispatcher(store, provider, sleeps).send_one(99)


def test_send_one_failure_marks_failed(store, sleeps):
    [ann] = seed(store, "Ann")
    provider = FakeProvider(fail_for={"15550000"})

    result = make_dispatcher(store, provider, sleeps).send_one(ann.id)

    assert result.status == "failed"


def test_send_to_phone(store, provider, sleeps):
    ann, bob = seed(store, "Ann", "Bob")

    result = make_dispatcher(store, provider, sleeps).send_to_phone(bob.phone_number)

    assert result.id == bob.id
    assert provider.sent == [("15550001", bob.message)]

    with pytest.raises(NotFoundError):
        make_dispatcher(store, provider, sleeps).send_to_phone("000")


class DeletingProvider(FakeProvider):
    """Deletes the recipient from the store while the message is in flight."""

    def __init__(self, store, victim_address):
        super().__init__()
        self.store = store
        self.victim_address = victim_address

    def send(self, address, text):
        if address == self.victim_address:
            victim = next(p for p in self.store.get_all() if to_address(p.phone_number) == address)
            self.store.delete(victim.id)
        return super().send(address, text)


def test_send_bulk_survives_record_deleted_mid_send(store, sleeps):
    ann, bob, cat = seed(store, "Ann", "Bob", "Cat")
    provider = DeletingProvider(store, "15550000")

    result = make_dispatcher(store, provider, sleeps).send_bulk()

    assert (result.sent, result.failed) == (3, 0)
    assert store.get(ann.id) is None
    assert store.get(bob.id).status == "sent"
    assert store.get(cat.id).status == "sent"


def test_send_one_record_deleted_mid_send(store, sleeps):
    [ann] = seed(store, "Ann")
    provider = DeletingProvider(store, "15550000")

    with pytest.raises(NotFoundError):
        make_dispatcher(store, provider, sleeps).send_one(ann.id)
