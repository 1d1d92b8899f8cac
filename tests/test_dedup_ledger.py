import threading

from groupmatch.services.dedup_ledger import MessageIdentity, MessageLedger


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _identity(message_id, chat_id="chat-1"):
    return MessageIdentity(message_id=message_id, chat_id=chat_id)


class TestMessageLedger:
    def test_first_insert_admitted_second_rejected(self):
        ledger = MessageLedger(ttl_seconds=300)
        assert ledger.insert_if_absent(_identity("m-1")) is True
        assert ledger.insert_if_absent(_identity("m-1")) is False
        assert ledger.contains("m-1") is True

    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        ledger = MessageLedger(ttl_seconds=300, clock=clock)
        ledger.insert_if_absent(_identity("m-1"))

        clock.now += 299
        assert ledger.contains("m-1") is True

        clock.now += 2
        assert ledger.contains("m-1") is False
        assert ledger.insert_if_absent(_identity("m-1")) is True

    def test_sweep_removes_only_expired(self):
        clock = FakeClock()
        ledger = MessageLedger(ttl_seconds=10, clock=clock)
        ledger.insert_if_absent(_identity("old"))
        clock.now += 5
        ledger.insert_if_absent(_identity("new"))
        clock.now += 6

        assert ledger.sweep() == 1
        assert len(ledger) == 1
        assert ledger.contains("new") is True

    def test_missing_message_id_always_admitted(self):
        ledger = MessageLedger()
        assert ledger.insert_if_absent(_identity(None)) is True
        assert ledger.insert_if_absent(_identity(None)) is True
        assert len(ledger) == 0

    def test_concurrent_inserts_admit_exactly_one(self):
        ledger = MessageLedger()
        admitted = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            admitted.append(ledger.insert_if_absent(_identity("same-id")))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert admitted.count(True) == 1
        assert admitted.count(False) == 7
