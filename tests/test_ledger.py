import threading
import uuid

from spawners.coords import BlockPos, SpawnerKey
from spawners.ledger import LedgerEntry, PopulationLedger

from helpers import place_creature

KEY_A = SpawnerKey("minecraft:overworld", BlockPos(3, 1, 3))
KEY_B = SpawnerKey("minecraft:overworld", BlockPos(6, 1, 6))


def test_add_lookup_and_count():
    ledger = PopulationLedger()
    a1, a2, b1 = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    ledger.add(a1, KEY_A, "Pikachu")
    ledger.add(a2, KEY_A, "Vulpix")
    ledger.add(b1, KEY_B, "Onix")

    assert len(ledger) == 3
    assert ledger.count_for(KEY_A) == 2
    assert ledger.count_for(KEY_B) == 1
    assert set(ledger.ids_for(KEY_A)) == {a1, a2}
    assert ledger.lookup(b1) == LedgerEntry(KEY_B, "Onix")
    assert a1 in ledger
    assert uuid.uuid4() not in ledger

def test_remove_reports_whether_anything_was_removed():
    ledger = PopulationLedger()
    cid = uuid.uuid4()
    ledger.add(cid, KEY_A, "Pikachu")
    assert ledger.remove(cid) is True
    assert ledger.remove(cid) is False
    assert ledger.lookup(cid) is None

def test_clear_spawner_leaves_other_spawners():
    ledger = PopulationLedger()
    for _ in range(5):
        ledger.add(uuid.uuid4(), KEY_A, "Pikachu")
    keep = uuid.uuid4()
    ledger.add(keep, KEY_B, "Onix")

    assert ledger.clear_spawner(KEY_A) == 5
    assert ledger.count_for(KEY_A) == 0
    assert ledger.ids_for(KEY_B) == [keep]

    ledger.clear()
    assert len(ledger) == 0

def test_reconcile_keeps_live_wild_creatures(flat_world):
    ledger = PopulationLedger()
    cid = place_creature(flat_world, KEY_A, (3, 1, 3))
    ledger.add(cid, KEY_A, "Pikachu")
    assert ledger.reconcile(flat_world, KEY_A) == []
    assert ledger.count_for(KEY_A) == 1

def test_reconcile_evicts_dead_captured_and_missing(flat_world):
    ledger = PopulationLedger()
    dead = place_creature(flat_world, KEY_A, (1, 1, 1))
    caught = place_creature(flat_world, KEY_A, (2, 1, 1))
    gone = place_creature(flat_world, KEY_A, (3, 1, 1))
    alive = place_creature(flat_world, KEY_A, (4, 1, 1))
    other = place_creature(flat_world, KEY_B, (5, 1, 1))
    for cid in (dead, caught, gone, alive):
        ledger.add(cid, KEY_A, "Pikachu")
    ledger.add(other, KEY_B, "Pikachu")

    flat_world.kill(dead)
    flat_world.capture(caught, owner="Ash")
    flat_world.discard_creature(gone)
    flat_world.kill(other)

    assert set(ledger.reconcile(flat_world, KEY_A)) == {dead, caught, gone}
    assert ledger.ids_for(KEY_A) == [alive]
    # Only the reconciled spawner is touched.
    assert other in ledger

def test_reconcile_does_not_report_ids_removed_elsewhere(flat_world):
    ledger = PopulationLedger()
    cid = place_creature(flat_world, KEY_A, (3, 1, 3))
    ledger.add(cid, KEY_A, "Pikachu")
    flat_world.kill(cid)
    ledger.remove(cid)
    assert ledger.reconcile(flat_world, KEY_A) == []

def test_concurrent_add_and_remove():
    ledger = PopulationLedger(shards=4)
    ids = [[uuid.uuid4() for _ in range(500)] for _ in range(8)]

    def churn(batch):
        for cid in batch:
            ledger.add(cid, KEY_A, "Pikachu")
        for cid in batch[::2]:
            ledger.remove(cid)

    threads = [threading.Thread(target=churn, args=(batch,)) for batch in ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert ledger.count_for(KEY_A) == 8 * 250
