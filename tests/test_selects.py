import pytest

from kaspaindex import selects
from kaspaindex.models import DatabaseDetails, SequencingCommitment, Subnetwork, TableDetails
from kaspaindex.types import Hash


class RowsExecutor:
    def __init__(self, rows):
        self.rows = rows
        self.calls = []

    def execute(self, sql, params):
        raise AssertionError("selects must not execute statements")

    def fetch_all(self, sql, params):
        self.calls.append((sql, list(params)))
        return self.rows

    def transaction(self):
        raise AssertionError("selects must not open transactions")


def h(n):
    return Hash(bytes([n]) * 32)


def test_select_database_details_maps_columns_in_order():
    row = ("kaspa", "public", 123456, 2, 0, 7, 100)
    db = RowsExecutor([row])
    details = selects.select_database_details(db)
    assert details == DatabaseDetails(*row)
    assert details.database_name == "kaspa"
    assert details.max_connections == 100


def test_select_database_details_requires_a_row():
    with pytest.raises(LookupError):
        selects.select_database_details(RowsExecutor([]))


def test_select_all_table_details():
    rows = [("blocks", 10, 4, 99), ("vars", 1, 1, 2)]
    result = selects.select_all_table_details(RowsExecutor(rows))
    assert result == [TableDetails(*r) for r in rows]


def test_select_var_returns_value_and_binds_key():
    db = RowsExecutor([("abc",)])
    assert selects.select_var("block_checkpoint", db) == "abc"
    assert db.calls[0][1] == ["block_checkpoint"]


def test_select_var_missing_raises():
    with pytest.raises(LookupError):
        selects.select_var("missing", RowsExecutor([]))


def test_select_subnetworks():
    rows = [(1, "0000000000000000000000000000000000000000"), (2, "0100000000000000000000000000000000000000")]
    result = selects.select_subnetworks(RowsExecutor(rows))
    assert [s.id for s in result] == [1, 2]
    assert result[1] == Subnetwork(id=2, subnetwork_id=rows[1][1])


def test_select_tx_count_binds_raw_hash():
    db = RowsExecutor([(5,)])
    assert selects.select_tx_count(h(9), db) == 5
    assert db.calls[0][1] == [h(9).as_bytes()]


@pytest.mark.parametrize("value,expected", [(True, True), (False, False)])
def test_select_is_chain_block(value, expected):
    assert selects.select_is_chain_block(h(1), RowsExecutor([(value,)])) is expected


def test_select_sequencing_commitment_found():
    db = RowsExecutor([(h(1).as_bytes(), h(2).as_bytes(), None)])
    result = selects.select_sequencing_commitment(h(1), db)
    assert result == SequencingCommitment(block_hash=h(1), seqcom_hash=h(2), parent_seqcom_hash=None)


def test_select_sequencing_commitment_with_parent():
    db = RowsExecutor([(h(1).as_bytes(), h(2).as_bytes(), h(3).as_bytes())])
    assert selects.select_sequencing_commitment(h(1), db).parent_seqcom_hash == h(3)


def test_select_sequencing_commitment_missing():
    assert selects.select_sequencing_commitment(h(1), RowsExecutor([])) is None


def test_select_block_decodes_hashes():
    row = (
        h(1).as_bytes(),
        h(2).as_bytes(),
        [h(3).as_bytes(), h(4).as_bytes()],
        None,
        h(5).as_bytes(),
        7,
        11,
        b"\x01\x02",
        13,
        None,
        b"\xff",
        h(6).as_bytes(),
        1700000000000,
        h(7).as_bytes(),
        1,
    )
    block = selects.select_block(h(1), RowsExecutor([row]))
    assert block.hash == h(1)
    assert block.accepted_id_merkle_root == h(2)
    assert block.merge_set_blues_hashes == [h(3), h(4)]
    assert block.merge_set_reds_hashes is None
    assert block.selected_parent_hash == h(5)
    assert block.blue_work == b"\x01\x02"
    assert block.hash_merkle_root is None
    assert block.nonce == b"\xff"
    assert block.pruning_point == h(6)
    assert block.timestamp == 1700000000000
    assert block.utxo_commitment == h(7)


def test_select_block_missing():
    assert selects.select_block(h(1), RowsExecutor([])) is None


def test_select_block_rejects_malformed_hash():
    row = (b"\x00" * 5,) + (None,) * 14
    with pytest.raises(ValueError):
        selects.select_block(h(1), RowsExecutor([row]))