from contextlib import contextmanager

import pytest

from kaspaindex.models import (
    AddressTransaction,
    Block,
    BlockParent,
    SequencingCommitment,
    Transaction,
    TransactionInput,
)
from kaspaindex.statements import (
    execute_ddl,
    generate_placeholders,
    get_tag_id_by_name,
    insert_address_transactions,
    insert_address_transactions_from_inputs,
    insert_block_parents,
    insert_blocks,
    insert_sequencing_commitments,
    insert_subnetwork,
    insert_tag_provider,
    insert_transaction_inputs,
    insert_transactions,
    upsert_var,
)
from kaspaindex.types import Hash


class FakeExecutor:
    def __init__(self, rowcount=1, rows=None):
        self.rowcount = rowcount
        self.rows = rows if rows is not None else []
        self.calls = []
        self.transactions = 0
        self.in_transaction = False

    def execute(self, sql, params):
        self.calls.append((sql, list(params), self.in_transaction))
        return self.rowcount

    def fetch_all(self, sql, params):
        self.calls.append((sql, list(params), self.in_transaction))
        return self.rows

    @contextmanager
    def transaction(self):
        self.transactions += 1
        self.in_transaction = True
        try:
            yield self
        finally:
            self.in_transaction = False


def h(n):
    return Hash(bytes([n]) * 32)


def test_generate_placeholders_values():
    assert generate_placeholders(1, 3) == "($1, $2, $3)"
    assert generate_placeholders(2, 2) == "($1, $2), ($3, $4)"
    assert generate_placeholders(0, 5) == ""


@pytest.mark.parametrize("rows,columns", [(1, 1), (3, 7), (10, 15)])
def test_generate_placeholders_numbering(rows, columns):
    text = generate_placeholders(rows, columns)
    numbers = [int(tok.strip("(), ")) for tok in text.split("$")[1:]]
    assert numbers == list(range(1, rows * columns + 1))
    assert text.count("(") == rows


def test_insert_blocks_runs_in_transaction():
    ex = FakeExecutor(rowcount=2)
    blocks = [Block(hash=h(1), blue_score=5, merge_set_blues_hashes=[h(2)]), Block(hash=h(3))]
    assert insert_blocks(blocks, ex) == 2
    assert ex.transactions == 1
    sql, params, in_tx = ex.calls[0]
    assert in_tx is True
    assert len(params) == 30
    assert params[0] == h(1).as_bytes()
    assert params[2] == [h(2).as_bytes()]
    assert params[6] == 5
    assert params[15] == h(3).as_bytes()
    assert generate_placeholders(2, 15) in sql


def test_insert_empty_rows_raises():
    with pytest.raises(ValueError):
        insert_blocks([], FakeExecutor())
    with pytest.raises(ValueError):
        insert_transactions([], FakeExecutor())


def test_insert_transactions_param_order():
    ex = FakeExecutor(rowcount=1)
    tx = Transaction(transaction_id=h(4), subnetwork_id=2, hash=h(5), mass=100,
                     payload=b"abc", block_time=1234, tag_id=9)
    assert insert_transactions([tx], ex) == 1
    sql, params, _ = ex.calls[0]
    assert params == [h(4).as_bytes(), 2, h(5).as_bytes(), 100, b"abc", 1234, 9]
    assert sql.startswith("INSERT INTO transactions ")


def test_insert_transaction_inputs_resolution_toggle():
    tin = TransactionInput(transaction_id=h(1), index=0, previous_outpoint_hash=h(2),
                           previous_outpoint_index=1)
    resolved = FakeExecutor()
    plain = FakeExecutor()
    insert_transaction_inputs(True, [tin], resolved)
    insert_transaction_inputs(False, [tin], plain)
    assert "LEFT JOIN transactions_outputs" in resolved.calls[0][0]
    assert "LEFT JOIN" not in plain.calls[0][0]
    assert resolved.calls[0][1] == plain.calls[0][1]
    assert len(plain.calls[0][1]) == 9


def test_block_parents_and_address_transactions_params():
    ex = FakeExecutor()
    insert_block_parents([BlockParent(h(1), h(2))], ex)
    insert_address_transactions([AddressTransaction("kaspa:addr", h(3), 77)], ex)
    assert ex.calls[0][1] == [h(1).as_bytes(), h(2).as_bytes()]
    assert ex.calls[1][1] == ["kaspa:addr", h(3).as_bytes(), 77]


def test_sequencing_commitment_optional_parent():
    ex = FakeExecutor()
    insert_sequencing_commitments([SequencingCommitment(h(1), h(2))], ex)
    assert ex.calls[0][1] == [h(1).as_bytes(), h(2).as_bytes(), None]


def test_from_inputs_binds_id_array():
    ex = FakeExecutor(rowcount=4)
    assert insert_address_transactions_from_inputs(True, [h(1), h(2)], ex) == 4
    sql, params, _ = ex.calls[0]
    assert params == [[h(1).as_bytes(), h(2).as_bytes()]]
    assert "JOIN transactions t" in sql
    insert_address_transactions_from_inputs(False, [h(1)], ex)
    assert "JOIN transactions t" not in ex.calls[1][0]


def test_insert_subnetwork_returns_id_and_raises_on_conflict():
    assert insert_subnetwork("0100", FakeExecutor(rows=[(7,)])) == 7
    with pytest.raises(LookupError):
        insert_subnetwork("0100", FakeExecutor(rows=[]))


def test_insert_tag_provider_and_lookup():
    ex = FakeExecutor(rows=[(12,)])
    assert insert_tag_provider("kasplex", "default", "kasplex", None, "desc", None, ex) == 12
    assert ex.calls[0][1] == ["kasplex", "default", "kasplex", None, "desc", None]
    assert get_tag_id_by_name("kasplex", FakeExecutor(rows=[(12,)])) == 12
    assert get_tag_id_by_name("missing", FakeExecutor(rows=[])) is None


def test_upsert_var():
    ex = FakeExecutor(rowcount=1)
    assert upsert_var("block_checkpoint", "abcd", ex) == 1
    assert ex.calls[0][1] == ["block_checkpoint", "abcd"]
    assert "ON CONFLICT (key)" in ex.calls[0][0]


def test_execute_ddl_splits_statements():
    ex = FakeExecutor()
    execute_ddl("CREATE TABLE a (x int);\n ;CREATE TABLE b (y int);\n", ex)
    statements = [call[0].strip() for call in ex.calls]
    assert statements == ["CREATE TABLE a (x int)", "CREATE TABLE b (y int)"]