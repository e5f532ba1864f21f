"""Rows of the indexer's database tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from kaspaindex.types import BlueWork, Hash, Nonce, Payload


@dataclass(unsafe_hash=True)
class AddressTransaction:
    """An address touched by a transaction; identity is (address, transaction_id)."""

    address: str
    transaction_id: Hash
    block_time: int = field(compare=False)


@dataclass(unsafe_hash=True)
class Block:
    """A block header row; identity is the block hash."""

    hash: Hash
    accepted_id_merkle_root: Hash | None = field(default=None, compare=False)
    merge_set_blues_hashes: list[Hash] | None = field(default=None, compare=False)
    merge_set_reds_hashes: list[Hash] | None = field(default=None, compare=False)
    selected_parent_hash: Hash | None = field(default=None, compare=False)
    bits: int | None = field(default=None, compare=False)
    blue_score: int | None = field(default=None, compare=False)
    blue_work: BlueWork | None = field(default=None, compare=False)
    daa_score: int | None = field(default=None, compare=False)
    hash_merkle_root: Hash | None = field(default=None, compare=False)
    nonce: Nonce | None = field(default=None, compare=False)
    pruning_point: Hash | None = field(default=None, compare=False)
    timestamp: int | None = field(default=None, compare=False)
    utxo_commitment: Hash | None = field(default=None, compare=False)
    version: int | None = field(default=None, compare=False)


@dataclass(frozen=True)
class BlockParent:
    block_hash: Hash
    parent_hash: Hash


@dataclass(frozen=True)
class BlockTransaction:
    block_hash: Hash
    transaction_id: Hash


@dataclass(unsafe_hash=True)
class ScriptTransaction:
    """A script touched by a transaction; identity is (script_public_key, transaction_id)."""

    script_public_key: bytes
    transaction_id: Hash
    block_time: int = field(compare=False)


@dataclass
class SequencingCommitment:
    block_hash: Hash
    seqcom_hash: Hash
    parent_seqcom_hash: Hash | None = None


@dataclass(unsafe_hash=True)
class Subnetwork:
    """A subnetwork row; identity is the subnetwork id string."""

    id: int = field(compare=False)
    subnetwork_id: str


@dataclass(unsafe_hash=True)
class TagProvider:
    """A registered tag provider; identity is the row id."""

    id: int
    tag: str = field(compare=False)
    module: str | None = field(compare=False)
    prefix: str = field(compare=False)
    repository_url: str | None = field(compare=False)
    description: str | None = field(compare=False)
    category: str | None = field(compare=False)
    created_at: datetime = field(compare=False)


@dataclass(unsafe_hash=True)
class Transaction:
    """A transaction row; identity is the transaction id."""

    transaction_id: Hash
    subnetwork_id: int | None = field(default=None, compare=False)
    hash: Hash | None = field(default=None, compare=False)
    mass: int | None = field(default=None, compare=False)
    payload: Payload | None = field(default=None, compare=False)
    block_time: int | None = field(default=None, compare=False)
    tag_id: int | None = field(default=None, compare=False)


@dataclass(frozen=True)
class TransactionAcceptance:
    transaction_id: Hash | None = None
    block_hash: Hash | None = None


@dataclass(unsafe_hash=True)
class TransactionInput:
    """A transaction input; identity is (transaction_id, index)."""

    transaction_id: Hash
    index: int
    previous_outpoint_hash: Hash | None = field(default=None, compare=False)
    previous_outpoint_index: int | None = field(default=None, compare=False)
    signature_script: bytes | None = field(default=None, compare=False)
    sig_op_count: int | None = field(default=None, compare=False)
    block_time: int | None = field(default=None, compare=False)
    previous_outpoint_script: bytes | None = field(default=None, compare=False)
    previous_outpoint_amount: int | None = field(default=None, compare=False)


@dataclass(unsafe_hash=True)
class TransactionOutput:
    """A transaction output; identity is (transaction_id, index)."""

    transaction_id: Hash
    index: int
    amount: int | None = field(default=None, compare=False)
    script_public_key: bytes | None = field(default=None, compare=False)
    script_public_key_address: str | None = field(default=None, compare=False)
    block_time: int | None = field(default=None, compare=False)


@dataclass
class Var:
    key: str
    value: str


@dataclass
class DatabaseDetails:
    database_name: str
    schema_name: str
    database_size: int
    active_queries: int
    blocked_queries: int
    active_connections: int
    max_connections: int


@dataclass
class TableDetails:
    name: str
    total_size: int
    indexes_size: int
    approximate_row_count: int