# kaspaindex

Building blocks for a Kaspa block indexer backed by PostgreSQL.

- **Value types and rows**: `kaspaindex.types.Hash` is a 32-byte hash, ordered by its bytes,
  built from raw bytes or with `Hash.from_hex(...)`. `kaspaindex.models` holds dataclasses for
  the database rows: `Block`, `BlockParent`, `BlockTransaction`, `Transaction`,
  `TransactionInput`, `TransactionOutput`, `TransactionAcceptance`, `AddressTransaction`,
  `ScriptTransaction`, `SequencingCommitment`, `Subnetwork`, `TagProvider`, `Var`,
  `DatabaseDetails` and `TableDetails`. Equality and hashing follow each table's key (for
  example a `Block` by its hash, a `TransactionInput` by transaction id and index).
- **Transaction filter rules**: `kaspaindex.filter_config.FilterConfig` loads and validates YAML
  rules that tag transactions by TXID or payload, with `prefix`, `contains` or `regex` matching.
- **Fast matching**: `kaspaindex.prefix_trie.PrefixTrie` (longest byte-prefix lookup) and
  `kaspaindex.bloom_filter.BloomFilter` (probabilistic membership).
- **Tag lookup**: `kaspaindex.tag_cache.TagCache`, a thread-safe map from `(tag, module)` to
  tag provider id.
- **Payload analysis**: `kaspaindex.analyzer` groups payloads by common text or hex prefixes
  and renders a Markdown report or draft YAML filter rules.
- **SQL statements**: `kaspaindex.statements` (inserts, upserts, DDL), `kaspaindex.selects`
  (lookups) and `kaspaindex.pruning` (deletes and batched pruning), run through any object
  that provides the `kaspaindex.statements.Executor` interface.
- **Checkpointing**: `kaspaindex.checkpoint.CheckpointTracker` decides when a block has been
  processed by every component and can be saved as the restart checkpoint.

## Installation

```
pip install .
```

## Filter rules

```yaml
version: "1.0"
settings:
  default_store_payload: false
rules:
  - name: kasplex
    tag: kasplex
    priority: 100
    enabled: true
    store_payload: true
    conditions:
      payload:
        - prefix: "kasplex"
  - name: igra
    tag: igra
    priority: 90
    enabled: true
    store_payload: false
    conditions:
      txid:
        prefix: "hex:97b1"
```

```python
from kaspaindex.filter_config import FilterConfig

config = FilterConfig.from_file("filters.yaml")   # or FilterConfig.from_yaml(text) / from_dict(data)
for rule in config.sorted_enabled_rules:           # enabled rules, highest priority first
    print(rule.priority, rule.name, rule.conditions)

config.build_tries()  # fills config.txid_trie / config.payload_trie (None when no prefixes)
```

Only version `"1.0"` is accepted. A prefix starting with `hex:` is decoded as hex bytes; any
other prefix is taken as UTF-8 text. `match_type: regex` compiles the pattern (at most 256
bytes). Rule names must be unique, tags 1–50 characters, and every rule needs a `txid` or
`payload` condition. Any problem raises `kaspaindex.filter_config.FilterConfigError`, a
`ValueError`, with a message naming the offending rule.

## Prefix trie and Bloom filter

```python
from kaspaindex.prefix_trie import PrefixTrie
from kaspaindex.bloom_filter import BloomFilter

trie = PrefixTrie()
trie.insert(b"kas", 0)
trie.insert(b"kasplex", 1)
trie.lookup(b"kasplex-protocol")  # 1, the longest matching prefix
trie.lookup(b"igra")              # None
trie.node_count()                 # 8, root included

bloom = BloomFilter(10_000, 0.01)
bloom.insert(b"item")
bloom.might_contain(b"item")      # True; never a false negative
bloom.num_hash_functions(), bloom.bit_array_size(), bloom.memory_usage()
```

## Tag cache

```python
from kaspaindex.tag_cache import TagCache

cache = TagCache.load([("kasplex", "default", 1)])  # (tag, module, id) rows
cache.get_tag_id("kasplex", "default")              # 1

def insert(tag, module, prefix, repository, description, category):
    return 2  # store the provider and return its id

cache.upsert_tag("igra", "default", "hex:97b1", None, "igra", None, insert)  # 2, now cached
```

`refresh(rows)` replaces the whole contents; `len(cache)` and `is_empty()` report the size.

## Payload analysis

```python
from kaspaindex.analyzer import analyze_payloads, generate_report, generate_yaml_rules

rows = [(txid_bytes, payload_bytes), ...]
patterns = analyze_payloads(rows, text_prefix_length=20, hex_prefix_length=8, min_count=10)
print(generate_report(patterns))      # Markdown report
print(generate_yaml_rules(patterns))  # disabled draft rules in the filter rule format
```

Payloads that are valid UTF-8 without control characters (other than newline and tab) are
grouped by their first characters; all others by the first digits of their hex form.
Patterns are returned most frequent first, each with up to five sample transaction ids and
three sample payloads.

## Database statements

Statements use PostgreSQL `$n` parameters. Supply an executor with this shape:

```python
class MyExecutor:
    def execute(self, sql, params) -> int: ...        # rows affected
    def fetch_all(self, sql, params) -> list[tuple]: ...
    def transaction(self): ...                         # context manager yielding an executor
```

```python
from kaspaindex import statements, selects, pruning

statements.insert_blocks(blocks, executor)         # one multi-row INSERT ... ON CONFLICT DO NOTHING
statements.upsert_var("block_checkpoint", value, executor)
selects.select_var("block_checkpoint", executor)   # LookupError if absent
pruning.prune_transactions(cutoff_ms, 1000, executor)
```

Hashes are passed as raw bytes. Inserting an empty list raises `ValueError`;
`statements.generate_placeholders(rows, columns)` builds the `VALUES` groups.

## Checkpoints

```python
from queue import Queue
from kaspaindex.checkpoint import CheckpointTracker, process_checkpoints

tracker = CheckpointTracker(save=lambda hex_hash: ..., net_bps=10)
process_checkpoints(tracker, Queue(), is_shutdown=lambda: False)
```

`CheckpointTracker.process(block)` takes one `CheckpointBlock` and returns the checkpoint it
saved, if any. A candidate is chosen at most every 60 seconds and saved once both the block
and transaction processors have reported it.

## What this package does not do

It has no command-line program and no running indexer: it does not connect to a Kaspa node,
fetch blocks or transactions, create the database schema, or serve a web API. It ships no
PostgreSQL driver either; database access goes only through the `Executor` object you pass in.

## Running the tests

```
pip install .[test]
pytest
```